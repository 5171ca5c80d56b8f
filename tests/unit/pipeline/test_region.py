import pytest

from caw.pipeline import region


def test_safe_name_replaces_first_colon():
    assert region.to_safestr('chr1:1-1000') == 'chr1_1-1000'
    assert region.to_safestr('HLA-A*01:01:01:01') == 'HLA-A*01_01:01:01'


def test_loads_interval_list_in_order(tmpdir):
    in_file = tmpdir.join('intervals.list')
    in_file.write('@HD\tVN:1.5\n\nchr2:1-500\nchr1:1-1000\nchrX\n')
    intervals = region.load_intervals(str(in_file))
    assert [i.raw for i in intervals] == ['chr2:1-500', 'chr1:1-1000', 'chrX']
    assert [i.index for i in intervals] == [0, 1, 2]
    assert intervals[0].safe == 'chr2_1-500'


def test_loads_bed_as_one_based(tmpdir):
    in_file = tmpdir.join('intervals.bed')
    in_file.write('track name=targets\nchr1\t0\t1000\tgene1\nchr3\t99\t200\n')
    intervals = region.load_intervals(str(in_file))
    assert [i.raw for i in intervals] == ['chr1:1-1000', 'chr3:100-200']


def test_empty_interval_file(tmpdir):
    in_file = tmpdir.join('empty.list')
    in_file.write('# nothing here\n')
    with pytest.raises(ValueError):
        region.load_intervals(str(in_file))
