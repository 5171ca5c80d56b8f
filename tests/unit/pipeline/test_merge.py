import os

import pytest

from caw.pipeline import merge
from tests.unit.conftest import drain, record


@pytest.fixture
def mock_bam(mocker):
    mocker.patch('caw.pipeline.merge.bam.merge', side_effect=lambda files, out, config: out)
    mocker.patch('caw.pipeline.merge.bam.rename', side_effect=lambda in_bam, out: out)
    mocker.patch('caw.pipeline.merge.bam.get_index', side_effect=lambda out: out + '.bai')
    yield merge.bam


def _run(patient, sample, status, run):
    return record(patient, sample, status, run=run,
                  files=('/w/MappedBam/%s_%s.bam' % (sample, run),))


class TestClassifyAndMerge(object):

    def test_one_record_per_sample(self, flow, config, mock_bam):
        aligned = flow.from_iterable([_run('P1', 'n', '0', 'L1'),
                                      _run('P1', 't', '1', 'L1'),
                                      _run('P1', 't', '1', 'L2')], 'aligned')
        out = drain(flow, merge.classify_and_merge(aligned, config))
        merged_dir = os.path.join(config['dirs']['work'], 'Preprocessing', 'MergedBam')
        by_sample = dict((r.sample, r) for r in out)
        assert sorted(by_sample) == ['n__0', 't__1']
        assert by_sample['n__0'].files == (os.path.join(merged_dir, 'n__0.bam'),)
        assert by_sample['t__1'].files == (os.path.join(merged_dir, 't__1.bam'),)
        assert by_sample['t__1'].run == 'L1-L2'
        mock_bam.rename.assert_called_once_with('/w/MappedBam/n_L1.bam',
                                                os.path.join(merged_dir, 'n__0.bam'))
        assert mock_bam.merge.call_count == 1

    def test_merge_does_not_depend_on_arrival_order(self, flow, config, mock_bam):
        aligned = flow.from_iterable([_run('P1', 't', '1', 'L3'),
                                      _run('P1', 't', '1', 'L1'),
                                      _run('P1', 't', '1', 'L2')], 'aligned')
        out = drain(flow, merge.classify_and_merge(aligned, config))
        assert [r.run for r in out] == ['L1-L2-L3']
        files = mock_bam.merge.call_args[0][0]
        assert files == ['/w/MappedBam/t_L1.bam', '/w/MappedBam/t_L2.bam', '/w/MappedBam/t_L3.bam']

    def test_same_sample_name_in_different_patients(self, flow, config, mock_bam):
        aligned = flow.from_iterable([_run('P1', 't', '1', 'L1'),
                                      _run('P2', 't', '1', 'L1')], 'aligned')
        out = drain(flow, merge.classify_and_merge(aligned, config))
        assert sorted(r.patient for r in out) == ['P1', 'P2']
        assert not mock_bam.merge.called

    def test_single_run_rename_requires_one_run(self, config, mock_bam):
        group = (('P1', 't__1'), [_run('P1', 't', '1', 'L1'), _run('P1', 't', '1', 'L2')])
        with pytest.raises(AssertionError):
            merge.rename_single_bam(group, config)


def test_run_label_is_sorted():
    records = [_run('P1', 't', '1', 'L2'), _run('P1', 't', '1', 'L10'), _run('P1', 't', '1', 'L1')]
    assert merge.run_label(records) == 'L1-L10-L2'


class TestReconcile(object):

    name_fn = staticmethod(merge.sample_from_file('.real.bam'))

    def test_matches_outputs_by_sample_name(self, mock_bam):
        records = [record('P1', 'n', '0'), record('P1', 't.a', '1'), record('P1', 't.b', '1')]
        out_files = ['/w/t.b__1.real.bam', '/w/n__0.real.bam', '/w/t.a__1.real.bam']
        out = merge.reconcile(records, out_files, self.name_fn)
        assert [(r.sample, r.bam) for r in out] == [('n__0', '/w/n__0.real.bam'),
                                                    ('t.a__1', '/w/t.a__1.real.bam'),
                                                    ('t.b__1', '/w/t.b__1.real.bam')]
        assert out[0].bai == '/w/n__0.real.bam.bai'

    def test_count_mismatch(self, mock_bam):
        with pytest.raises(ValueError):
            merge.reconcile([record('P1', 'n', '0')], [], self.name_fn)

    def test_name_mismatch(self, mock_bam):
        with pytest.raises(ValueError):
            merge.reconcile([record('P1', 'n', '0')], ['/w/other__0.real.bam'], self.name_fn)

    def test_unexpected_file_name(self):
        with pytest.raises(ValueError):
            self.name_fn('n__0.recal.bam')
