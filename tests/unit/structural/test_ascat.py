import os

import pytest

from caw.structural import ascat
from caw.variation import vcfutils
from tests.unit.conftest import record


def _fake_scripts(cmd, *args, **kwargs):
    """Stand in for the ASCAT R scripts, writing their outputs in the working directory"""
    if not isinstance(cmd, str) or not cmd.startswith('cd '):
        return
    parts = cmd.split()
    tmp_dir = parts[1]
    if 'convertAlleleCounts.r' in cmd:
        tumor, normal = parts[4], parts[6]
        names = [tumor + '.BAF', tumor + '.LogR', normal + '.BAF', normal + '.LogR']
    else:
        tumor = parts[8]
        names = [tumor + '.cnvs.txt', tumor + '.purityploidy.txt', tumor + '.ASCATprofile.png']
    for name in names:
        with open(os.path.join(tmp_dir, name), 'w') as out_handle:
            out_handle.write(name)


@pytest.fixture
def mock_run(mocker):
    yield mocker.patch('caw.structural.ascat.do.run', side_effect=_fake_scripts)


@pytest.fixture
def count_pair(config):
    out_dir = os.path.join(config['dirs']['work'], 'VariantCalling', 'Ascat', 'P1')
    return vcfutils.make_pair(
        record('P1', 'n', '0', files=(os.path.join(out_dir, 'n__0.allelecount'),)),
        record('P1', 't', '1', files=(os.path.join(out_dir, 't__1.allelecount'),)))


def test_allele_count(config, mock_run):
    rec = record('P1', 't', '1')
    out = ascat.allele_count(rec, config)
    assert out.sample == 't__1'
    assert out.files == (os.path.join(config['dirs']['work'], 'VariantCalling', 'Ascat', 'P1',
                                      't__1.allelecount'),)
    cmd = mock_run.call_args[0][0]
    assert cmd[0] == 'alleleCounter'
    assert cmd[cmd.index('-l') + 1] == config['reference']['ac_loci']
    assert cmd[cmd.index('-b') + 1] == '/data/t.bam'


def test_convert_and_segment(count_pair, config, mock_run):
    config['algorithm']['gender'] = 'XY'
    inputs = ascat.convert_allele_counts(count_pair, config)
    assert os.path.basename(inputs.tumor_baf) == 't__1.BAF'
    assert os.path.basename(inputs.normal_logr) == 'n__0.LogR'
    assert all(os.path.exists(f) for f in inputs[1:])
    convert_cmd = mock_run.call_args[0][0]
    assert convert_cmd.endswith('XY')
    assert 'convertAlleleCounts.r t__1 %s n__0' % count_pair.tumor_bam in convert_cmd

    out = ascat.run_ascat(inputs, config)
    assert out.caller == 'ascat'
    assert out.key == count_pair.key
    assert [os.path.basename(f) for f in out.out_files] == [
        't__1.ASCATprofile.png', 't__1.cnvs.txt', 't__1.purityploidy.txt']


def test_unexpected_gender(count_pair, config, mock_run):
    config['algorithm']['gender'] = 'female'
    with pytest.raises(ValueError):
        ascat.convert_allele_counts(count_pair, config)


def test_normal_shared_by_two_tumors_gets_tables_per_pair(config, mock_run):
    out_dir = os.path.join(config['dirs']['work'], 'VariantCalling', 'Ascat', 'P2')
    counts = dict((s, os.path.join(out_dir, '%s.allelecount' % s)) for s in ['n__0', 'ta__1', 'tb__1'])
    normal = record('P2', 'n', '0', files=(counts['n__0'],))
    inputs = [ascat.convert_allele_counts(
        vcfutils.make_pair(normal, record('P2', tumor, '1', files=(counts[tumor + '__1'],))), config)
        for tumor in ['ta', 'tb']]
    normal_tables = [(i.normal_baf, i.normal_logr) for i in inputs]
    assert normal_tables[0] != normal_tables[1]
    assert [os.path.basename(os.path.dirname(baf)) for baf, _ in normal_tables] == [
        'ta__1_vs_n__0', 'tb__1_vs_n__0']
    assert all(os.path.exists(f) for tables in normal_tables for f in tables)
