import os

import pytest

from caw.structural import manta
from caw.variation import vcfutils
from tests.unit.conftest import record


def _fake_manta(cmd, *args, **kwargs):
    """Stand in for the Manta workflow, writing its result files"""
    if cmd[0].endswith('runWorkflow.py'):
        out_dir = os.path.join(os.path.dirname(cmd[0]), 'results', 'variants')
        os.makedirs(out_dir)
        for base in ['somaticSV.vcf.gz', 'diploidSV.vcf.gz']:
            with open(os.path.join(out_dir, base), 'w') as out_handle:
                out_handle.write(base)


@pytest.fixture
def mock_run(mocker):
    yield mocker.patch('caw.structural.manta.do.run', side_effect=_fake_manta)


@pytest.fixture
def pair():
    return vcfutils.make_pair(record('P1', 'n', '0'), record('P1', 't', '1'))


def test_configures_and_runs_workflow(pair, config, mock_run):
    config['resources']['manta'] = {'cores': 8, 'options': ['--exome']}
    out = manta.run(pair, config)
    configure, workflow = [c[0][0] for c in mock_run.call_args_list]
    assert configure[0] == 'configManta.py'
    assert '--normalBam=/data/n.bam' in configure
    assert '--tumorBam=/data/t.bam' in configure
    assert configure[-1] == '--exome'
    assert workflow[1:] == ['-m', 'local', '-j', 2]
    prefix = vcfutils.caller_out_prefix('Manta', pair, config)
    assert out == vcfutils.CallerOutput('Manta', pair.key, [prefix + '_somaticSV.vcf.gz',
                                                            prefix + '_diploidSV.vcf.gz'])
    assert all(os.path.exists(f) for f in out.out_files)


def test_resumes_from_finished_work_dir(pair, config, mock_run):
    manta.run(pair, config)
    mock_run.reset_mock()
    out = manta.run(pair, config)
    assert not mock_run.called
    assert len(out.out_files) == 2


def test_missing_output_is_an_error(pair, config, mocker):
    mocker.patch('caw.structural.manta.do.run')
    with pytest.raises(AssertionError):
        manta.run(pair, config)
