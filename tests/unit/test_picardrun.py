import os

import pytest

from caw.broad import picardrun
from tests.unit.conftest import record


@pytest.fixture
def mock_run(mocker):
    yield mocker.patch('caw.provenance.do.run')


def test_mark_duplicates(config, mock_run):
    rec = record('P1', 'n', '0', files=('/w/MergedBam/n__0.bam',))
    out = picardrun.mark_duplicates(rec, config)
    out_dir = os.path.join(config['dirs']['work'], 'Preprocessing', 'NonRealigned')
    assert out.files == (os.path.join(out_dir, 'n__0.md.bam'), os.path.join(out_dir, 'n__0.md.bam.bai'))
    picard_cmd = mock_run.call_args_list[0][0][0]
    assert picard_cmd[0] == 'picard'
    assert 'MarkDuplicates' in picard_cmd
    assert 'INPUT=/w/MergedBam/n__0.bam' in picard_cmd
    assert 'REMOVE_DUPLICATES=false' in picard_cmd
    metrics = [x for x in picard_cmd if x.startswith('METRICS_FILE=')]
    assert metrics[0].endswith('n__0.bam.metrics')


def test_mark_duplicates_output_names(config, mock_run):
    dup_bam, dup_metrics = picardrun.picard_mark_duplicates(
        picardrun.broad.runner_from_config(config), '/w/in.bam', '/out', remove_dups=True)
    assert (dup_bam, dup_metrics) == ('/out/in.md.bam', '/out/in.bam.metrics')
    assert 'REMOVE_DUPLICATES=true' in mock_run.call_args[0][0]
