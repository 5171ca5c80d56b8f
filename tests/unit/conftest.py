import pytest

from caw.distributed.channel import Dataflow
from caw.pipeline.run_info import SampleRecord
from caw.pipeline.region import make_interval


def record(patient, sample, status, run=None, files=None):
    """SampleRecord with made up file names"""
    sample_id = '%s__%s' % (sample, status)
    files = files or ('/data/%s.bam' % sample, '/data/%s.bam.bai' % sample)
    return SampleRecord(patient, sample_id, run, tuple(files))


def intervals(*raws):
    return [make_interval(raw, i) for i, raw in enumerate(raws)]


def drain(flow, *channels):
    """Run a dataflow to completion, returning the tokens left on each channel"""
    flow.wait()
    out = [list(ch) for ch in channels]
    if len(out) == 1:
        return out[0]
    return out


@pytest.fixture
def flow():
    return Dataflow(cores=4)
