"""Retrieve sample information from manifests and record per-stage outputs.

A manifest is a whitespace delimited text file with one line per input.
Two layouts are understood:

  fastq: patient status sample run fastq1 fastq2
  bam:   patient status sample bam bai

where status is 0 for normal and 1 for tumor tissue. Samples are tracked
internally as `<sample>__<status>` so the tissue type travels with the name.
"""
import collections
import os
import threading

from caw import utils
from caw.log import logger
from caw.pipeline.config_utils import ConfigError

STATUS = {"0": "normal", "1": "tumor"}
FIELDS = {"fastq": ["patient", "status", "sample", "run", "fastq1", "fastq2"],
          "bam": ["patient", "status", "sample", "bam", "bai"]}


class SampleRecord(collections.namedtuple("SampleRecord", "patient, sample, run, files")):
    """A sample, or a single run of a sample, with the files that hold its reads.
    """
    __slots__ = ()

    @property
    def status(self):
        return sample_status(self.sample)

    @property
    def bam(self):
        return self.files[0]

    @property
    def bai(self):
        return self.files[1] if len(self.files) > 1 else None


def sample_id(sample, status):
    return "%s__%s" % (sample, status)

def sample_status(sample):
    """Tissue status, normal or tumor, from the suffix of a sample id.
    """
    suffix = sample.rsplit("__", 1)[-1] if "__" in sample else None
    if suffix not in STATUS:
        raise ValueError("Sample %s does not end with a __0 (normal) or __1 (tumor) status"
                         % sample)
    return STATUS[suffix]

def sample_name(sample):
    """Sample name with the status suffix removed.
    """
    sample_status(sample)
    return sample.rsplit("__", 1)[0]

def status_code(sample):
    sample_status(sample)
    return sample.rsplit("__", 1)[1]

# ## Manifest input

def check_manifest(manifest):
    if not manifest or not os.path.isfile(manifest):
        raise ConfigError("Could not find input sample manifest: %s" % manifest)
    return manifest

def organize(manifest, input_format):
    """Lazily read SampleRecords from a manifest in fastq or bam layout.

    Raises ValueError, naming the line, for a wrong number of fields, an
    unknown status, a missing file or (bam layout) a repeated sample.
    """
    if input_format not in FIELDS:
        raise ValueError("Unexpected manifest format %s, expected one of %s"
                         % (input_format, sorted(FIELDS.keys())))
    base_dir = os.path.dirname(os.path.abspath(manifest))
    seen = set([])
    with open(manifest) as in_handle:
        for lineno, line in enumerate(in_handle, 1):
            if not line.strip() or line.startswith("#"):
                continue
            parts = line.split()
            record = _parse_line(parts, input_format, base_dir, manifest, lineno)
            if input_format == "bam":
                if record.sample in seen:
                    raise ValueError("%s line %s: duplicate sample %s"
                                     % (manifest, lineno, record.sample))
                seen.add(record.sample)
            yield record

def _parse_line(parts, input_format, base_dir, manifest, lineno):
    expected = FIELDS[input_format]
    if len(parts) != len(expected):
        raise ValueError("%s line %s: expected %s fields for %s input (%s), found %s"
                         % (manifest, lineno, len(expected), input_format,
                            ", ".join(expected), len(parts)))
    vals = dict(zip(expected, parts))
    if vals["status"] not in STATUS:
        raise ValueError("%s line %s: status must be 0 (normal) or 1 (tumor), found %s"
                         % (manifest, lineno, vals["status"]))
    if input_format == "fastq":
        files = (vals["fastq1"], vals["fastq2"])
    else:
        files = (vals["bam"], vals["bai"])
    files = tuple(utils.get_abspath(f, base_dir) for f in files)
    for fname in files:
        if not os.path.exists(fname):
            raise ValueError("%s line %s: file not found: %s" % (manifest, lineno, fname))
    return SampleRecord(vals["patient"], sample_id(vals["sample"], vals["status"]),
                        vals.get("run"), files)

# ## Per-stage output manifests

class ManifestWriter(object):
    """Record finished samples of a stage in one TSV per patient.

    The output uses the bam manifest layout, so a later run can start from
    it. Files are rewritten on their first write of a run, and appends to
    the same file are serialized.
    """
    def __init__(self, out_dir):
        self.out_dir = utils.safe_makedir(out_dir)
        self._locks = collections.defaultdict(threading.Lock)
        self._started = set([])
        self._guard = threading.Lock()

    def out_file(self, patient):
        return os.path.join(self.out_dir, "%s.tsv" % patient)

    def write(self, record):
        out_file = self.out_file(record.patient)
        with self._guard:
            lock = self._locks[out_file]
        with lock:
            mode = "a" if out_file in self._started else "w"
            self._started.add(out_file)
            with open(out_file, mode) as out_handle:
                out_handle.write("\t".join([record.patient, status_code(record.sample),
                                            sample_name(record.sample),
                                            record.bam, record.bai or ""]) + "\n")
        logger.debug("Recorded %s in %s" % (record.sample, out_file))
        return record
