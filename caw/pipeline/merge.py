"""Handle samples sequenced over multiple runs.

Aligned runs are grouped by (patient, sample). A sample with a single run
only has its BAM renamed to the per-sample name; samples with several runs
have them merged. Both paths produce the same kind of record, so later
stages cannot tell them apart.
"""
import os

from caw import bam
from caw.distributed import multi
from caw.log import logger
from caw.pipeline import config_utils

def _merged_file(sample, config):
    out_dir = config_utils.get_work_dir(config, "Preprocessing", "MergedBam")
    return os.path.join(out_dir, "%s.bam" % sample)

def run_label(records):
    """Stable label for a set of runs, independent of the order they arrived in.
    """
    return "-".join(sorted(str(r.run) for r in records))

def rename_single_bam(group, config):
    """Give the only run of a sample its per-sample name, leaving the content alone.
    """
    (patient, sample), records = group
    assert len(records) == 1, "Expected a single run for %s: %s" % (sample, records)
    record = records[0]
    out_file = bam.rename(record.bam, _merged_file(sample, config))
    return record._replace(files=(out_file,))

def merge_bam_files(group, config):
    """Merge every run of a sample into a single BAM file.
    """
    (patient, sample), records = group
    records = sorted(records, key=lambda r: str(r.run))
    out_file = bam.merge([r.bam for r in records], _merged_file(sample, config), config)
    label = run_label(records)
    logger.info("Merged runs %s of %s" % (label, sample))
    return records[0]._replace(run=label, files=(out_file,))

def classify_and_merge(aligned, config):
    """Collapse per-run aligned records into one record per sample.

    Takes a channel of aligned SampleRecords and returns a channel with
    exactly one SampleRecord per (patient, sample).
    """
    groups = aligned.group_tuple(lambda r: (r.patient, r.sample), name="group_runs")
    single, multiple = groups.partition(lambda g: len(g[1]) == 1, name="classify_runs")
    renamed = single.process(multi.retrying(rename_single_bam, config), "rename_single_bam")
    merged = multiple.process(multi.retrying(merge_bam_files, config), "merge_bam_files")
    return renamed.mix(merged, name="merged_samples")

def reconcile(records, out_files, name_fn):
    """Match records to independently returned output files by sample, never by position.

    Both lists are sorted on the sample id (`name_fn` extracts it from an
    output file name) before pairing them up.
    """
    if len(records) != len(out_files):
        raise ValueError("Expected %s outputs, found %s: %s" % (len(records), len(out_files), out_files))
    records = sorted(records, key=lambda r: r.sample)
    out_files = sorted(out_files, key=lambda f: name_fn(os.path.basename(f)))
    out = []
    for record, out_file in zip(records, out_files):
        if name_fn(os.path.basename(out_file)) != record.sample:
            raise ValueError("Output %s does not match sample %s" % (out_file, record.sample))
        out.append(record._replace(files=(out_file, bam.get_index(out_file))))
    return out

def sample_from_file(suffix):
    """Name function for output files named `<sample><suffix>`.
    """
    def name_fn(fname):
        if not fname.endswith(suffix):
            raise ValueError("Unexpected output file %s, expected a name ending in %s" % (fname, suffix))
        return fname[:-len(suffix)]
    return name_fn
