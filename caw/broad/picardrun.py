"""Convenience functions for running common Picard utilities.
"""
import os

from caw import bam, broad
from caw.distributed.transaction import file_transaction, tx_tmpdir
from caw.pipeline import config_utils
from caw.utils import file_exists


def picard_mark_duplicates(picard, align_bam, out_dir=None, data=None, remove_dups=False):
    """Mark duplicate reads, writing a metrics file next to the output BAM.
    """
    base, ext = os.path.splitext(os.path.basename(align_bam))
    out_dir = out_dir or os.path.dirname(align_bam)
    dup_bam = os.path.join(out_dir, "%s.md%s" % (base, ext))
    dup_metrics = os.path.join(out_dir, "%s.bam.metrics" % base)
    if not file_exists(dup_bam):
        with tx_tmpdir(picard._config) as tmp_dir:
            with file_transaction(picard._config, dup_bam, dup_metrics) as (tx_dup_bam, tx_dup_metrics):
                opts = [("INPUT", align_bam),
                        ("OUTPUT", tx_dup_bam),
                        ("TMP_DIR", tmp_dir),
                        ("ASSUME_SORTED", "true"),
                        ("REMOVE_DUPLICATES", "true" if remove_dups else "false"),
                        ("METRICS_FILE", tx_dup_metrics)]
                picard.run("MarkDuplicates", opts, data)
    return dup_bam, dup_metrics

def mark_duplicates(record, config):
    """Mark duplicates in a merged sample BAM and index the result.
    """
    picard = broad.runner_from_config(config)
    out_dir = config_utils.get_work_dir(config, "Preprocessing", "NonRealigned")
    dup_bam, _ = picard_mark_duplicates(picard, record.bam, out_dir, record)
    return record._replace(files=(dup_bam, bam.index(dup_bam, config)))
