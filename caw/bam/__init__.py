"""Functionality to index, merge and move aligned BAM files.
"""
import os

from caw import utils
from caw.distributed.transaction import file_transaction
from caw.distributed import resources
from caw.pipeline import config_utils
from caw.provenance import do

def is_bam(in_file):
    return os.path.splitext(in_file)[-1].lower() == ".bam"

def index(in_bam, config):
    """Index a BAM file, skipping if index present.
    """
    assert is_bam(in_bam), "%s in not a BAM file" % in_bam
    index_file = "%s.bai" % in_bam
    alt_index_file = "%s.bai" % os.path.splitext(in_bam)[0]
    if utils.file_exists(index_file):
        return index_file
    elif utils.file_exists(alt_index_file):
        return alt_index_file
    samtools = config_utils.get_program("samtools", config)
    num_cores = resources.get_cores("samtools", config)
    with file_transaction(config, index_file) as tx_index_file:
        cmd = "{samtools} index -@ {num_cores} {in_bam} {tx_index_file}"
        do.run(cmd.format(**locals()), "Index BAM file: %s" % os.path.basename(in_bam))
    return index_file

def merge(bamfiles, out_bam, config):
    """Merge BAM files from multiple runs of a sample with samtools.
    """
    assert all(is_bam(x) for x in bamfiles), ("Not all of the files to merge are "
                                              "BAM files: %s " % (bamfiles))
    if utils.file_exists(out_bam):
        return out_bam
    samtools = config_utils.get_program("samtools", config)
    num_cores = resources.get_cores("samtools", config)
    with file_transaction(config, out_bam) as tx_out_bam:
        cmd = "{samtools} merge -@ {num_cores} {tx_out_bam} " + " ".join(bamfiles)
        do.run(cmd.format(**locals()), "Merge %s into %s." % (", ".join(bamfiles), out_bam))
    index(out_bam, config)
    return out_bam

def rename(in_bam, out_bam):
    """Give a BAM file and its index a new name, without touching the content.

    The new name is a symlink, so the original stays in place for reruns.
    """
    if in_bam != out_bam and not utils.file_exists(out_bam):
        utils.safe_makedir(os.path.dirname(out_bam))
        utils.symlink_plus(in_bam, out_bam)
    return out_bam

def get_index(in_bam):
    for fname in ["%s.bai" % in_bam, "%s.bai" % os.path.splitext(in_bam)[0]]:
        if os.path.exists(fname):
            return fname
    return "%s.bai" % in_bam
