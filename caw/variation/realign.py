"""Perform realignment of BAM files around indels using the GATK toolkit.

All samples of a patient are realigned jointly so normal and tumor share
the same realigned intervals. IndelRealigner writes one output per input
with `-nWayOut`; the outputs are matched back to their samples by name.
"""
import collections
import glob
import os

from caw import broad, utils
from caw.distributed.transaction import file_transaction, tx_tmpdir
from caw.log import logger
from caw.pipeline import config_utils, merge

REALIGN_SUFFIX = ".real.bam"

RealignedGroup = collections.namedtuple("RealignedGroup", "patient, records, out_files")

def _known_indels(config):
    return [config_utils.get_reference(k, config) for k in ["known_indels", "dbsnp"]
            if config_utils.get_reference(k, config)]

def gatk_realigner_targets(runner, align_bams, ref_file, out_file, config, known_vrns=None):
    """Generate a list of interval regions for realignment around indels.
    """
    # check only for file existence; interval files can be empty after running
    # on small chromosomes, so don't rerun in those cases
    if not os.path.exists(out_file):
        with file_transaction(config, out_file) as tx_out_file:
            params = ["-T", "RealignerTargetCreator",
                      "-R", ref_file,
                      "-o", tx_out_file,
                      "-l", "INFO"]
            for align_bam in align_bams:
                params += ["-I", align_bam]
            for known in known_vrns or []:
                params += ["--known", known]
            runner.run_gatk(params)
    return out_file

def gatk_indel_realignment(runner, align_bams, ref_file, intervals, out_map,
                           known_vrns=None):
    """Realign all inputs together, writing outputs named in the `-nWayOut` map file.
    """
    params = ["-T", "IndelRealigner",
              "-R", ref_file,
              "-targetIntervals", intervals,
              "-nWayOut", out_map]
    for align_bam in align_bams:
        params += ["-I", align_bam]
    for known in known_vrns or []:
        params += ["-known", known]
    runner.run_gatk(params)

def realign_patient(group, config):
    """Jointly realign the samples of one patient.
    """
    patient, records = group
    names = [os.path.basename(r.bam) for r in records]
    if len(set(names)) != len(names):
        raise ValueError("Input BAMs of %s need distinct file names for joint realignment: %s"
                         % (patient, ", ".join(r.bam for r in records)))
    out_dir = config_utils.get_work_dir(config, "Preprocessing", "Realigned")
    expected = [os.path.join(out_dir, "%s%s" % (r.sample, REALIGN_SUFFIX)) for r in records]
    if not all(utils.file_exists(f) for f in expected):
        runner = broad.runner_from_config(config)
        ref_file = config_utils.get_reference("genome_file", config)
        known = _known_indels(config)
        align_bams = [r.bam for r in records]
        intervals = gatk_realigner_targets(runner, align_bams, ref_file,
                                           os.path.join(out_dir, "%s.intervals" % patient),
                                           config, known)
        with tx_tmpdir(config) as tx_dir:
            out_map = os.path.join(tx_dir, "%s.realign.map" % patient)
            with open(out_map, "w") as out_handle:
                for record in records:
                    out_handle.write("%s\t%s\n" % (os.path.basename(record.bam),
                                                   os.path.join(tx_dir, record.sample + REALIGN_SUFFIX)))
            gatk_indel_realignment(runner, align_bams, ref_file, intervals, out_map, known)
            for tx_file in glob.glob(os.path.join(tx_dir, "*%s" % REALIGN_SUFFIX)):
                _move_realigned(tx_file, out_dir)
    out_files = glob.glob(os.path.join(out_dir, "*%s" % REALIGN_SUFFIX))
    out_files = [f for f in out_files if os.path.basename(f)[:-len(REALIGN_SUFFIX)]
                 in set(r.sample for r in records)]
    logger.debug("Realigned %s samples of %s" % (len(out_files), patient))
    return RealignedGroup(patient, records, out_files)

def _move_realigned(tx_file, out_dir):
    out_file = os.path.join(out_dir, os.path.basename(tx_file))
    utils.move_safe(tx_file, out_file)
    for tx_idx, out_idx in [(tx_file + ".bai", out_file + ".bai"),
                            (os.path.splitext(tx_file)[0] + ".bai", os.path.splitext(out_file)[0] + ".bai")]:
        if os.path.exists(tx_idx):
            utils.move_safe(tx_idx, out_idx)

def split_realigned(realigned):
    """Per sample records for a realigned patient, each matched to its own output.
    """
    return merge.reconcile(realigned.records, realigned.out_files,
                           merge.sample_from_file(REALIGN_SUFFIX))
