"""Copy number and purity estimation of tumor/normal pairs with ASCAT.

https://github.com/Crick-CancerGenomics/ascat

Allele counts are collected per sample at known SNP loci with alleleCounter.
Normal and tumor counts of a patient are then converted into BAF and LogR
tables and segmented by ASCAT.
"""
import collections
import glob
import os

from caw import utils
from caw.distributed.transaction import file_transaction, tx_tmpdir
from caw.log import logger
from caw.pipeline import config_utils
from caw.provenance import do
from caw.variation import vcfutils

CALLER = "ascat"
OUT_DIR = "Ascat"

AscatInput = collections.namedtuple("AscatInput", ["pair", "tumor_baf", "tumor_logr",
                                                   "normal_baf", "normal_logr"])

def _out_dir(config, patient):
    return config_utils.get_work_dir(config, "VariantCalling", OUT_DIR, patient)

def _pair_dir(config, pair):
    """Outputs of one pair; a normal shared by several tumors gets tables in each.
    """
    return config_utils.get_work_dir(config, "VariantCalling", OUT_DIR, pair.patient,
                                     "%s_vs_%s" % (pair.tumor_name, pair.normal_name))

def _get_gender(config):
    gender = (config.get("algorithm") or {}).get("gender", "XX")
    if gender not in ["XX", "XY"]:
        raise ValueError("Unexpected gender for ASCAT: %s, expected XX or XY" % gender)
    return gender

def allele_count(record, config):
    """Count alleles at known SNP loci in one sample with alleleCounter.

    Returns the record with its counts file in place of the BAM, ready for pairing.
    """
    out_file = os.path.join(_out_dir(config, record.patient), "%s.allelecount" % record.sample)
    if not utils.file_exists(out_file):
        allele_counter = config_utils.get_program("alleleCounter", config)
        loci = config_utils.get_reference("ac_loci", config)
        ref_file = config_utils.get_reference("genome_file", config)
        with file_transaction(config, out_file) as tx_out_file:
            cmd = [allele_counter, "-l", loci, "-r", ref_file, "-b", record.bam, "-o", tx_out_file]
            do.run(cmd, "alleleCounter", record)
    return record._replace(files=(out_file,))

def convert_allele_counts(pair, config):
    """Create BAF and LogR tables for a pair from its allele counts.

    `pair` holds the counts files of the normal and tumor sample.
    """
    out_dir = _pair_dir(config, pair)
    names = dict(tumor_baf="%s.BAF" % pair.tumor_name, tumor_logr="%s.LogR" % pair.tumor_name,
                 normal_baf="%s.BAF" % pair.normal_name, normal_logr="%s.LogR" % pair.normal_name)
    out_files = dict((k, os.path.join(out_dir, v)) for k, v in names.items())
    if not all(utils.file_exists(f) for f in out_files.values()):
        script = config_utils.get_program("convertAlleleCounts.r", config)
        gender = _get_gender(config)
        with tx_tmpdir(config) as tmp_dir:
            cmd = ("cd {tmp_dir} && {script} {pair.tumor_name} {pair.tumor_bam} "
                   "{pair.normal_name} {pair.normal_bam} {gender}")
            do.run(cmd.format(**locals()), "Convert allele counts for ASCAT", pair)
            for key, fname in names.items():
                utils.move_safe(os.path.join(tmp_dir, fname), out_files[key])
    return AscatInput(pair, **out_files)

def run_ascat(inputs, config):
    """Run ASCAT segmentation on the converted tables of a pair.
    """
    pair = inputs.pair
    out_dir = _pair_dir(config, pair)
    done_file = os.path.join(out_dir, "%s.cnvs.txt" % pair.tumor_name)
    if not utils.file_exists(done_file):
        script = config_utils.get_program("run_ascat.r", config)
        gender = _get_gender(config)
        with tx_tmpdir(config) as tmp_dir:
            cmd = ("cd {tmp_dir} && {script} {inputs.tumor_baf} {inputs.tumor_logr} "
                   "{inputs.normal_baf} {inputs.normal_logr} {pair.tumor_name} {gender}")
            do.run(cmd.format(**locals()), "ASCAT segmentation", pair)
            for fname in os.listdir(tmp_dir):
                utils.move_safe(os.path.join(tmp_dir, fname), os.path.join(out_dir, fname))
    out_files = sorted(f for f in glob.glob(os.path.join(out_dir, "%s*" % pair.tumor_name))
                       if not f.endswith((".BAF", ".LogR", ".allelecount")))
    logger.info("ASCAT finished for %s vs %s" % (pair.tumor_name, pair.normal_name))
    return vcfutils.CallerOutput(CALLER, pair.key, out_files)
