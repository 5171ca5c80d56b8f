"""Perform quality score recalibration with the GATK toolkit.

Corrects read quality scores based on alignment to the reference genome,
using the configured dbSNP and known indel sites.
"""
import os

from caw import bam, broad, utils
from caw.distributed.transaction import file_transaction
from caw.pipeline import config_utils

def _known_sites(config):
    return [config_utils.get_reference(k, config) for k in ["dbsnp", "known_indels"]
            if config_utils.get_reference(k, config)]

def gatk_base_recalibrator(runner, in_bam, ref_file, out_file, known_sites, data=None):
    """Step 1 of GATK recalibration process, producing table of covariates.
    """
    if not utils.file_exists(out_file):
        with file_transaction(runner._config, out_file) as tx_out_file:
            params = ["-T", "BaseRecalibrator",
                      "-o", tx_out_file,
                      "-I", in_bam,
                      "-R", ref_file]
            for known in known_sites:
                params += ["--knownSites", known]
            runner.run_gatk(params, data=data)
    return out_file

def gatk_apply_bqsr(runner, in_bam, ref_file, recal_table, out_file, data=None):
    """Step 2 of GATK recalibration, writing reads with updated quality scores.
    """
    if not utils.file_exists(out_file):
        with file_transaction(runner._config, out_file) as tx_out_file:
            params = ["-T", "PrintReads",
                      "-R", ref_file,
                      "-I", in_bam,
                      "--BQSR", recal_table,
                      "-o", tx_out_file]
            runner.run_gatk(params, data=data)
    return out_file

def recalibrate(record, config):
    """Recalibrate one sample's realigned BAM, returning the indexed result.
    """
    out_dir = config_utils.get_work_dir(config, "Preprocessing", "Recalibrated")
    recal_table = os.path.join(out_dir, "%s.recal.table" % record.sample)
    out_file = os.path.join(out_dir, "%s.recal.bam" % record.sample)
    ref_file = config_utils.get_reference("genome_file", config)
    runner = broad.runner_from_config(config)
    gatk_base_recalibrator(runner, record.bam, ref_file, recal_table, _known_sites(config), record)
    gatk_apply_bqsr(runner, record.bam, ref_file, recal_table, out_file, record)
    return record._replace(files=(out_file, bam.index(out_file, config)))
