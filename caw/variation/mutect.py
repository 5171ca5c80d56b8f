"""Provide support for MuTect 1 somatic calling of tumor/normal pairs."""
import os

from caw import broad
from caw.utils import file_exists
from caw.distributed.split import IntervalResult
from caw.distributed.transaction import file_transaction
from caw.pipeline import config_utils
from caw.variation import vcfutils

CALLER = "MuTect1"

def _mutect_call_prep(pair, ref_file, config, region):
    """Preparation work for MuTect.
    """
    params = ["-R", ref_file, "-T", "MuTect", "-U", "ALLOW_N_CIGAR_READS"]
    params += ["--read_filter", "NotPrimaryAlignment"]
    params += ["-I:tumor", pair.tumor_bam]
    params += ["--tumor_sample_name", pair.tumor_name]
    params += ["-I:normal", pair.normal_bam]
    params += ["--normal_sample_name", pair.normal_name]
    for key, arg in [("dbsnp", "--dbsnp"), ("cosmic", "--cosmic")]:
        if config_utils.get_reference(key, config):
            params += [arg, config_utils.get_reference(key, config)]
    params += ["-L", region]
    return params

def mutect_caller(item, config):
    """Run MuTect on one interval of a tumor/normal pair.
    """
    out_file = vcfutils.interval_out_file(CALLER, item, config)
    if not file_exists(out_file):
        ref_file = config_utils.get_reference("genome_file", config)
        params = _mutect_call_prep(item.pair, ref_file, config, item.interval.raw)
        stats_file = "%s.call_stats.txt" % os.path.splitext(out_file)[0]
        with file_transaction(config, out_file, stats_file) as (tx_out_file, tx_stats_file):
            params += ["--vcf", tx_out_file, "--out", tx_stats_file]
            broad.runner_from_config(config).run_mutect(params, data=item.pair,
                                                        region=item.interval.raw)
    return IntervalResult(item, out_file)
