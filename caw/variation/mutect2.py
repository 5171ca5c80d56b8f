"""Provide support for MuTect2 somatic calling of tumor/normal pairs, via GATK 3.
"""
from caw import broad
from caw.utils import file_exists
from caw.distributed.split import IntervalResult
from caw.distributed.transaction import file_transaction
from caw.pipeline import config_utils
from caw.variation import vcfutils

CALLER = "MuTect2"

def _add_tumor_params(pair):
    return ["-I:tumor", pair.tumor_bam]

def _add_normal_params(pair):
    return ["-I:normal", pair.normal_bam]

def _add_known_params(config):
    params = []
    for key, arg in [("dbsnp", "--dbsnp"), ("cosmic", "--cosmic")]:
        if config_utils.get_reference(key, config):
            params += [arg, config_utils.get_reference(key, config)]
    return params

def mutect2_caller(item, config):
    """Call variants with MuTect2 on one interval of a tumor/normal pair.
    """
    out_file = vcfutils.interval_out_file(CALLER, item, config)
    if not file_exists(out_file):
        ref_file = config_utils.get_reference("genome_file", config)
        with file_transaction(config, out_file) as tx_out_file:
            params = ["-T", "MuTect2", "-R", ref_file]
            params += _add_tumor_params(item.pair) + _add_normal_params(item.pair)
            params += _add_known_params(config)
            params += ["-L", item.interval.raw, "-o", tx_out_file]
            runner = broad.runner_from_config(config)
            runner.new_resources("mutect2")
            runner.run_gatk(params, data=item.pair, region=item.interval.raw)
    return IntervalResult(item, out_file)
