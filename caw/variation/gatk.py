"""GATK variant calling -- HaplotypeCaller on tumor/normal pairs.
"""
from caw import broad
from caw.utils import file_exists
from caw.distributed.split import IntervalResult
from caw.distributed.transaction import file_transaction
from caw.pipeline import config_utils
from caw.variation import vcfutils

CALLER = "HaplotypeCaller"

def _shared_gatk_call_prep(pair, ref_file, config, region):
    """Shared preparation work for GATK variant calling.
    """
    params = ["-R", ref_file]
    for align_bam in [pair.normal_bam, pair.tumor_bam]:
        params += ["-I", align_bam]
    dbsnp = config_utils.get_reference("dbsnp", config)
    if dbsnp:
        params += ["--dbsnp", dbsnp]
    params += ["-L", region]
    return params

def haplotype_caller(item, config):
    """Call variants with GATK's HaplotypeCaller on one interval of a pair.
    """
    out_file = vcfutils.interval_out_file(CALLER, item, config)
    if not file_exists(out_file):
        ref_file = config_utils.get_reference("genome_file", config)
        params = ["-T", "HaplotypeCaller"] + _shared_gatk_call_prep(item.pair, ref_file, config,
                                                                     item.interval.raw)
        with file_transaction(config, out_file) as tx_out_file:
            params += ["--annotation", "ClippingRankSumTest",
                       "--annotation", "DepthPerSampleHC",
                       "-o", tx_out_file]
            runner = broad.runner_from_config(config)
            runner.new_resources("gatk-haplotype")
            runner.run_gatk(params, data=item.pair, region=item.interval.raw)
    return IntervalResult(item, out_file)
