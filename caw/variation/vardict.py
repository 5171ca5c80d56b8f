"""Sensitive variant calling using VarDict.

Defaults to using the faster, equally sensitive Java port:

https://github.com/AstraZeneca-NGS/VarDictJava
"""
from caw.utils import file_exists
from caw.distributed.split import IntervalResult
from caw.distributed.transaction import file_transaction
from caw.pipeline import config_utils
from caw.provenance import do
from caw.variation import vcfutils

CALLER = "VarDict"

def _vardict_options_from_config(config, region):
    """Region to call in and the allele frequency threshold.
    """
    af = (config.get("algorithm") or {}).get("vardict_af", 0.01)
    opts = ["-f %s" % af, "-R %s" % region]
    var2vcf_opts = ["-f %s" % af]
    return " ".join(opts), " ".join(var2vcf_opts)

def _get_jvm_opts(config):
    """Retrieve JVM options when running the Java version of VarDict.
    """
    resources = config_utils.get_resources("vardict", config)
    jvm_opts = config_utils.adjust_opts(resources.get("jvm_opts", ["-Xms750m", "-Xmx4g"]), config)
    return "export VAR_DICT_OPTS='%s' && " % " ".join(jvm_opts)

def run_vardict(item, config):
    """Run VarDict paired tumor/normal calling on one interval.
    """
    out_file = vcfutils.interval_out_file(CALLER, item, config)
    if not file_exists(out_file):
        paired = item.pair
        ref_file = config_utils.get_reference("genome_file", config)
        vardict = config_utils.get_program("vardict", config, "vardict-java")
        testsomatic = config_utils.get_program("testsomatic.R", config)
        var2vcf = config_utils.get_program("var2vcf_paired.pl", config)
        opts, var2vcf_opts = _vardict_options_from_config(config, item.interval.raw)
        jvm_opts = _get_jvm_opts(config)
        with file_transaction(config, out_file) as tx_out_file:
            cmd = ("{jvm_opts}{vardict} -G {ref_file} "
                   "-N {paired.tumor_name} -b \"{paired.tumor_bam}|{paired.normal_bam}\" {opts} "
                   "| {testsomatic} "
                   "| {var2vcf} -P 0.9 -m 4.25 {var2vcf_opts} "
                   "-N \"{paired.tumor_name}|{paired.normal_name}\" "
                   "> {tx_out_file}")
            do.run(cmd.format(**locals()), "Genotyping with VarDict: Inference", paired,
                   region=item.interval.raw)
    return IntervalResult(item, out_file)
