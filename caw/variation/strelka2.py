"""Somatic calling with Strelka2: https://github.com/illumina/strelka
"""
import os

from caw import utils
from caw.distributed import resources
from caw.distributed.transaction import file_transaction
from caw.pipeline import config_utils
from caw.provenance import do
from caw.variation import vcfutils

CALLER = "Strelka"
OUTPUTS = [("somatic_snvs.vcf.gz", "somatic.snvs.vcf.gz"),
           ("somatic_indels.vcf.gz", "somatic.indels.vcf.gz")]

def _get_out_files(work_dir):
    return [(suffix, os.path.join(work_dir, "results", "variants", base)) for suffix, base in OUTPUTS]

def run(pair, config):
    """Run Strelka2 somatic calling over the whole genome for a tumor/normal pair.
    """
    work_dir = "%s-work" % vcfutils.caller_out_prefix(CALLER, pair, config)
    out_files = _get_out_files(work_dir)
    if not all(utils.file_exists(f) for _, f in out_files):
        with file_transaction(config, work_dir) as tx_work_dir:
            workflow_file = _configure_somatic(pair, config, tx_work_dir)
            _run_workflow(pair, config, workflow_file, tx_work_dir)
    for _, fname in out_files:
        assert utils.file_exists(fname), "Strelka2 finished without output file %s" % fname
    return vcfutils.copy_caller_outputs(CALLER, pair, out_files, config)

def _configure_somatic(pair, config, tx_work_dir):
    utils.safe_makedir(tx_work_dir)
    cmd = [config_utils.get_program("configureStrelkaSomaticWorkflow.py", config),
           "--referenceFasta=%s" % config_utils.get_reference("genome_file", config),
           "--runDir=%s" % tx_work_dir,
           "--normalBam=%s" % pair.normal_bam, "--tumorBam=%s" % pair.tumor_bam]
    cmd += [str(x) for x in config_utils.get_resources("strelka", config).get("options", [])]
    do.run(cmd, "Configure Strelka2 somatic calling: %s" % pair.tumor_name)
    return os.path.join(tx_work_dir, "runWorkflow.py")

def _run_workflow(pair, config, workflow_file, work_dir):
    """Run Strelka2 analysis inside prepared workflow directory.
    """
    utils.remove_safe(os.path.join(work_dir, "workspace"))
    cmd = [workflow_file, "-m", "local", "-j", resources.get_cores("strelka", config), "--quiet"]
    do.run(cmd, "Run Strelka2", pair)
    utils.remove_safe(os.path.join(work_dir, "workspace"))
