"""Structural variant detection with the Manta caller from Illumina.

https://github.com/Illumina/manta
"""
import os

from caw import utils
from caw.distributed import resources
from caw.distributed.transaction import file_transaction
from caw.pipeline import config_utils
from caw.provenance import do
from caw.variation import vcfutils

CALLER = "Manta"
OUTPUTS = [("somaticSV.vcf.gz", "somaticSV.vcf.gz"),
           ("diploidSV.vcf.gz", "diploidSV.vcf.gz"),
           ("candidateSV.vcf.gz", "candidateSV.vcf.gz"),
           ("candidateSmallIndels.vcf.gz", "candidateSmallIndels.vcf.gz")]

def _get_out_files(work_dir):
    """Retrieve manta output variant files for a tumor/normal analysis.
    """
    return [(suffix, os.path.join(work_dir, "results", "variants", base)) for suffix, base in OUTPUTS]

def run(pair, config):
    """Perform detection of structural variations with Manta.
    """
    work_dir = "%s-work" % vcfutils.caller_out_prefix(CALLER, pair, config)
    out_files = _get_out_files(work_dir)
    if not utils.file_exists(out_files[0][1]):
        with file_transaction(config, work_dir) as tx_work_dir:
            utils.safe_makedir(tx_work_dir)
            tx_workflow_file = _prep_config(pair, config, tx_work_dir)
            _run_workflow(pair, config, tx_workflow_file, tx_work_dir)
    assert utils.file_exists(out_files[0][1]), "Manta finished without output file %s" % out_files[0][1]
    return vcfutils.copy_caller_outputs(CALLER, pair,
                                        [(s, f) for s, f in out_files if utils.file_exists(f)], config)

def _run_workflow(pair, config, workflow_file, work_dir):
    """Run manta analysis inside prepared workflow directory.
    """
    utils.remove_safe(os.path.join(work_dir, "workspace"))
    cmd = [workflow_file, "-m", "local", "-j", resources.get_cores("manta", config)]
    do.run(cmd, "Run manta SV analysis", pair)
    utils.remove_safe(os.path.join(work_dir, "workspace"))

def _prep_config(pair, config, work_dir):
    """Run initial configuration, generating a run directory for Manta.
    """
    out_file = os.path.join(work_dir, "runWorkflow.py")
    if not utils.file_exists(out_file):
        cmd = [config_utils.get_program("configManta.py", config)]
        cmd += ["--normalBam=%s" % pair.normal_bam, "--tumorBam=%s" % pair.tumor_bam]
        cmd += ["--referenceFasta=%s" % config_utils.get_reference("genome_file", config),
                "--runDir=%s" % work_dir]
        manta_resources = config_utils.get_resources("manta", config)
        if manta_resources.get("options"):
            cmd += [str(x) for x in manta_resources["options"]]
        do.run(cmd, "Configure manta SV analysis")
    return out_file
