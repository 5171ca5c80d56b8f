"""Next-gen alignments with BWA (http://bio-bwa.sourceforge.net/)
"""
import os

from caw import utils
from caw.distributed import resources
from caw.distributed.transaction import file_transaction
from caw.pipeline import config_utils
from caw.pipeline.run_info import sample_name
from caw.provenance import do

def get_rg_info(record):
    """Read group for a run, tying reads back to patient, sample and run.
    """
    return r"@RG\tID:{run}\tPU:{run}\tSM:{sample}\tLB:{sample}\tPL:illumina".format(
        run=record.run, sample=record.sample)

def align(record, config):
    """Align one run of paired fastq files, producing a coordinate sorted BAM.
    """
    out_dir = config_utils.get_work_dir(config, "Preprocessing", "MappedBam")
    out_file = os.path.join(out_dir, "%s_%s.bam" % (record.sample, record.run))
    if not utils.file_exists(out_file):
        ref_file = config_utils.get_reference("bwa_index", config)
        fastq1, fastq2 = record.files
        with file_transaction(config, out_file) as tx_out_file:
            cmd = "{bwa_cmd} | {sort_cmd}".format(
                bwa_cmd=_get_bwa_mem_cmd(config, record, ref_file, fastq1, fastq2),
                sort_cmd=sam_to_sortbam_cl(config, tx_out_file))
            do.run(cmd, "bwa mem alignment of %s run %s" % (sample_name(record.sample), record.run),
                   record, checks=[do.file_nonempty(tx_out_file)])
    return record._replace(files=(out_file,))

def _get_bwa_mem_cmd(config, record, ref_file, fastq1, fastq2=""):
    bwa = config_utils.get_program("bwa", config)
    num_cores = resources.get_cores("bwa", config)
    bwa_resources = config_utils.get_resources("bwa", config)
    bwa_params = (" ".join([str(x) for x in bwa_resources.get("options", [])])
                  if "options" in bwa_resources else "")
    rg_info = get_rg_info(record)
    return ("{bwa} mem -M -t {num_cores} {bwa_params} -R '{rg_info}' "
            "-v 1 {ref_file} {fastq1} {fastq2}").format(**locals())

def sam_to_sortbam_cl(config, tx_out_file):
    """Convert to sorted BAM output.
    """
    samtools = config_utils.get_program("samtools", config)
    cores = resources.get_cores("samtools", config)
    mem = resources.get_memory("samtools", config, "1G")
    tmp_file = "%s-sorttmp" % utils.splitext_plus(tx_out_file)[0]
    return ("{samtools} sort -@ {cores} -m {mem} "
            "-T {tmp_file} -o {tx_out_file} /dev/stdin".format(**locals()))
