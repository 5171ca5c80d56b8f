"""Utilities for tumor/normal pairing and for manipulating variant files in VCF format.
"""
import collections
import os

from caw import utils
from caw.distributed.multi import run_multicore
from caw.distributed.split import CollationKey
from caw.distributed.transaction import file_transaction
from caw.log import logger
from caw.pipeline import config_utils
from caw.pipeline.run_info import sample_status
from caw.provenance import do

# ## Tumor/normal paired cancer analyses

class BamPair(collections.namedtuple("BamPair", ["patient", "normal_name", "normal_bam",
                                                 "tumor_name", "tumor_bam"])):
    """A normal and a tumor sample of the same patient, with their files.
    """
    __slots__ = ()

    @property
    def key(self):
        return CollationKey(self.patient, self.normal_name, self.tumor_name)

# Output of a caller for one pair: the files it produced
CallerOutput = collections.namedtuple("CallerOutput", ["caller", "key", "out_files"])

def make_pair(normal, tumor):
    """Pair a normal and a tumor record, refusing samples from different patients.
    """
    assert sample_status(normal.sample) == "normal", normal
    assert sample_status(tumor.sample) == "tumor", tumor
    if normal.patient != tumor.patient:
        raise ValueError("Cannot pair samples from different patients: %s (%s) and %s (%s)"
                         % (normal.sample, normal.patient, tumor.sample, tumor.patient))
    return BamPair(normal.patient, normal.sample, normal.bam, tumor.sample, tumor.bam)

def pair_by_status(records, name):
    """Pair every normal with every tumor sample of the same patient.

    Takes a channel of per-sample records and returns a channel of BamPairs.
    A patient with one normal and k tumors gives k pairs; samples of
    different patients are never paired.
    """
    normals, tumors = records.partition(lambda r: sample_status(r.sample) == "normal",
                                        name=name + ".status")
    joined = normals.combine(tumors, by=lambda r: r.patient, name=name + ".join")
    return joined.map(lambda x: make_pair(*x), name=name)

def interval_out_file(caller, item, config, ext=".vcf"):
    """Output file for a caller on one interval of one pair.
    """
    pair = item.pair
    out_dir = config_utils.get_work_dir(config, "VariantCalling", caller, pair.patient, "intervals")
    return os.path.join(out_dir, "%s_%s_vs_%s_%s%s" % (caller, pair.tumor_name, pair.normal_name,
                                                       item.interval.safe, ext))

def caller_out_dir(caller, pair, config):
    return config_utils.get_work_dir(config, "VariantCalling", caller, pair.patient)

def caller_out_prefix(caller, pair, config):
    return os.path.join(caller_out_dir(caller, pair, config),
                        "%s_%s_vs_%s" % (caller, pair.tumor_name, pair.normal_name))

# ## Merging of interval results

def concat_variant_files(bucket, caller, config):
    """Concatenate the interval VCFs of one pair into a single bgzipped, indexed VCF.
    """
    pair = bucket.pair
    out_file = caller_out_prefix(caller, pair, config) + ".vcf.gz"
    if not utils.file_exists(out_file):
        ready_files = run_multicore(p_bgzip_and_index, [[x, config] for x in bucket.out_files], config)
        input_file_list = "%s-files.list" % utils.splitext_plus(out_file)[0]
        with open(input_file_list, "w") as out_handle:
            for fname in ready_files:
                out_handle.write(fname + "\n")
        _run_concat_variant_files_bcftools(input_file_list, out_file, config)
    logger.info("%s: merged %s intervals for %s vs %s" % (caller, len(bucket.results),
                                                        pair.tumor_name, pair.normal_name))
    return CallerOutput(caller, bucket.key, [out_file])

def _run_concat_variant_files_bcftools(in_list, out_file, config):
    """Concatenate variant files using bcftools concat.
    """
    if not utils.file_exists(out_file):
        with file_transaction(config, out_file) as tx_out_file:
            bcftools = config_utils.get_program("bcftools", config)
            output_type = "z" if out_file.endswith(".gz") else "v"
            cmd = "{bcftools} concat --allow-overlaps -O {output_type} --file-list {in_list} -o {tx_out_file}"
            do.run(cmd.format(**locals()), "bcftools concat variants")
    if out_file.endswith(".gz"):
        tabix_index(out_file, config)
    return out_file

def bgzip_and_index(in_file, config=None):
    """bgzip and tabix index a VCF file.
    """
    if config is None:
        config = {}
    out_file = in_file if in_file.endswith(".gz") else in_file + ".gz"
    if not utils.file_exists(out_file):
        assert os.path.exists(in_file), "Input file %s not found" % in_file
        with file_transaction(config, out_file) as tx_out_file:
            bgzip = config_utils.get_program("bgzip", config)
            cmd = "{bgzip} -c {in_file} > {tx_out_file}"
            do.run(cmd.format(**locals()), "bgzip %s" % os.path.basename(in_file))
    tabix_index(out_file, config)
    return out_file

def p_bgzip_and_index(in_file, config):
    """Parallel-aware bgzip and indexing
    """
    return [bgzip_and_index(in_file, config)]

def tabix_index(in_file, config, preset="vcf"):
    """Index a file using tabix.
    """
    out_file = in_file + ".tbi"
    if not utils.file_exists(out_file):
        tabix = config_utils.get_program("tabix", config)
        cmd = "{tabix} -f -p {preset} {in_file}"
        do.run(cmd.format(**locals()), "tabix index %s" % os.path.basename(in_file))
    return out_file

def copy_caller_outputs(caller, pair, orig_files, config):
    """Copy final outputs of a whole genome caller into its per-patient directory.
    """
    prefix = caller_out_prefix(caller, pair, config)
    out = []
    for suffix, orig_file in orig_files:
        out_file = "%s_%s" % (prefix, suffix)
        utils.copy_plus(orig_file, out_file)
        out.append(out_file)
    return CallerOutput(caller, pair.key, out)
