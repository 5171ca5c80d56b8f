"""Main entry point for tumor/normal cancer analysis pipelines.

Builds a dataflow graph whose shape depends on the requested steps and
runs it to completion:

  samples -> align, merge runs, mark duplicates -> realign per patient
          -> recalibrate -> pair normal and tumor samples of each patient
          -> callers (scattered over intervals, or whole genome) -> merged results

Stages that are not requested get no nodes; their outputs are closed
channels so nothing waits on them.
"""
import collections
import os

from caw import log, utils
from caw.broad import picardrun
from caw.distributed import multi, split
from caw.distributed.channel import Dataflow
from caw.log import logger, DEFAULT_LOG_DIR
from caw.ngsalign import bwa
from caw.pipeline import config_utils, merge, region, run_info
from caw.pipeline.steps import StepGate, INTERVAL_CALLERS
from caw.structural import ascat, manta
from caw.variation import (gatk, mutect, mutect2, realign, recalibrate, strelka2,
                           vardict, vcfutils)

NONREALIGNED_DIR = os.path.join("Preprocessing", "NonRealigned")
RECALIBRATED_DIR = os.path.join("Preprocessing", "Recalibrated")

INTERVAL_FNS = collections.OrderedDict([("MuTect1", mutect.mutect_caller),
                                        ("MuTect2", mutect2.mutect2_caller),
                                        ("VarDict", vardict.run_vardict),
                                        ("HaplotypeCaller", gatk.haplotype_caller)])
GENOME_FNS = collections.OrderedDict([("Strelka", strelka2.run),
                                      ("Manta", manta.run)])

def run_main(config_file, manifest, workdir=None, steps=None, numcores=None, retries=None):
    """Run a tumor/normal analysis, handling command line options.

    Returns the outputs of every active caller. Configuration problems raise
    ConfigError before anything runs; failures during the run raise FlowError.
    """
    workdir = utils.safe_makedir(os.path.abspath(workdir or os.getcwd()))
    config = config_utils.load_system_config(config_file)
    config["dirs"] = {"work": workdir}
    if numcores:
        config["algorithm"]["num_cores"] = int(numcores)
    if retries is not None:
        config["algorithm"]["retries"] = int(retries)
    if config.get("log_dir", None) is None:
        config["log_dir"] = os.path.join(workdir, DEFAULT_LOG_DIR)
    gate = StepGate(steps if steps else config["algorithm"].get("steps"))
    run_info.check_manifest(manifest)
    config_utils.check_references(config, gate)
    intervals = None
    if gate.active_callers(interval=True):
        intervals = region.load_intervals(config_utils.get_reference("intervals", config))
    handler = log.setup_local_logging(config)
    try:
        logger.info("System YAML configuration: %s" % os.path.abspath(config_file))
        logger.info("Sample manifest: %s" % os.path.abspath(manifest))
        flow = Dataflow(config["algorithm"].get("num_cores", 1))
        outputs = build_graph(flow, gate, config, manifest, intervals)
        flow.wait()
        results = []
        for name, ch in outputs.items():
            results.extend(ch)
        logger.info("Finished analysis with %s results in %s" % (len(results), workdir))
        return results
    finally:
        handler.pop_application()
        handler.close()

def build_graph(flow, gate, config, manifest, intervals=None):
    """Wire up the nodes for the active steps, returning caller output channels by name.
    """
    gate.log_plan()
    samples = flow.from_iterable(run_info.organize(manifest, gate.input_format), "organize_samples")
    recalibrated = _preprocess(flow, gate, config, samples)
    return _call_variants(flow, gate, config, recalibrated, intervals)

def _task(fn, config, name=None):
    return multi.retrying(fn, config, name)

# ## Preprocessing

def _preprocess(flow, gate, config, samples):
    """Bring samples to recalibrated BAMs, starting at the requested entry step.
    """
    entry = gate.entry_step
    if entry == "skipPreprocessing":
        logger.info("Inactive: mapping, duplicate marking, realignment and recalibration "
                    "(starting from recalibrated BAMs)")
        return samples
    if entry == "preprocessing":
        aligned = samples.process(_task(bwa.align, config), "bwa_align")
        merged = merge.classify_and_merge(aligned, config)
        marked = merged.process(_task(picardrun.mark_duplicates, config), "mark_duplicates")
        nonrealigned = run_info.ManifestWriter(config_utils.get_work_dir(config, NONREALIGNED_DIR))
        to_realign = marked.map(nonrealigned.write, name="record_nonrealigned")
    else:
        logger.info("Inactive: mapping and duplicate marking (starting from BAMs to realign)")
        to_realign = samples
    patients = to_realign.group_tuple(lambda r: r.patient, name="group_patients")
    realigned = (patients.process(_task(realign.realign_patient, config), "indel_realign")
                 .flat_map(realign.split_realigned, name="reconcile_realigned"))
    recal = realigned.process(_task(recalibrate.recalibrate, config), "recalibrate")
    recalibrated = run_info.ManifestWriter(config_utils.get_work_dir(config, RECALIBRATED_DIR))
    return recal.map(recalibrated.write, name="record_recalibrated")

# ## Variant calling

def _call_variants(flow, gate, config, recalibrated, intervals):
    outputs = collections.OrderedDict()
    pair_callers = [c for c in gate.active_callers() if c != "ascat"]
    consumers = (["pairs"] if pair_callers else []) + (["ascat"] if gate.is_active("ascat") else [])
    if not consumers:
        logger.info("Inactive: variant calling (no callers requested)")
    sample_copies = dict(zip(consumers, recalibrated.into(len(consumers), name="recalibrated_copies")))
    pair_copies = {}
    if pair_callers:
        pairs = vcfutils.pair_by_status(sample_copies["pairs"], "pair_samples")
        pair_copies = dict(zip(pair_callers, pairs.into(len(pair_callers), name="pair_copies")))
    interval_callers = gate.active_callers(interval=True)
    interval_copies = {}
    if interval_callers:
        interval_src = flow.from_iterable(intervals, "intervals")
        interval_copies = dict(zip(interval_callers,
                                   interval_src.into(len(interval_callers), name="interval_copies")))
    for caller in INTERVAL_CALLERS:
        if gate.is_active(caller):
            outputs[caller] = _interval_caller(caller, pair_copies[caller], interval_copies[caller],
                                               len(intervals), config)
        else:
            outputs[caller] = flow.closed(caller)
    for caller, fn in GENOME_FNS.items():
        if gate.is_active(caller):
            outputs[caller] = pair_copies[caller].process(_task(fn, config, caller), caller)
        else:
            outputs[caller] = flow.closed(caller)
    if gate.is_active("ascat"):
        outputs["ascat"] = _ascat(sample_copies["ascat"], config)
    else:
        outputs["ascat"] = flow.closed("ascat")
    return outputs

def _interval_caller(caller, pairs, intervals, num_intervals, config):
    """Scatter pairs over intervals, call each piece and merge the pieces of each pair.
    """
    items, dispatched = split.scatter(pairs, intervals, "%s.scatter" % caller).into(
        2, name="%s.dispatch" % caller)
    results = items.process(_task(INTERVAL_FNS[caller], config, caller), "%s.call" % caller)
    buckets = split.collate(results, lambda key: num_intervals, "%s.collate" % caller,
                            dispatched=dispatched)
    return buckets.process(_task(_concat(caller), config, "%s.concat" % caller), "%s.concat" % caller)

def _concat(caller):
    def concat(bucket, config):
        return vcfutils.concat_variant_files(bucket, caller, config)
    return concat

def _ascat(samples, config):
    counts = samples.process(_task(ascat.allele_count, config), "ascat.allele_count")
    count_pairs = vcfutils.pair_by_status(counts, "ascat.pair_counts")
    converted = count_pairs.process(_task(ascat.convert_allele_counts, config), "ascat.convert")
    return converted.process(_task(ascat.run_ascat, config), "ascat.run")
