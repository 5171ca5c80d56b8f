"""Work with Broad's Java libraries from Python.

  Picard -- BAM manipulation and analysis library.
  GATK 3 -- Realignment, recalibration and variant calling.
  MuTect 1 -- Somatic point mutation caller built on GATK.

Each program is found from its `resources` entry in the system
configuration: a `jar` file, a `dir` of jars, or a wrapper `cmd` (bioconda
style) that takes JVM options before the program arguments.
"""
import os

from caw.distributed.transaction import tx_tmpdir
from caw.pipeline import config_utils
from caw.provenance import do

DEFAULT_JVM_OPTS = ["-Xms750m", "-Xmx2g"]
JARS = {"gatk": "GenomeAnalysisTK", "mutect": "muTect", "picard": "picard"}
WRAPPERS = {"gatk": "gatk3", "mutect": "mutect", "picard": "picard"}

def get_default_jvm_opts(tmp_dir=None):
    """Retrieve default JVM tuning options

    Avoids issues with multiple spun up Java processes running into out of memory errors.
    """
    opts = ["-XX:+UseSerialGC"]
    if tmp_dir:
        opts.append("-Djava.io.tmpdir=%s" % tmp_dir)
    return opts

class BroadRunner:
    """Simplify running Broad commandline tools.
    """
    def __init__(self, config):
        self._config = config
        self._jvm_opts = config_utils.get_resources("gatk", config).get("jvm_opts", DEFAULT_JVM_OPTS)

    def new_resources(self, program):
        """Set new resource usage for the given program.
        This allows customization of memory usage for particular sub-programs
        of GATK like HaplotypeCaller.
        """
        resources = config_utils.get_resources(program, self._config)
        if resources.get("jvm_opts"):
            self._jvm_opts = resources.get("jvm_opts")

    def _jvm(self, program, tmp_dir=None):
        if program == "gatk":
            jvm_opts = self._jvm_opts
        else:
            jvm_opts = config_utils.get_resources(program, self._config).get("jvm_opts") or self._jvm_opts
        return config_utils.adjust_opts(list(jvm_opts), self._config) + get_default_jvm_opts(tmp_dir)

    def _base_cmd(self, program, tmp_dir=None):
        """Java or wrapper command line for a program, before its arguments.
        """
        jar = self._get_jar(program)
        jvm_opts = self._jvm(program, tmp_dir)
        if jar:
            return ["java"] + jvm_opts + ["-jar", jar]
        else:
            return [config_utils.get_program(program, self._config, WRAPPERS[program])] + jvm_opts

    def cl_picard(self, command, options, tmp_dir=None):
        """Prepare a Picard commandline.
        """
        options = ["%s=%s" % (x, y) for x, y in options]
        options.append("VALIDATION_STRINGENCY=SILENT")
        return self._base_cmd("picard", tmp_dir) + [command] + options

    def run(self, command, options, data=None):
        """Run a Picard command with the provided option pairs.
        """
        with tx_tmpdir(self._config) as tmp_dir:
            cl = self.cl_picard(command, options, tmp_dir)
            do.run(cl, "Picard {0}".format(command), data)

    def cl_gatk(self, params, tmp_dir):
        cores = (self._config.get("algorithm") or {}).get("num_cores", 1)
        params = list(params)
        prog = params[params.index("-T") + 1]
        if prog == "BaseRecalibrator" and cores and int(cores) > 1:
            params.extend(["-nct", str(cores)])
        params.extend(["-U", "LENIENT_VCF_PROCESSING", "--read_filter", "BadCigar",
                       "--read_filter", "NotPrimaryAlignment"])
        return self._base_cmd("gatk", tmp_dir) + [str(x) for x in params]

    def run_gatk(self, params, tmp_dir=None, log_error=True, data=None, region=None):
        """Top level interface to running a GATK command.
        """
        with tx_tmpdir(self._config) as local_tmp_dir:
            if tmp_dir is None:
                tmp_dir = local_tmp_dir
            cl = self.cl_gatk(params, tmp_dir)
            prog = params[params.index("-T") + 1]
            do.run(cl, "GATK: {0}".format(prog), data, region=region, log_error=log_error)

    def cl_mutect(self, params, tmp_dir):
        """Define parameters to run the mutect paired algorithm.
        """
        return self._base_cmd("mutect", tmp_dir) + [str(x) for x in params]

    def run_mutect(self, params, tmp_dir=None, data=None, region=None):
        with tx_tmpdir(self._config) as local_tmp_dir:
            if tmp_dir is None:
                tmp_dir = local_tmp_dir
            cl = self.cl_mutect(params, tmp_dir)
            do.run(cl, "MuTect", data, region=region)

    def _get_jar(self, program):
        """Retrieve a configured jar for the program, or None to use a wrapper command.
        """
        resources = config_utils.get_resources(program, self._config)
        if resources.get("jar"):
            return config_utils.expand_path(resources["jar"])
        elif resources.get("dir"):
            return config_utils.get_jar(JARS[program], resources["dir"])
        return None

def runner_from_config(config):
    return BroadRunner(config)
