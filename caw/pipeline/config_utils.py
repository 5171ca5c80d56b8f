"""Loads configurations from .yaml files and expands environment variables.
"""
import glob
import math
import os

import toolz as tz
import yaml

from caw import utils


class ConfigError(ValueError):
    """Problem with the run configuration, detected before any work starts.
    """
    pass

DEFAULT_RETRY_CODES = [137, 140, 143]

# Reference files needed by each stage, on top of the genome files every run uses
BASE_REFERENCE_KEYS = ["genome_file", "genome_index", "genome_dict"]
REFERENCE_KEYS = {
    "preprocessing": ["bwa_index", "dbsnp", "dbsnp_index", "known_indels", "known_indels_index"],
    "realign": ["dbsnp", "dbsnp_index", "known_indels", "known_indels_index"],
    "MuTect1": ["dbsnp", "dbsnp_index", "cosmic", "cosmic_index", "intervals"],
    "MuTect2": ["dbsnp", "dbsnp_index", "cosmic", "cosmic_index", "intervals"],
    "VarDict": ["intervals"],
    "HaplotypeCaller": ["dbsnp", "dbsnp_index", "intervals"],
    "ascat": ["ac_loci"],
}

# ## Generalized configuration

def load_system_config(config_file):
    """Load the system configuration, ensuring the sections we use are present.
    """
    if not config_file or not os.path.exists(config_file):
        raise ConfigError("Could not find input system configuration file %s" % config_file)
    config = load_config(config_file)
    for section in ["algorithm", "reference"]:
        if not config.get(section):
            config[section] = {}
    config["caw_system"] = os.path.abspath(config_file)
    return config

def load_config(config_file):
    """Load YAML config file, replacing environmental variables.
    """
    with open(config_file) as in_handle:
        config = yaml.safe_load(in_handle) or {}
    if not isinstance(config, dict):
        raise ConfigError("Expected a mapping at the top level of %s" % config_file)
    config = _expand_paths(config)
    if not config.get('resources'):
        config['resources'] = {}
    return config

def _expand_paths(config):
    for field, setting in config.items():
        if isinstance(config[field], dict):
            config[field] = _expand_paths(config[field])
        else:
            config[field] = expand_path(setting)
    return config

def expand_path(path):
    """ Combines os.path.expandvars with replacing ~ with $HOME.
    """
    try:
        return os.path.expandvars(path.replace("~", "$HOME"))
    except AttributeError:
        return path

def check_references(config, gate):
    """Ensure every reference file needed by the active stages is configured and present.

    All listed reference entries are checked, so a broken path is reported
    even when no active stage needs it. Raises a ConfigError naming each
    problem.
    """
    refs = config.get("reference") or {}
    required = list(BASE_REFERENCE_KEYS)
    for step, keys in sorted(REFERENCE_KEYS.items()):
        if gate.is_active(step):
            required.extend(k for k in keys if k not in required)
    problems = []
    for key in required:
        if not refs.get(key):
            problems.append("missing reference entry '%s'" % key)
    for key, fname in sorted(refs.items()):
        if fname and not os.path.exists(str(fname)):
            problems.append("reference '%s' points to missing file %s" % (key, fname))
    if problems:
        raise ConfigError("Problems with reference configuration:\n  %s" % "\n  ".join(problems))
    return [refs[k] for k in required]

def get_work_dir(config, *parts):
    """Output directory under the run's working directory, created if missing.
    """
    base = tz.get_in(["dirs", "work"], config) or os.getcwd()
    return utils.safe_makedir(os.path.join(base, *parts))

def get_reference(name, config):
    return tz.get_in(["reference", name], config)

def get_resources(name, config):
    """Retrieve resources for a program, pulling from multiple config sources.
    """
    return tz.get_in(["resources", name], config,
                     tz.get_in(["resources", "default"], config, {}))

def get_program(name, config, default=None):
    """Retrieve the command line name of a program from the configuration.

    The preferred location for program information is `resources: <name>: cmd`,
    falling back to the default or the name itself.
    """
    pconfig = tz.get_in(["resources", name], config)
    if pconfig is None:
        return default or name
    elif isinstance(pconfig, str):
        return expand_path(pconfig)
    elif "cmd" in pconfig:
        return expand_path(pconfig["cmd"])
    elif default is not None:
        return default
    else:
        return name

def get_jar(base_name, dname):
    """Retrieve a jar in the provided directory
    """
    jars = glob.glob(os.path.join(expand_path(dname), "%s*.jar" % base_name))

    if len(jars) == 1:
        return jars[0]
    elif len(jars) > 1:
        raise ValueError("Found multiple jars for %s in %s. Need single jar: %s" %
                         (base_name, dname, jars))
    else:
        raise ValueError("Could not find java jar %s in %s" %
                         (base_name, dname))

def get_retry_codes(config):
    return set(tz.get_in(["algorithm", "retry_exit_codes"], config) or DEFAULT_RETRY_CODES)

# ## Memory handling

def adjust_memory(val, magnitude, direction="increase", out_modifier="", maximum=None):
    """Adjust memory based on number of cores utilized.
    """
    modifier = val[-1:]
    amount = float(val[:-1])
    if direction == "decrease":
        new_amount = amount / float(magnitude)
        # dealing with a specifier like 1G, need to scale to Mb
        if new_amount < 1 or (out_modifier.upper().startswith("M") and modifier.upper().startswith("G")):
            if modifier.upper().startswith("G"):
                new_amount = (amount * 1024) / magnitude
                modifier = "M" + modifier[1:]
            else:
                raise ValueError("Unexpected decrease in memory: %s by %s" % (val, magnitude))
        amount = int(new_amount)
    elif direction == "increase" and magnitude > 1:
        # for increases with multiple cores, leave small percentage of
        # memory for system to maintain process running resource and
        # avoid OOM killers
        adjuster = 0.91
        amount = int(math.ceil(amount * (adjuster * magnitude)))
    elif direction == "scale":
        amount = amount * magnitude
    if out_modifier.upper().startswith("G") and modifier.upper().startswith("M"):
        modifier = out_modifier
        amount = int(math.floor(amount / 1024.0))
    if maximum:
        max_modifier = maximum[-1]
        max_amount = float(maximum[:-1])
        if modifier.upper() == "G" and max_modifier.upper() == "M":
            max_amount = max_amount / 1024.0
        elif modifier.upper() == "M" and max_modifier.upper() == "G":
            max_amount = max_amount * 1024.0
        amount = min([amount, max_amount])
    return "{amount}{modifier}".format(amount=int(math.floor(amount)), modifier=modifier)

def adjust_opts(in_opts, config):
    """Establish JVM opts, adjusting memory for the context if needed.

    This allows using more memory on retries of tasks killed for running out
    of resources.
    """
    memory_adjust = tz.get_in(["algorithm", "memory_adjust"], config) or {}
    out_opts = []
    for opt in in_opts:
        if opt.startswith("-Xmx") or (opt.startswith("-Xms") and memory_adjust.get("direction") == "decrease"):
            arg = opt[:4]
            opt = "{arg}{val}".format(arg=arg,
                                      val=adjust_memory(opt[4:],
                                                        memory_adjust.get("magnitude", 1),
                                                        memory_adjust.get("direction"),
                                                        maximum=memory_adjust.get("maximum")))
        out_opts.append(opt)
    return out_opts
