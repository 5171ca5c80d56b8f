"""Scale resources requested from programs on retried attempts.

Memory and time specifications in the `resources` section of the system
configuration are multiplied by the attempt number so a task killed for
running out of memory or time gets more on the next try. `-Xmx` JVM options
pick up the same factor through `memory_adjust` when commands are built.
"""
import copy

from caw.log import logger
from caw.pipeline import config_utils

def escalate(config, attempt):
    """Return a configuration with resources scaled for the given attempt.

    The first attempt uses the configuration unchanged.
    """
    if attempt <= 1:
        return config
    config = copy.deepcopy(config)
    algorithm = config.setdefault("algorithm", {})
    algorithm["attempt"] = attempt
    maximum = (algorithm.get("memory_adjust") or {}).get("maximum")
    algorithm["memory_adjust"] = {"direction": "scale", "magnitude": attempt}
    if maximum:
        algorithm["memory_adjust"]["maximum"] = maximum
    for pname, presources in (config.get("resources") or {}).items():
        if not isinstance(presources, dict):
            continue
        if presources.get("memory"):
            presources["memory"] = config_utils.adjust_memory(str(presources["memory"]), attempt,
                                                              "scale", maximum=maximum)
        if presources.get("time"):
            presources["time"] = scale_time(presources["time"], attempt)
    logger.debug("Escalated resources for attempt %s" % attempt)
    return config

def scale_time(val, magnitude):
    """Multiply a time budget given as hours, `<n>h`, `<n>m` or `HH:MM:SS`.
    """
    if isinstance(val, (int, float)):
        return val * magnitude
    val = str(val)
    if ":" in val:
        parts = [int(x) for x in val.split(":")]
        while len(parts) < 3:
            parts.insert(0, 0)
        seconds = (parts[0] * 3600 + parts[1] * 60 + parts[2]) * magnitude
        return "%02d:%02d:%02d" % (seconds // 3600, (seconds % 3600) // 60, seconds % 60)
    elif val[-1:].lower() in ["h", "m", "s"]:
        return "%s%s" % (int(float(val[:-1]) * magnitude), val[-1])
    else:
        return str(int(float(val) * magnitude))

def get_cores(name, config):
    """Cores to use for a program, bounded by the cores available to the run.
    """
    cores = config_utils.get_resources(name, config).get("cores", 1)
    max_cores = (config.get("algorithm") or {}).get("num_cores")
    if max_cores:
        cores = min(int(cores), int(max_cores))
    return max(1, int(cores))

def get_memory(name, config, default="2G"):
    return str(config_utils.get_resources(name, config).get("memory", default))
