"""Run tasks on a single machine, with retries and multiple cores.
"""
import functools
import subprocess

import joblib

from caw.distributed import resources
from caw.log import logger
from caw.pipeline import config_utils

DEFAULT_RETRIES = 3

def retrying(fn, config, name=None, retries=None):
    """Wrap a task `fn(item, config)` into a single argument function with retries.

    Commands killed with one of the configured retry exit codes (by default
    the statuses schedulers report for memory or time limits) run again with
    resources escalated by the attempt number. Any other failure, or running
    out of attempts, propagates.
    """
    name = name or fn.__name__
    if retries is None:
        retries = (config.get("algorithm") or {}).get("retries", DEFAULT_RETRIES)
    codes = config_utils.get_retry_codes(config)

    @functools.wraps(fn)
    def wrapper(item):
        attempt = 1
        while True:
            try:
                return fn(item, resources.escalate(config, attempt))
            except subprocess.CalledProcessError as e:
                if e.returncode in codes and attempt <= retries:
                    logger.warn("%s: attempt %s exited with status %s, retrying with more resources"
                                % (name, attempt, e.returncode))
                    attempt += 1
                else:
                    if attempt > 1:
                        logger.error("%s: giving up after %s attempts" % (name, attempt))
                    raise
    return wrapper

def run_multicore(fn, items, config, parallel=None):
    """Run the function using multiple cores on the given items to process.

    Work happens in threads; the heavy lifting is done by external programs.
    """
    if len(items) == 0:
        return []
    if parallel is None:
        parallel = {"num_jobs": (config.get("algorithm") or {}).get("num_cores", 1)}
    num_jobs = max(1, min(int(parallel.get("num_jobs", 1)), len(items)))
    out = []
    for data in joblib.Parallel(num_jobs, batch_size=1, backend="threading")(
            joblib.delayed(fn)(*x) for x in items):
        if data:
            out.extend(data)
    return out
