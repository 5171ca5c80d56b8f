#!/usr/bin/env python -Es
"""Run a tumor/normal cancer analysis workflow on a single machine.

The <config file> is a YAML configuration file specifying details about the
system: reference files, program resources and algorithm settings.

<samples> is a whitespace delimited manifest with one line per input, either
fastq runs (patient status sample run fastq1 fastq2) or BAM files
(patient status sample bam bai). Status is 0 for normal and 1 for tumor.

Usage:
  caw_nextgen.py <config_file> <samples>
     --steps comma separated steps to run: one of preprocessing, realign or
             skipPreprocessing plus any of MuTect1, MuTect2, VarDict, Strelka,
             HaplotypeCaller, Manta, ascat
     -n total number of cores to use
     --retries attempts at tasks killed for running out of memory or time

Exits with 0 on success, 1 for configuration and input problems and with the
exit status of the first failed command otherwise.
"""
import argparse
import os
import sys

from caw.distributed.channel import FlowError
from caw.pipeline.config_utils import ConfigError
from caw.pipeline.main import run_main
from caw.pipeline import version

def main(**kwargs):
    try:
        run_main(**kwargs)
    except FlowError as e:
        sys.stderr.write("%s\n" % e)
        return e.exit_code
    except (ConfigError, ValueError, IOError) as e:
        sys.stderr.write("Could not run analysis: %s\n" % e)
        return 1
    return 0

def parse_cl_args(in_args):
    """Parse input commandline arguments, returning keyword arguments for run_main.
    """
    description = "Tumor/normal cancer analysis workflow."
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("global_config", nargs="?",
                        help="Global YAML configuration file specifying details about the system")
    parser.add_argument("samples", nargs="?",
                        help="Sample manifest, in fastq or bam layout")
    parser.add_argument("--steps", help="Comma separated steps to run (default: preprocessing)")
    parser.add_argument("-n", "--numcores", type=int, default=1,
                        help="Total cores to use for processing")
    parser.add_argument("--retries", default=3, type=int,
                        help=("Number of retries of tasks killed for exceeding "
                              "memory or time limits. Default 3"))
    parser.add_argument("--workdir", default=os.getcwd(),
                        help=("Directory to process in. Defaults to "
                              "current working directory"))
    parser.add_argument("-v", "--version", help="Print current version",
                        action="store_true")
    args = parser.parse_args(in_args)
    if args.version:
        print(version.__version__)
        sys.exit(0)
    if not args.global_config or not args.samples:
        parser.error("Require a system configuration file and a sample manifest")
    return {"config_file": args.global_config,
            "manifest": os.path.abspath(args.samples),
            "workdir": os.path.abspath(args.workdir),
            "steps": args.steps,
            "numcores": args.numcores,
            "retries": args.retries}

if __name__ == "__main__":
    kwargs = parse_cl_args(sys.argv[1:])
    sys.exit(main(**kwargs))
