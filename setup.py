#!/usr/bin/env python

"""Setup file and install script for tumor/normal cancer analysis workflows"""

import os
import subprocess

import setuptools

VERSION = '0.9.0'

# add caw version number and git commit hash of the current revision to version.py
try:
    git_run = subprocess.run(['git', 'rev-parse', '--short', 'HEAD'], stdout=subprocess.PIPE,
                             stderr=subprocess.DEVNULL)
    git_run.check_returncode()
except (OSError, subprocess.SubprocessError):
    commit_hash = ''
else:
    commit_hash = git_run.stdout.strip().decode()

here = os.path.dirname(os.path.abspath(__file__))
with open(os.path.join(here, 'caw', 'pipeline', 'version.py'), 'w') as version_file:
    version_file.writelines([f'__version__ = "{VERSION}"\n',
                             f'__git_revision__ = "{commit_hash}"\n'])

# external tools (bwa, samtools, GATK, Picard, Strelka2, Manta, ...) are
# installed separately, for instance via Conda
setuptools.setup(name="caw-nextgen",
                 version=VERSION,
                 description="Dataflow driven tumor/normal cancer analysis workflow",
                 packages=setuptools.find_packages(exclude=["tests", "tests.*"]),
                 scripts=["scripts/caw_nextgen.py"],
                 python_requires=">=3.7",
                 install_requires=["toolz", "PyYAML", "logbook", "joblib"],
                 extras_require={"test": ["pytest", "pytest-mock", "mock"]})
