"""Pytest fixtures and test helper functions"""

import os

import pytest
import yaml

REFERENCE_FILES = ["genome_file", "genome_index", "genome_dict", "bwa_index",
                   "dbsnp", "dbsnp_index", "known_indels", "known_indels_index",
                   "cosmic", "cosmic_index", "intervals", "ac_loci"]


@pytest.fixture
def work_dir(tmpdir):
    """Provide and manage output directory for tests"""
    test_output_dir = tmpdir.mkdir('test_output')
    return str(test_output_dir)


@pytest.fixture
def reference_dir(tmpdir):
    """Empty stand-ins for every reference file a run can ask for"""
    ref_dir = tmpdir.mkdir('reference')
    refs = {}
    for key in REFERENCE_FILES:
        fname = ref_dir.join('%s.ref' % key)
        fname.write('')
        refs[key] = str(fname)
    ref_dir.join('intervals.ref').write('chr1:1-100\nchr2:1-100\n')
    return refs


@pytest.fixture
def config(reference_dir, work_dir):
    """In-memory system configuration pointing to the dummy reference files"""
    return {'reference': dict(reference_dir),
            'algorithm': {'num_cores': 2},
            'resources': {'gatk': {'jvm_opts': ['-Xms500m', '-Xmx2g']}},
            'dirs': {'work': work_dir}}


@pytest.fixture
def global_config(config, work_dir):
    """Prepare a system YAML file pointing to test data"""
    test_system = os.path.join(work_dir, 'caw_system.yaml')
    out = dict(config)
    out.pop('dirs')
    with open(test_system, 'w') as out_handle:
        yaml.safe_dump(out, out_handle)
    return test_system
