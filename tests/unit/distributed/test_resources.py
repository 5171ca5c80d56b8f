import pytest

from caw.distributed import resources
from caw.pipeline import config_utils


@pytest.fixture
def config():
    return {'algorithm': {'num_cores': 4},
            'resources': {'default': {'memory': '1G', 'cores': 1},
                          'gatk': {'memory': '3500M', 'cores': 8,
                                   'jvm_opts': ['-Xms750m', '-Xmx3500m']},
                          'tmp': {'dir': '/scratch'}}}


class TestEscalate(object):

    def test_first_attempt_returns_same_config(self, config):
        assert resources.escalate(config, 1) is config

    def test_scales_memory_without_touching_input(self, config):
        out = resources.escalate(config, 2)
        assert out['resources']['gatk']['memory'] == '7000M'
        assert out['resources']['default']['memory'] == '2G'
        assert config['resources']['gatk']['memory'] == '3500M'
        assert out['algorithm']['attempt'] == 2
        assert 'attempt' not in config['algorithm']

    def test_jvm_options_follow_memory_adjust(self, config):
        out = resources.escalate(config, 3)
        opts = config_utils.adjust_opts(out['resources']['gatk']['jvm_opts'], out)
        assert opts == ['-Xms750m', '-Xmx10500m']

    def test_keeps_memory_maximum(self, config):
        config['algorithm']['memory_adjust'] = {'maximum': '8G'}
        out = resources.escalate(config, 4)
        assert out['algorithm']['memory_adjust'] == {'direction': 'scale', 'magnitude': 4,
                                                     'maximum': '8G'}
        assert out['resources']['default']['memory'] == '4G'
        assert out['resources']['gatk']['memory'] == '8192M'


@pytest.mark.parametrize(('val', 'magnitude', 'expected'), [
    (4, 2, 8),
    ('4h', 2, '8h'),
    ('30m', 3, '90m'),
    ('10', 2, '20'),
    ('01:30:00', 2, '03:00:00'),
    ('45:00', 2, '01:30:00'),
])
def test_scale_time(val, magnitude, expected):
    assert resources.scale_time(val, magnitude) == expected


class TestProgramResources(object):

    def test_cores_bounded_by_available(self, config):
        assert resources.get_cores('gatk', config) == 4

    def test_cores_fall_back_to_default(self, config):
        assert resources.get_cores('bwa', config) == 1

    def test_memory(self, config):
        assert resources.get_memory('gatk', config) == '3500M'
        assert resources.get_memory('bwa', {}) == '2G'
