import subprocess

import mock
import pytest

from caw.distributed import multi


CONFIG = {'algorithm': {'num_cores': 2},
          'resources': {'bwa': {'memory': '4G', 'time': '2h'},
                        'gatk': {'jvm_opts': ['-Xmx2g']}}}


def killed(code=137):
    return subprocess.CalledProcessError(code, 'bwa mem')


class TestRetrying(object):

    def test_first_attempt_uses_configuration_unchanged(self):
        fn = mock.Mock(return_value='done', __name__='align')
        assert multi.retrying(fn, CONFIG)('sample') == 'done'
        fn.assert_called_once_with('sample', CONFIG)

    def test_retries_resource_kills_with_escalated_resources(self):
        fn = mock.Mock(side_effect=[killed(137), killed(140), 'done'], __name__='align')
        assert multi.retrying(fn, CONFIG)('sample') == 'done'
        assert fn.call_count == 3
        configs = [c[0][1] for c in fn.call_args_list]
        assert [c['algorithm'].get('attempt', 1) for c in configs] == [1, 2, 3]
        assert [c['resources']['bwa']['memory'] for c in configs] == ['4G', '8G', '12G']
        assert [c['resources']['bwa']['time'] for c in configs] == ['2h', '4h', '6h']
        assert configs[2]['algorithm']['memory_adjust'] == {'direction': 'scale', 'magnitude': 3}

    def test_gives_up_after_the_allowed_retries(self):
        fn = mock.Mock(side_effect=killed(143), __name__='align')
        with pytest.raises(subprocess.CalledProcessError):
            multi.retrying(fn, CONFIG, retries=2)('sample')
        assert fn.call_count == 3

    def test_retries_come_from_the_algorithm_section(self):
        config = {'algorithm': {'retries': 0}}
        fn = mock.Mock(side_effect=killed(137), __name__='align')
        with pytest.raises(subprocess.CalledProcessError):
            multi.retrying(fn, config)('sample')
        assert fn.call_count == 1

    def test_does_not_retry_other_exit_codes(self):
        fn = mock.Mock(side_effect=killed(1), __name__='align')
        with pytest.raises(subprocess.CalledProcessError) as excinfo:
            multi.retrying(fn, CONFIG)('sample')
        assert excinfo.value.returncode == 1
        assert fn.call_count == 1

    def test_does_not_retry_python_errors(self):
        fn = mock.Mock(side_effect=ValueError('bad input'), __name__='align')
        with pytest.raises(ValueError):
            multi.retrying(fn, CONFIG)('sample')
        assert fn.call_count == 1

    def test_configured_retry_codes(self):
        config = {'algorithm': {'retry_exit_codes': [1]}}
        fn = mock.Mock(side_effect=[killed(1), 'done'], __name__='align')
        assert multi.retrying(fn, config)('sample') == 'done'


class TestRunMulticore(object):

    def test_flattens_results(self):
        def double(x, config):
            return [x, x]
        assert sorted(multi.run_multicore(double, [[1, CONFIG], [2, CONFIG]], CONFIG)) == [1, 1, 2, 2]

    def test_no_items(self):
        assert multi.run_multicore(mock.Mock(), [], CONFIG) == []
