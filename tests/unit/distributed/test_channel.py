import subprocess

import pytest

from caw.distributed.channel import Dataflow, FlowError
from tests.unit.conftest import drain


class TestChannelOperators(object):

    def test_map_keeps_order_of_a_single_producer(self, flow):
        out = flow.from_iterable(range(5), 'numbers').map(lambda x: x * 2)
        assert drain(flow, out) == [0, 2, 4, 6, 8]

    def test_flat_map_and_filter(self, flow):
        out = (flow.from_iterable([1, 2, 3], 'numbers')
               .flat_map(lambda x: [x] * x)
               .filter(lambda x: x != 2))
        assert drain(flow, out) == [1, 3, 3, 3]

    def test_partition_splits_on_predicate(self, flow):
        evens, odds = flow.from_iterable(range(6), 'numbers').partition(lambda x: x % 2 == 0)
        assert drain(flow, evens, odds) == [[0, 2, 4], [1, 3, 5]]

    def test_group_tuple_emits_groups_after_close(self, flow):
        words = flow.from_iterable(['apple', 'bean', 'avocado', 'beet', 'carrot'], 'words')
        out = words.group_tuple(lambda w: w[0])
        assert drain(flow, out) == [('a', ['apple', 'avocado']),
                                    ('b', ['bean', 'beet']),
                                    ('c', ['carrot'])]

    def test_collect_gives_a_single_list(self, flow):
        out = flow.from_iterable('abc', 'letters').collect()
        assert drain(flow, out) == [['a', 'b', 'c']]

    def test_into_copies_every_token(self, flow):
        first, second, third = flow.from_iterable([1, 2], 'numbers').into(3)
        assert drain(flow, first, second, third) == [[1, 2], [1, 2], [1, 2]]

    def test_into_a_single_consumer_returns_the_channel(self, flow):
        src = flow.from_iterable([1], 'numbers')
        assert src.into(1) == [src]
        drain(flow)

    def test_combine_is_a_cross_product_without_key(self, flow):
        left = flow.from_iterable(['a', 'b'], 'left')
        right = flow.from_iterable([1, 2, 3], 'right')
        out = left.combine(right)
        result = drain(flow, out)
        assert sorted(result) == [(l, r) for l in 'ab' for r in [1, 2, 3]]

    def test_combine_by_key_only_joins_matching_tokens(self, flow):
        left = flow.from_iterable([('p1', 'n'), ('p2', 'n')], 'left')
        right = flow.from_iterable([('p1', 't1'), ('p2', 't1'), ('p2', 't2')], 'right')
        out = left.combine(right, by=lambda x: x[0])
        result = drain(flow, out)
        assert sorted(result) == [(('p1', 'n'), ('p1', 't1')),
                                  (('p2', 'n'), ('p2', 't1')),
                                  (('p2', 'n'), ('p2', 't2'))]

    def test_mix_merges_all_inputs(self, flow):
        out = flow.from_iterable([1, 2], 'a').mix(flow.from_iterable([3], 'b'),
                                                 flow.closed('c'))
        assert sorted(drain(flow, out)) == [1, 2, 3]

    def test_channel_has_a_single_reader(self, flow):
        src = flow.from_iterable([1], 'numbers')
        src.map(str, name='first')
        with pytest.raises(ValueError) as excinfo:
            src.map(str, name='second')
        assert 'into()' in str(excinfo.value)
        drain(flow)

    def test_closed_channel_yields_nothing_downstream(self, flow):
        out = flow.closed('skipped').map(lambda x: x).collect()
        assert drain(flow, out) == [[]]


class TestProcess(object):

    def test_runs_every_token_on_the_pool(self, flow):
        out = flow.from_iterable(range(10), 'numbers').process(lambda x: x + 1, 'add')
        assert sorted(drain(flow, out)) == list(range(1, 11))

    def test_failed_tokens_are_recorded_and_others_continue(self, flow):
        def fail_on_two(x):
            if x == 2:
                raise ValueError('bad token')
            return x
        out = flow.from_iterable([1, 2, 3], 'numbers').process(fail_on_two, 'check')
        with pytest.raises(FlowError) as excinfo:
            flow.wait()
        assert sorted(out) == [1, 3]
        assert [(f.node, f.item) for f in excinfo.value.failures] == [('check', 2)]
        assert 'check failed for 2: bad token' in str(excinfo.value)

    def test_downstream_of_a_failure_still_finishes(self, flow):
        def boom(x):
            raise ValueError(x)
        out = flow.from_iterable([1], 'numbers').process(boom, 'boom').collect()
        with pytest.raises(FlowError):
            flow.wait()
        assert list(out) == [[]]


class TestFlowError(object):

    def test_exit_code_of_first_failed_command(self):
        flow = Dataflow()
        flow.record_failure('step1', None, ValueError('no command'))
        flow.record_failure('step2', None, subprocess.CalledProcessError(137, 'bwa'))
        with pytest.raises(FlowError) as excinfo:
            flow.wait()
        assert excinfo.value.exit_code == 137

    def test_exit_code_defaults_to_one(self):
        error = FlowError([])
        assert error.exit_code == 1
        assert error.starved == []

    def test_node_failure_closes_its_outputs(self, flow):
        def broken():
            raise IOError('missing input')
        out = flow.channel('broken')
        flow.spawn('broken', broken, [out])
        with pytest.raises(FlowError) as excinfo:
            flow.wait()
        assert list(out) == []
        assert 'broken failed for all inputs: missing input' in str(excinfo.value)
