"""Scatter tumor/normal pairs across genomic intervals and gather the results.

Each pair is crossed with every interval to produce independent work items.
Results come back in any order and are collected by their
(patient, normal, tumor) key; a key is only released once every interval
dispatched for it has a result.
"""
import collections

from caw.log import logger

CollationKey = collections.namedtuple("CollationKey", "patient, normal, tumor")

class WorkItem(collections.namedtuple("WorkItem", "pair, interval")):
    """A tumor/normal pair to process over a single interval.
    """
    __slots__ = ()

    @property
    def key(self):
        return self.pair.key

IntervalResult = collections.namedtuple("IntervalResult", "item, out_file")

class ResultBucket(collections.namedtuple("ResultBucket", "key, results")):
    """Complete set of interval results for one key, in interval order.
    """
    __slots__ = ()

    @property
    def out_files(self):
        return [r.out_file for r in self.results]

    @property
    def pair(self):
        return self.results[0].item.pair


class StarvationError(Exception):
    """Interval results never arrived for some keys, so they cannot be merged.
    """
    def __init__(self, name, missing):
        self.missing = missing
        self.keys = [k for k, _, _ in missing]
        detail = ["(%s) received %s of %s intervals" % (", ".join(k), got, want)
                  for k, got, want in missing]
        super(StarvationError, self).__init__("%s: incomplete results for %s"
                                              % (name, "; ".join(detail)))


def scatter(pairs, intervals, name):
    """Emit one WorkItem for every (pair, interval) combination.
    """
    return pairs.combine(intervals, name=name).map(lambda x: WorkItem(*x), name=name + ".items")

def collate(results, expected, name, dispatched=None):
    """Gather IntervalResults into one ResultBucket per key.

    `expected(key)` gives the number of intervals dispatched for a key. A
    bucket is emitted only when it holds that many results; any bucket
    still incomplete when the input closes raises StarvationError.

    `dispatched` is an optional channel of the WorkItems sent out for
    processing. Keys seen there are tracked from the start, so a key whose
    every interval failed is reported with 0 results.
    """
    out = results.flow.channel(name)
    src = results.map(lambda r: (r.item.key, r), name=name + ".results")
    if dispatched is not None:
        src = src.mix(dispatched.map(lambda item: (item.key, None), name=name + ".dispatched"),
                      name=name + ".inputs")
    src = src._claim(name)

    def _run():
        buckets = collections.OrderedDict()
        for key, result in src:
            buckets.setdefault(key, [])
            if result is None:
                continue
            buckets[key].append(result)
            if len(buckets[key]) == expected(key):
                collected = sorted(buckets[key], key=lambda r: r.item.interval.index)
                logger.debug("%s: all %s intervals done for %s" % (name, len(collected), ", ".join(key)))
                out.emit(ResultBucket(key, collected))
        missing = [(k, len(rs), expected(k)) for k, rs in buckets.items()
                   if len(rs) != expected(k)]
        if missing:
            raise StarvationError(name, missing)
    results.flow.spawn(name, _run, [out])
    return out
