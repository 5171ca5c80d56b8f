"""Threaded dataflow channels connecting the nodes of an analysis graph.

A `Dataflow` owns the node threads and a shared task pool. Each node reads
from one or more `Channel` inputs and writes to its outputs, closing them
when it finishes so downstream nodes never wait on a dead producer.
Channels are unbounded FIFO queues with a single reader; use `into` to hand
the same tokens to several consumers.
"""
import collections
import queue
import subprocess
import threading
from concurrent import futures

from caw.log import logger

_CLOSED = object()

Failure = collections.namedtuple("Failure", "node, item, error")


class FlowError(Exception):
    """One or more nodes of a dataflow failed.
    """
    def __init__(self, failures):
        self.failures = list(failures)
        lines = ["%s failed for %s: %s" % (f.node, _short(f.item), _first_line(f.error))
                 for f in self.failures]
        super(FlowError, self).__init__("Analysis failed:\n  " + "\n  ".join(lines))

    @property
    def exit_code(self):
        """Exit status of the first failed external command, or 1.
        """
        for f in self.failures:
            if isinstance(f.error, subprocess.CalledProcessError) and f.error.returncode:
                return f.error.returncode
        return 1

    @property
    def starved(self):
        out = []
        for f in self.failures:
            out.extend(getattr(f.error, "keys", []))
        return out


def _first_line(error):
    msg = str(error).strip()
    if isinstance(error, subprocess.CalledProcessError):
        msg = "exit status %s" % error.returncode
    return msg.split("\n")[0]


def _short(item):
    if item is None:
        return "all inputs"
    key = getattr(item, "key", None)
    if key is not None:
        return str(tuple(key))
    sample = getattr(item, "sample", None)
    return sample or str(item)


class Dataflow(object):
    """Build and run a graph of threaded nodes connected by channels.

    External tool work submitted through `Channel.process` runs on one
    thread pool sized to the available cores.
    """
    def __init__(self, cores=1):
        self.cores = max(1, int(cores))
        self._executor = futures.ThreadPoolExecutor(max_workers=self.cores,
                                                    thread_name_prefix="caw-task")
        self._nodes = []
        self._failures = []
        self._lock = threading.Lock()

    def channel(self, name):
        return Channel(self, name)

    def closed(self, name, reason=None):
        """Channel that is closed up front, used for stages that are not run.
        """
        ch = self.channel(name)
        ch.close()
        logger.info("Inactive: %s%s" % (name, " (%s)" % reason if reason else ""))
        return ch

    def from_iterable(self, items, name):
        """Feed a channel from an iterable, consumed lazily inside a node.
        """
        out = self.channel(name)

        def _run():
            for item in items:
                out.emit(item)
        self.spawn(name, _run, [out])
        return out

    def spawn(self, name, target, outputs=()):
        """Start a node thread, closing its outputs however it finishes.
        """
        def _run():
            try:
                target()
            except Exception as e:
                self.record_failure(name, None, e)
            finally:
                for out in outputs:
                    out.close()
        t = threading.Thread(target=_run, name=name)
        t.daemon = True
        with self._lock:
            self._nodes.append(t)
        t.start()
        return t

    def submit(self, name, fn, item, out):
        """Run fn(item) on the task pool, emitting the result to `out`.
        """
        def _task():
            try:
                result = fn(item)
            except Exception as e:
                self.record_failure(name, item, e)
            else:
                out.emit(result)
        return self._executor.submit(_task)

    def record_failure(self, name, item, error):
        logger.error("%s failed for %s: %s" % (name, _short(item), _first_line(error)))
        with self._lock:
            self._failures.append(Failure(name, item, error))

    @property
    def failures(self):
        with self._lock:
            return list(self._failures)

    def wait(self):
        """Block until every node finishes, raising FlowError on any failure.
        """
        while True:
            with self._lock:
                pending = [t for t in self._nodes if t.is_alive()]
            if not pending:
                break
            for t in pending:
                t.join()
        self._executor.shutdown(wait=True)
        if self.failures:
            raise FlowError(self.failures)


class _CloseLatch(object):
    """Close a shared output once every one of its writers has finished.
    """
    def __init__(self, out, writers):
        self._out = out
        self._remaining = writers
        self._lock = threading.Lock()

    def close(self):
        with self._lock:
            self._remaining -= 1
            done = self._remaining == 0
        if done:
            self._out.close()


class Channel(object):
    """Single reader FIFO conduit between dataflow nodes.
    """
    def __init__(self, flow, name):
        self.flow = flow
        self.name = name
        self._queue = queue.Queue()
        self._reader = None

    def __repr__(self):
        return "Channel(%s)" % self.name

    def emit(self, item):
        self._queue.put(item)

    def close(self):
        self._queue.put(_CLOSED)

    def __iter__(self):
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                self._queue.put(_CLOSED)
                return
            yield item

    def _claim(self, reader):
        if self._reader is not None:
            raise ValueError("Channel %s is already read by %s; use into() to copy it for %s"
                             % (self.name, self._reader, reader))
        self._reader = reader
        return self

    def _node(self, name, default):
        return name or "%s.%s" % (self.name, default)

    def map(self, fn, name=None):
        name = self._node(name, "map")
        src = self._claim(name)
        out = self.flow.channel(name)

        def _run():
            for item in src:
                out.emit(fn(item))
        self.flow.spawn(name, _run, [out])
        return out

    def flat_map(self, fn, name=None):
        name = self._node(name, "flat_map")
        src = self._claim(name)
        out = self.flow.channel(name)

        def _run():
            for item in src:
                for x in fn(item):
                    out.emit(x)
        self.flow.spawn(name, _run, [out])
        return out

    def filter(self, pred, name=None):
        name = self._node(name, "filter")
        src = self._claim(name)
        out = self.flow.channel(name)

        def _run():
            for item in src:
                if pred(item):
                    out.emit(item)
        self.flow.spawn(name, _run, [out])
        return out

    def into(self, n, name=None):
        """Copy every token into `n` independent channels.

        The upstream is read once by a single pump node. A single consumer
        gets this channel back unchanged; with no consumers the tokens are
        drained.
        """
        if n == 1:
            return [self]
        name = self._node(name, "into")
        src = self._claim(name)
        outs = [self.flow.channel("%s[%s]" % (name, i)) for i in range(n)]

        def _run():
            for item in src:
                for out in outs:
                    out.emit(item)
        self.flow.spawn(name, _run, outs)
        return outs

    def partition(self, pred, name=None):
        """Split into (matching, not matching) channels.
        """
        name = self._node(name, "partition")
        src = self._claim(name)
        yes = self.flow.channel(name + "[true]")
        no = self.flow.channel(name + "[false]")

        def _run():
            for item in src:
                if pred(item):
                    yes.emit(item)
                else:
                    no.emit(item)
        self.flow.spawn(name, _run, [yes, no])
        return yes, no

    def group_tuple(self, key_fn, name=None):
        """Group all tokens by key, emitting (key, [items]) once the input closes.
        """
        name = self._node(name, "group_tuple")
        src = self._claim(name)
        out = self.flow.channel(name)

        def _run():
            groups = collections.OrderedDict()
            for item in src:
                groups.setdefault(key_fn(item), []).append(item)
            for key, items in groups.items():
                out.emit((key, items))
        self.flow.spawn(name, _run, [out])
        return out

    def collect(self, name=None):
        """Emit a single list with every token once the input closes.
        """
        name = self._node(name, "collect")
        src = self._claim(name)
        out = self.flow.channel(name)

        def _run():
            out.emit(list(src))
        self.flow.spawn(name, _run, [out])
        return out

    def combine(self, other, by=None, name=None):
        """Streaming join emitting (left, right) for every pair sharing a key.

        With no `by` function every left token pairs with every right token.
        A new token pairs with all tokens already seen on the other side.
        """
        name = self._node(name, "combine")
        srcs = [self._claim(name), other._claim(name)]
        out = self.flow.channel(name)
        key_fn = by or (lambda x: None)
        seen = [collections.defaultdict(list), collections.defaultdict(list)]
        lock = threading.Lock()
        latch = _CloseLatch(out, 2)

        def _reader(side):
            def _run():
                for item in srcs[side]:
                    key = key_fn(item)
                    with lock:
                        seen[side][key].append(item)
                        partners = list(seen[1 - side][key])
                    for partner in partners:
                        out.emit((item, partner) if side == 0 else (partner, item))
            return _run
        self.flow.spawn(name + "[left]", _reader(0), [latch])
        self.flow.spawn(name + "[right]", _reader(1), [latch])
        return out

    def mix(self, *others, **kwargs):
        """Merge tokens from this and other channels, in arrival order.
        """
        name = self._node(kwargs.get("name"), "mix")
        srcs = [c._claim(name) for c in (self,) + others]
        out = self.flow.channel(name)
        latch = _CloseLatch(out, len(srcs))

        def _reader(src):
            def _run():
                for item in src:
                    out.emit(item)
            return _run
        for i, src in enumerate(srcs):
            self.flow.spawn("%s[%s]" % (name, i), _reader(src), [latch])
        return out

    def process(self, fn, name):
        """Run fn on every token using the shared task pool.

        Failed tokens are recorded on the dataflow and produce no output.
        The output closes once every submitted task has finished.
        """
        src = self._claim(name)
        out = self.flow.channel(name)

        def _run():
            pending = []
            for item in src:
                pending.append(self.flow.submit(name, fn, item, out))
            futures.wait(pending)
        self.flow.spawn(name, _run, [out])
        return out
