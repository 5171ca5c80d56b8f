"""Validate the requested analysis steps and decide which stages run.
"""
from caw.log import logger
from caw.pipeline.config_utils import ConfigError

ENTRY_STEPS = ["preprocessing", "realign", "skipPreprocessing"]
INTERVAL_CALLERS = ["MuTect1", "MuTect2", "VarDict", "HaplotypeCaller"]
GENOME_CALLERS = ["Strelka", "Manta", "ascat"]
STEPS = ENTRY_STEPS + INTERVAL_CALLERS + GENOME_CALLERS
DEFAULT_ENTRY = "preprocessing"

_CANONICAL = dict((s.lower(), s) for s in STEPS)


class StepError(ConfigError):
    pass


def _split_requested(requested):
    if not requested:
        return []
    if isinstance(requested, str):
        requested = requested.split(",")
    return [x.strip() for x in requested if x and x.strip()]


class StepGate(object):
    """The set of active steps for a run, fixed once validated.

    Step names match case-insensitively. At most one entry step
    (preprocessing, realign or skipPreprocessing) may be given, and
    preprocessing is used when none is.
    """
    def __init__(self, requested=None):
        names = _split_requested(requested)
        unknown = [x for x in names if x.lower() not in _CANONICAL]
        if unknown:
            raise StepError("Unexpected steps: %s\nSupported steps: %s"
                            % (", ".join(unknown), ", ".join(STEPS)))
        steps = []
        for x in names:
            if _CANONICAL[x.lower()] not in steps:
                steps.append(_CANONICAL[x.lower()])
        entries = [x for x in steps if x in ENTRY_STEPS]
        if len(entries) > 1:
            raise StepError("Only one of %s can be specified, found: %s"
                            % (", ".join(ENTRY_STEPS), ", ".join(entries)))
        elif not entries:
            steps.insert(0, DEFAULT_ENTRY)
        self._steps = frozenset(steps)
        self.steps = tuple(x for x in STEPS if x in self._steps)

    def __repr__(self):
        return "StepGate(%s)" % ",".join(self.steps)

    def is_active(self, name):
        if name not in _CANONICAL.values():
            raise ValueError("Unknown step %s, expected one of: %s" % (name, ", ".join(STEPS)))
        return name in self._steps

    @property
    def entry_step(self):
        return [x for x in self.steps if x in ENTRY_STEPS][0]

    @property
    def input_format(self):
        return "fastq" if self.entry_step == "preprocessing" else "bam"

    def active_callers(self, interval=None):
        """Active variant callers; restrict to interval scattered (True) or whole genome (False).
        """
        if interval is None:
            callers = INTERVAL_CALLERS + GENOME_CALLERS
        elif interval:
            callers = INTERVAL_CALLERS
        else:
            callers = GENOME_CALLERS
        return [x for x in callers if x in self._steps]

    def log_plan(self):
        for step in STEPS:
            logger.info("Step %s: %s" % (step, "active" if self.is_active(step) else "inactive"))
