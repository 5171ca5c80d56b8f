"""Provide analysis of input files by chromosomal regions.

Intervals are read once from the configured interval list and shared
read-only by every caller that scatters over them.
"""
import collections

Interval = collections.namedtuple("Interval", "raw, safe, index")

def to_safestr(region):
    """Filesystem safe version of a region, replacing the first colon.
    """
    return region.replace(":", "_", 1)

def make_interval(raw, index=0):
    return Interval(raw, to_safestr(raw), index)

def _parse_line(line):
    parts = line.split("\t")
    if len(parts) >= 3 and parts[1].isdigit() and parts[2].isdigit():
        # BED, 0-based half open
        return "%s:%s-%s" % (parts[0], int(parts[1]) + 1, parts[2])
    return line.split()[0]

def load_intervals(in_file):
    """Load genomic intervals as `chrom:start-end` ranges, in file order.

    Accepts GATK style interval lists (with optional `@` headers) and
    BED files.
    """
    out = []
    with open(in_file) as in_handle:
        for line in in_handle:
            line = line.strip()
            if not line or line.startswith(("#", "@", "track", "browser")):
                continue
            out.append(make_interval(_parse_line(line), len(out)))
    if not out:
        raise ValueError("No intervals found in %s" % in_file)
    return tuple(out)
