"""Helpful utilities for building analysis pipelines.
"""
import os
import shutil
import time


def safe_makedir(dname):
    """Make a directory if it doesn't exist, handling concurrent race conditions.
    """
    if not dname:
        return dname
    num_tries = 0
    max_tries = 5
    while not os.path.exists(dname):
        # we could get an error here if multiple threads are creating
        # the directory at the same time.
        try:
            os.makedirs(dname)
        except OSError:
            if num_tries > max_tries:
                raise
            num_tries += 1
            time.sleep(2)
    return dname

def file_exists(fname):
    """Check if a file exists and is non-empty.
    """
    try:
        return bool(fname) and os.path.exists(fname) and os.path.getsize(fname) > 0
    except OSError:
        return False

def get_size(path):
    """ Returns the size in bytes if `path` is a file,
        or the size of all files in `path` if it's a directory.
    """
    if os.path.isfile(path):
        return os.path.getsize(path)
    return sum(get_size(os.path.join(path, f)) for f in os.listdir(path))

def splitext_plus(f):
    """Split on file extensions, allowing for zipped extensions.
    """
    base, ext = os.path.splitext(f)
    if ext in [".gz", ".bz2", ".zip"]:
        base, ext2 = os.path.splitext(base)
        ext = ext2 + ext
    return base, ext

def remove_safe(f):
    try:
        if os.path.isdir(f):
            shutil.rmtree(f)
        else:
            os.remove(f)
    except OSError:
        pass

def move_safe(origin, target):
    """
    Move file, skip if exists
    """
    if origin == target:
        return origin
    if file_exists(target):
        return target
    shutil.move(origin, target)
    return target

def copy_plus(orig, new):
    """Copy a file, including biological index files.
    """
    for ext in ["", ".idx", ".tbi", ".bai"]:
        if os.path.exists(orig + ext) and not file_exists(new + ext):
            shutil.copyfile(orig + ext, new + ext)
    return new

def symlink_plus(orig, new):
    """Create a relative symlink, bringing along biological index files.
    """
    orig = os.path.abspath(orig)
    if not os.path.exists(orig):
        raise RuntimeError("File not found: %s" % orig)
    for ext in ["", ".idx", ".tbi", ".bai"]:
        if os.path.exists(orig + ext) and not os.path.exists(new + ext):
            remove_safe(new + ext)
            os.symlink(os.path.relpath(orig + ext, os.path.dirname(os.path.abspath(new))), new + ext)
    orig_noext = splitext_plus(orig)[0]
    if os.path.exists(orig_noext + ".bai") and not os.path.exists(new + ".bai"):
        remove_safe(new + ".bai")
        os.symlink(os.path.relpath(orig_noext + ".bai", os.path.dirname(os.path.abspath(new))),
                   new + ".bai")
    return new

def get_abspath(path, pardir=None):
    if pardir is None:
        pardir = os.getcwd()
    path = os.path.expandvars(path)
    return os.path.normpath(os.path.join(pardir, path))
