# -*- coding: utf-8 -*-
"""Run all tests for `closdispatch`.

Each test module in `closdispatch/tests` provides plain functions named `test_*`
that use bare `assert`. This runner needs nothing beyond the standard library;
`pytest` collects the same functions, if you prefer that.
"""

import os
import re
import sys
import traceback
from importlib import import_module

def listtestmodules(path):
    testfiles = listtestfiles(path)
    testmodules = [modname(path, fn) for fn in testfiles]
    return list(sorted(testmodules))

def listtestfiles(path, prefix="test_", suffix=".py"):
    return [fn for fn in os.listdir(path) if fn.startswith(prefix) and fn.endswith(suffix)]

def modname(path, filename):  # some/dir/mod.py --> some.dir.mod
    modpath = re.sub(re.escape(os.path.sep), r".", path)
    themod = re.sub(r"\.py$", r"", filename)
    return ".".join([modpath, themod])

def listtests(mod):
    return [(name, getattr(mod, name)) for name in sorted(dir(mod))
            if name.startswith("test_") and callable(getattr(mod, name))]

def main():
    passed = failed = 0
    for m in listtestmodules(os.path.join("closdispatch", "tests")):
        print(f"{m}")
        mod = import_module(m)
        for name, f in listtests(mod):
            try:
                f()
            except Exception:
                failed += 1
                print(f"  FAIL {name}")
                traceback.print_exc()
            else:
                passed += 1
                print(f"  pass {name}")
    print(f"{passed} passed, {failed} failed")
    return failed == 0

if __name__ == '__main__':
    if not main():
        sys.exit(1)  # pragma: no cover, this only runs when the tests fail.
