# -*- coding: utf-8; -*-
"""Interned markers: method qualifiers, the selector wildcard, and around-chain policies.

A marker is a lightweight, human-readable, process-wide unique object that is
compared by identity, like a Lisp symbol::

    assert Marker(":before") is Marker(":before")
    assert before is Marker(":before")

Markers survive pickling with their identity intact.
"""

__all__ = ["Marker",
           "primary", "before", "after", "around", "QUALIFIERS", "canonize_qualifier",
           "wildcard", "iswildcard",
           "most_specific", "least_specific"]

from weakref import WeakValueDictionary
import threading

from .errors import InvalidQualifierError

_markers = WeakValueDictionary()  # registry
_markers_update_lock = threading.Lock()

class Marker:
    """An interned marker. Same name, same object."""
    def __new__(cls, name):  # This covers unpickling, too.
        try:  # EAFP to eliminate TOCTTOU.
            return _markers[name]
        except KeyError:
            with _markers_update_lock:
                if name not in _markers:
                    instance = _markers[name] = super().__new__(cls)
                else:
                    # Some other thread got here first.
                    instance = _markers[name]
            return instance

    def __init__(self, name):
        self.name = name

    def __getnewargs__(self):
        return (self.name,)

    def __str__(self):
        return self.name
    def __repr__(self):
        return f'Marker("{self.name}")'

# The four roles a method can play in the combination protocol.
primary = Marker(":primary")
before = Marker(":before")
after = Marker(":after")
around = Marker(":around")
QUALIFIERS = (primary, before, after, around)

# Matches any type tag in its selector position.
wildcard = Marker("*")

# Around-chain nesting policies; the named end of the ranking is the outermost wrapper.
most_specific = Marker("most-specific")
least_specific = Marker("least-specific")

def canonize_qualifier(x):
    """Canonicalize `x` into one of the four qualifier markers.

    Accepted: a qualifier marker, or its name as a string with or without
    the leading colon (`":before"`, `"before"`). `None` means `primary`.
    """
    if x is None:
        return primary
    if isinstance(x, Marker):
        if x in QUALIFIERS:
            return x
    elif isinstance(x, str):
        name = x if x.startswith(":") else f":{x}"
        for q in QUALIFIERS:
            if q.name == name:
                return q
    choices = ", ".join(q.name for q in QUALIFIERS)
    raise InvalidQualifierError(f"Unknown method qualifier {repr(x)}; expected one of {choices}")

def iswildcard(x):
    """Return whether the selector element `x` is the wildcard (or its string spelling `"*"`)."""
    return x is wildcard or (isinstance(x, str) and x == "*")
