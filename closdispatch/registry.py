# -*- coding: utf-8; -*-
"""Method storage and selector matching.

This is pure storage plus pattern matching. Ranking applicable methods by
specificity, and combining them into one call, is the business of the
dispatcher (see `closdispatch.dispatcher`).

Concurrency: writers serialize on a lock and publish a new immutable
`RegistrySnapshot` (read-copy-update). Readers take no lock; whoever holds a
snapshot sees one consistent state of the registry for as long as they keep it.
"""

__all__ = ["MethodEntry", "Candidate", "MethodRegistry", "RegistrySnapshot",
           "canonize_selector"]

from collections import namedtuple
from collections.abc import Sequence
from itertools import count
import threading

from .errors import InvalidSelectorError, DuplicateMethodError, format_selector
from .markers import primary, wildcard, iswildcard, canonize_qualifier

class MethodEntry(namedtuple("MethodEntry", ["selector", "qualifier", "body", "sequence"])):
    """A registered method. Immutable.

    `selector`: tuple of type tags and `wildcard`s, one per argument position.
    `qualifier`: one of the qualifier markers.
    `body`: the callable.
    `sequence`: registration index; earlier registrations have smaller numbers.
    """
    __slots__ = ()

    @property
    def arity(self):
        return len(self.selector)

    @property
    def specificity(self):
        """Number of selector positions that name a concrete type tag."""
        return sum(1 for x in self.selector if x is not wildcard)

    @property
    def key(self):
        return (self.selector, self.qualifier)

    def __repr__(self):
        return f"<MethodEntry {self.qualifier} {format_selector(self.selector)} #{self.sequence}>"

# An applicable entry, and how far up the argument ancestries its match had to go.
Candidate = namedtuple("Candidate", ["entry", "distance"])

def canonize_selector(selector):
    """Validate `selector` and return it as a tuple, with `"*"` replaced by `wildcard`.

    Raises `InvalidSelectorError` if the selector is not a sequence, is empty,
    or contains an unhashable element.
    """
    if isinstance(selector, (str, bytes)) or not isinstance(selector, Sequence):
        raise InvalidSelectorError(f"A selector must be a sequence of type tags, got {repr(selector)}")
    if not selector:
        raise InvalidSelectorError("A selector must have at least one position")
    canonized = []
    for k, x in enumerate(selector):
        if iswildcard(x):
            canonized.append(wildcard)
            continue
        try:
            hash(x)
        except TypeError:
            raise InvalidSelectorError(f"Selector position {k}: type tag {repr(x)} is not hashable")
        canonized.append(x)
    return tuple(canonized)

def _match(selector, lineages):
    """Match a selector against a call.

    `lineages`: for each argument, the sequence of tags it can match,
                most specific first. For exact matching, just `(tag,)`.

    Return the total ancestry distance if the selector matches, else `None`.
    Arity must already agree.
    """
    distance = 0
    for pattern, lineage in zip(selector, lineages):
        if pattern is wildcard:
            continue
        try:
            distance += lineage.index(pattern)
        except ValueError:
            return None
    return distance

class RegistrySnapshot:
    """An immutable view of the registry at one point in time.

    Entries are indexed by `(qualifier, arity)`; the index preserves
    registration order.
    """
    def __init__(self, entries=(), ancestry=None):
        self._entries = tuple(entries)
        self.ancestry = ancestry
        index = {}
        for entry in self._entries:
            index.setdefault((entry.qualifier, entry.arity), []).append(entry)
        self._index = {k: tuple(v) for k, v in index.items()}
        self._keys = frozenset(entry.key for entry in self._entries)

    def lineages(self, call_types):
        """Return the per-argument match lineages for the type tuple of a call."""
        if self.ancestry is None:
            return tuple((tag,) for tag in call_types)
        return tuple(tuple(self.ancestry(tag)) for tag in call_types)

    def candidates(self, qualifier, call_types, *, lineages=None):
        """Like `applicable`, but return `Candidate`s, which also carry the match distance.

        `lineages`: precomputed result of `self.lineages(call_types)`, if you have it.
        """
        q = canonize_qualifier(qualifier)
        if lineages is None:
            lineages = self.lineages(call_types)
        out = []
        for entry in self._index.get((q, len(call_types)), ()):
            distance = _match(entry.selector, lineages)
            if distance is not None:
                out.append(Candidate(entry, distance))
        return out

    def applicable(self, qualifier, call_types):
        """Return the entries with `qualifier` whose selector matches `call_types`.

        Registration order. Empty if nothing matches.
        """
        return [c.entry for c in self.candidates(qualifier, call_types)]

    def entries(self):
        return self._entries

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def __contains__(self, key):
        selector, qualifier = key
        return (canonize_selector(selector), canonize_qualifier(qualifier)) in self._keys

class MethodRegistry:
    """The set of methods of one generic function.

    `name`: used in error messages.
    `ancestry`: ancestry walker (see `closdispatch.typetags`), or `None`
                for exact-or-wildcard matching.
    """
    def __init__(self, name="<generic>", *, ancestry=None):
        self.name = name
        self.ancestry = ancestry
        self._lock = threading.Lock()
        self._sequence = count()  # never reset; sequence numbers are not reused.
        self._snapshot = RegistrySnapshot((), ancestry)

    def _publish(self, entries):
        # Rebinding an attribute is atomic, so readers see either the old or the new snapshot.
        self._snapshot = RegistrySnapshot(entries, self.ancestry)

    def register(self, selector, qualifier=primary, body=None):
        """Add a method. Return the new `MethodEntry`.

        Validation happens before anything is stored; on error, the registry is unchanged.
        Raises `InvalidSelectorError`, `InvalidQualifierError`, `DuplicateMethodError`,
        or `TypeError` if `body` is not callable.
        """
        selector = canonize_selector(selector)
        qualifier = canonize_qualifier(qualifier)
        if not callable(body):
            raise TypeError(f"{self.name}: method body must be callable, got {repr(body)}")
        with self._lock:
            current = self._snapshot
            if (selector, qualifier) in current._keys:
                raise DuplicateMethodError(f"{self.name}: a {qualifier} method is already defined for {format_selector(selector)}.",
                                           selector=selector, qualifier=qualifier)
            entry = MethodEntry(selector, qualifier, body, next(self._sequence))
            self._publish(current.entries() + (entry,))
        return entry

    def unregister(self, selector, qualifier=primary):
        """Remove the method registered for `(selector, qualifier)`, if any.

        Return whether something was removed.
        """
        key = (canonize_selector(selector), canonize_qualifier(qualifier))
        with self._lock:
            current = self._snapshot
            if key not in current._keys:
                return False
            self._publish(tuple(entry for entry in current.entries() if entry.key != key))
        return True

    def clear(self):
        """Remove all methods."""
        with self._lock:
            self._publish(())

    def snapshot(self):
        """Return the current `RegistrySnapshot`. It will not change, even if the registry does."""
        return self._snapshot

    def applicable(self, qualifier, call_types):
        """Return the entries with `qualifier` whose selector matches `call_types`.

        A selector matches when it has the same arity as the call, and each of
        its positions is either `wildcard` or matches the call's type tag in
        that position (exactly equal, or, with an ancestry walker, present in
        the tag's ancestry).

        Registration order. Empty if nothing matches; that is not an error here.
        """
        return self._snapshot.applicable(qualifier, call_types)

    def entries(self):
        """Return all entries, in registration order."""
        return self._snapshot.entries()

    def __len__(self):
        return len(self._snapshot)

    def __iter__(self):
        return iter(self._snapshot)

    def __contains__(self, key):
        """`(selector, qualifier) in registry`"""
        return key in self._snapshot
