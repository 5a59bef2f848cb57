# -*- coding: utf-8; -*-
"""Type-of capabilities: how a run-time value is turned into a type tag.

A generic function never inspects argument values itself. It asks its
*type-of* capability for a tag for each argument, and matches the tags
against the selectors of the registered methods. Any deterministic, total
callable will do; these are the stock ones.

Optionally, a generic function can also be given an *ancestry* walker, which
maps a tag to the sequence of tags (most specific first) that a value with
that tag may match. This enables subclass values to hit superclass selectors.
Without one, matching is exact (or wildcard).
"""

__all__ = ["type_of", "type_name_of", "class_ancestry"]

def type_of(value):
    """Tag a value by its class object.

    Two unrelated classes that happen to share a name get different tags.
    `None` is tagged `NoneType`, so absent values dispatch like any other.
    """
    return type(value)

def type_name_of(value):
    """Tag a value by the name of its class, e.g. `"Dog"` or `"NoneType"`.

    Selectors must then use the names, too. Cheap to write, but names may
    collide across unrelated classes; prefer `type_of` when that matters.
    """
    return type(value).__name__

def class_ancestry(tag):
    """Ancestry walker for `type_of` tags: the MRO of the class.

    Non-class tags have no ancestry beyond themselves.
    """
    if isinstance(tag, type):
        return tag.__mro__
    return (tag,)
