# -*- coding: utf-8; -*-
"""Error taxonomy of the dispatch engine.

Registration errors are raised before the registry is touched, so a failed
`register` leaves no trace. Dispatch errors are raised before any method body
runs. Failures inside method bodies belong to the bodies; see `MethodExecutionError`.
"""

__all__ = ["DispatchError",
           "InvalidSelectorError", "InvalidQualifierError", "DuplicateMethodError",
           "NoApplicableMethodError", "MethodExecutionError",
           "format_tag", "format_selector"]

class DispatchError(Exception):
    """Base class for errors raised by the dispatch engine itself."""

class InvalidSelectorError(DispatchError, ValueError):
    """The selector of a method being registered is empty or malformed."""

class InvalidQualifierError(DispatchError, ValueError):
    """The qualifier of a method being registered is not one of the four known ones."""

class DuplicateMethodError(DispatchError, ValueError):
    """A method with the same selector and qualifier is already registered."""
    def __init__(self, msg, *, selector=None, qualifier=None):
        super().__init__(msg)
        self.selector = selector
        self.qualifier = qualifier

class NoApplicableMethodError(DispatchError, TypeError):
    """No primary method matches the types of the arguments of a call.

    Subclasses `TypeError`, so code that guards a generic function call
    with `except TypeError` keeps working.
    """
    def __init__(self, msg, *, name=None, call_types=(), args=()):
        super().__init__(msg)
        self.name = name
        self.call_types = call_types
        self.call_args = args

class MethodExecutionError(DispatchError):
    """A method body failed. Raised only by dispatchers created with `wrap_errors=True`.

    The original exception is available as `.error`, and is also the `__cause__`.
    """
    def __init__(self, msg, *, entry, error):
        super().__init__(msg)
        self.entry = entry
        self.qualifier = entry.qualifier
        self.selector = entry.selector
        self.error = error

def format_tag(tag):
    """Format a type tag (or a selector element) for human consumption."""
    if isinstance(tag, type):
        return tag.__qualname__
    return str(tag)

def format_selector(selector):
    """Format a selector (or a call's type tuple) like a parameter list: `(Dog, *)`."""
    return f"({', '.join(format_tag(x) for x in selector)})"
