# -*- coding: utf-8; -*-
"""Generic functions with CLOS-style method combination.

Terminology:

  - A *generic function* is a callable with many possible implementations,
    chosen by the run-time types of *all* of its arguments jointly.
  - Each implementation is a *method*: a body, a *selector* (one type tag or
    wildcard per argument position), and a *qualifier* that gives its role in
    the combination protocol (`:primary`, `:before`, `:after`, `:around`).

Example::

    from closdispatch import generic, wildcard

    greet = generic("greet")

    @greet.method(Dog, wildcard)
    def _(dog, other):
        return "Woof"

    @greet.method(Animal, wildcard)
    def _(animal, other):
        return "..."

    @greet.before(Dog, wildcard)
    def _(dog, other):
        print("sniff")

    @greet.around(Dog, wildcard)
    def _(call_next, dog, other):
        print("wag")
        return call_next()

    greet(Dog(), None)  # --> "Woof", after printing "wag" and "sniff"

**Method lookup**:

On each call, the types of the arguments are computed with the generic
function's *type-of* capability (see `closdispatch.typetags`), and for each
qualifier the applicable methods are collected: same arity, and every selector
position either wildcard or matching the argument's tag.

Applicable methods are ranked by *specificity*, the number of non-wildcard
selector positions; more specific first. Ties go to the method registered
earlier. (With an ancestry walker, ties in specificity are first broken by how
far up the argument ancestries the match had to go; nearer wins.)

**Method combination**:

  - A primary method is required. Without one, the call raises
    `NoApplicableMethodError` and no method body runs.
  - Only the highest-ranked primary method runs.
  - All `:before` methods run before it, most specific first.
  - All `:after` methods run after it, least specific first. Their return
    values, like those of `:before` methods, are discarded; the result of the
    call is the result of the primary method.
  - `:around` methods wrap all of the above. Each one receives a continuation
    `call_next` as its first argument, followed by the call's arguments, and
    decides whether, when and how many times to call it. Calling
    `call_next()` continues with the same arguments; `call_next(*args)`
    substitutes new ones, and `call_next.with_args(*args)` does the same but
    also allows substituting zero arguments. Substituted arguments are not
    re-dispatched. By default, the least specific `:around` method is the
    outermost one, so it runs first (see `DispatchConfig`).

Resolution of a call works on one consistent snapshot of the method registry,
so it is safe to register methods while other threads are calling the generic
function. The chain of callables that runs the combination is built fresh for
each call.

Unlike `functools.singledispatch`, there is no class hierarchy awareness
unless you ask for it, by passing an ancestry walker such as
`closdispatch.typetags.class_ancestry`.
"""

__all__ = ["DispatchConfig", "Dispatcher", "EffectiveMethod",
           "generic", "isgeneric", "methods", "format_methods", "list_methods"]

from collections import namedtuple
import threading

from .errors import (NoApplicableMethodError, MethodExecutionError,
                     format_selector)
from .markers import (primary, before, after, around, canonize_qualifier,
                      most_specific, least_specific)
from .registry import MethodRegistry
from .typetags import type_of

# Per-thread invocation state: nesting depth of generic function calls, and the
# exceptions that already carry dispatch context from the current top-level call.
_L = threading.local()

def _seen():
    if not getattr(_L, "depth", 0):
        return {}
    if not hasattr(_L, "seen"):
        _L.seen = {}
    return _L.seen

class DispatchConfig:
    """Process-wide defaults for new generic functions.

    Customize by assigning to the class attributes; a generic function reads
    these once, when it is created. Each can be overridden per generic
    function by the keyword arguments of `Dispatcher`.

    `typeof`: the type-of capability; a callable mapping a value to its type tag.
    `ancestry`: ancestry walker, or `None` for exact-or-wildcard matching.
    `around_outermost`: `least_specific` or `most_specific` (CLOS order); which
                        end of the `:around` ranking is the outermost wrapper.
    `wrap_errors`: if `True`, a failing method body raises `MethodExecutionError`.
                   If `False`, the body's own exception propagates as-is, with
                   the invocation context attached to it.
    """
    typeof = type_of
    ancestry = None
    around_outermost = least_specific
    wrap_errors = False

class EffectiveMethod(namedtuple("EffectiveMethod", ["call_types", "primaries", "befores", "afters", "arounds"])):
    """The resolved methods for one call. Each sequence is ranked, most specific first."""
    __slots__ = ()

    @property
    def primary(self):
        """The primary method that runs."""
        return self.primaries[0]

class Dispatcher:
    """A generic function.

    Owns its method registry; generic functions do not share methods.

    `name`: used in `repr` and error messages. `None` means `"<generic>"`.

    See `DispatchConfig` for the keyword arguments. For each of them, `None`
    (the default) means "use the current `DispatchConfig` value". To turn off
    ancestry-aware matching in a process where `DispatchConfig.ancestry` is
    set, pass `ancestry=False`.
    """
    def __init__(self, name="<generic>", *, typeof=None, ancestry=None,
                 around_outermost=None, wrap_errors=None):
        self.name = "<generic>" if name is None else name
        self.typeof = DispatchConfig.typeof if typeof is None else typeof
        if ancestry is None:
            ancestry = DispatchConfig.ancestry
        if ancestry is False:
            ancestry = None
        if around_outermost is None:
            around_outermost = DispatchConfig.around_outermost
        if around_outermost not in (most_specific, least_specific):
            raise ValueError(f"around_outermost must be `most_specific` or `least_specific`, got {repr(around_outermost)}")
        self.around_outermost = around_outermost
        self.wrap_errors = DispatchConfig.wrap_errors if wrap_errors is None else bool(wrap_errors)
        if not callable(self.typeof):
            raise TypeError(f"typeof must be callable, got {repr(self.typeof)}")
        self.registry = MethodRegistry(self.name, ancestry=ancestry)

    def __repr__(self):
        n = len(self.registry)
        return f"<Dispatcher {self.name}: {n} method{'s' if n != 1 else ''}>"

    # --------------------------------------------------------------------------------
    # Registration

    def register(self, selector, qualifier=primary, body=None):
        """Register a method.

        With `body`, register it and return the new `MethodEntry`.

        Without `body`, return a decorator that registers the decorated
        function, and returns the function unchanged::

            @greet.register(["Dog", "*"], ":before")
            def _(dog, other):
                ...

        Raises `InvalidSelectorError`, `InvalidQualifierError`, or
        `DuplicateMethodError`; then nothing is registered.
        """
        if body is None:
            def register_decorator(f):
                self.registry.register(selector, qualifier, f)
                return f
            return register_decorator
        return self.registry.register(selector, qualifier, body)

    def define(self, selector, body, qualifier=primary):
        """Register a method, and return this generic function, so calls can be chained."""
        self.registry.register(selector, qualifier, body)
        return self

    def unregister(self, selector, qualifier=primary):
        """Remove a method, if registered. Return whether something was removed."""
        return self.registry.unregister(selector, qualifier)

    # --------------------------------------------------------------------------------
    # Dispatch

    def call_types(self, args):
        """Return the type tag tuple of the arguments `args`."""
        return tuple(self.typeof(x) for x in args)

    def resolve(self, *args):
        """Find and rank the methods that a call with `args` would run. Run nothing.

        Return an `EffectiveMethod`. Raise `NoApplicableMethodError` if no
        primary method is applicable.
        """
        call_types = self.call_types(args)
        snapshot = self.registry.snapshot()
        lineages = snapshot.lineages(call_types)
        def ranked(qualifier):
            candidates = snapshot.candidates(qualifier, call_types, lineages=lineages)
            candidates.sort(key=_rank)
            return tuple(c.entry for c in candidates)
        primaries = ranked(primary)
        if not primaries:
            msg = (f"No primary method for the call {self.name}{format_selector(call_types)}.\n"
                   f"{_format_entries(self.name, snapshot.entries())}")
            raise NoApplicableMethodError(msg, name=self.name, call_types=call_types, args=args)
        return EffectiveMethod(call_types, primaries, ranked(before), ranked(after), ranked(around))

    def invoke(self, *args):
        """Call the generic function with the positional arguments `args`."""
        effective = self.resolve(*args)
        _L.depth = getattr(_L, "depth", 0) + 1
        try:
            return self._compose(effective)(*args)
        finally:
            _L.depth -= 1
            if not _L.depth:
                _L.seen = {}

    def __call__(self, *args):
        return self.invoke(*args)

    def _compose(self, effective):
        """Build the chain of callables that runs the method combination for `effective`."""
        run = self._run
        the_primary = effective.primary
        befores = effective.befores
        afters = effective.afters

        def inner_stage(*args):
            for entry in befores:
                run(entry, args)
            result = run(the_primary, args)
            for entry in reversed(afters):
                run(entry, args)
            return result

        # Each wrap becomes the new outermost stage, so wrap starting from the innermost one.
        arounds = effective.arounds
        if self.around_outermost is most_specific:
            arounds = reversed(arounds)
        stage = inner_stage
        for entry in arounds:
            stage = self._wrap(entry, stage)
        return stage

    def _wrap(self, entry, continuation):
        def around_stage(*args):
            def call_next(*new_args):
                return continuation(*(new_args or args))
            def with_args(*new_args):
                return continuation(*new_args)
            call_next.with_args = with_args
            return self._run(entry, args, call_next)
        return around_stage

    def _run(self, entry, args, call_next=None):
        try:
            if call_next is None:
                return entry.body(*args)
            return entry.body(call_next, *args)
        except MethodExecutionError:  # already wrapped further in
            raise
        except Exception as err:
            if self.wrap_errors:
                msg = (f"{self.name}: {entry.qualifier} method {format_selector(entry.selector)} "
                       f"raised {type(err).__name__}: {err}")
                raise MethodExecutionError(msg, entry=entry, error=err) from err
            self._attach_context(err, entry)
            raise

    def _attach_context(self, err, entry):
        # Within one top-level call, the innermost failing method wins. An exception
        # instance raised again by a later call gets that call's context.
        seen = _seen()
        if id(err) in seen:
            return
        seen[id(err)] = err
        err.dispatch_context = (self.name, entry.qualifier, entry.selector)
        if hasattr(err, "add_note"):  # Python 3.11+
            old_note = getattr(err, "_dispatch_note", None)
            notes = getattr(err, "__notes__", None)
            if old_note is not None and notes is not None and old_note in notes:
                notes.remove(old_note)
            err._dispatch_note = (f"while running {entry.qualifier} method {format_selector(entry.selector)} "
                                  f"of generic function {self.name}")
            err.add_note(err._dispatch_note)

    # --------------------------------------------------------------------------------
    # Introspection

    def list_methods(self, qualifier=None):
        """Return the registered `MethodEntry`s, in registration order.

        If `qualifier` is given, only those with that qualifier.
        """
        entries = self.registry.entries()
        if qualifier is None:
            return list(entries)
        q = canonize_qualifier(qualifier)
        return [entry for entry in entries if entry.qualifier is q]

    def format_methods(self):
        """Format, as a string, a human-readable list of the registered methods."""
        return _format_entries(self.name, self.registry.entries())

    # --------------------------------------------------------------------------------
    # Decorator shorthands. These names shadow the qualifier markers in the class body,
    # so they are defined last.

    def method(self, *selector):
        """Decorator. Register a `:primary` method for `selector`."""
        return self.register(selector, primary)

    def before(self, *selector):
        """Decorator. Register a `:before` method for `selector`."""
        return self.register(selector, before)

    def after(self, *selector):
        """Decorator. Register an `:after` method for `selector`."""
        return self.register(selector, after)

    def around(self, *selector):
        """Decorator. Register an `:around` method for `selector`.

        The decorated function is called as `f(call_next, *args)`. `call_next()`
        continues with `args`, `call_next(*new_args)` with `new_args`, and
        `call_next.with_args(*new_args)` with `new_args` even when there are none.
        """
        return self.register(selector, around)

def _rank(candidate):
    entry = candidate.entry
    return (-entry.specificity, candidate.distance, entry.sequence)

def _format_body(body):
    return getattr(body, "__qualname__", None) or repr(body)

def _format_entries(name, entries):
    if entries:
        lines = [f"  {entry.qualifier} {format_selector(entry.selector)} -> {_format_body(entry.body)}"
                 for entry in entries]
        methods_str = "\n".join(lines)
    else:
        methods_str = "  <no methods registered>"
    return f"Methods for generic {name}:\n{methods_str}"

# --------------------------------------------------------------------------------

def generic(name=None, **options):
    """Create a new, empty generic function. See `Dispatcher` for the options."""
    return Dispatcher(name, **options)

def isgeneric(f):
    """Return whether `f` is a generic function."""
    return isinstance(f, Dispatcher)

def list_methods(f, qualifier=None):
    """Return a list of the methods currently registered to generic function `f`."""
    if not isgeneric(f):
        raise TypeError(f"{repr(f)} is not a generic function, it does not have methods.")
    return f.list_methods(qualifier)

def format_methods(f):
    """Format, as a string, a human-readable list of the methods registered to `f`."""
    if not isgeneric(f):
        raise TypeError(f"{repr(f)} is not a generic function, it does not have methods.")
    return f.format_methods()

def methods(f):
    """Print, to stdout, a human-readable list of the methods registered to `f`.

    For introspection in the REPL. Example::

        greet = generic("greet")
        greet.define(["Dog", "*"], lambda d, x: "Woof")
        greet.define(["Dog", "*"], lambda d, x: print("sniff"), ":before")
        methods(greet)

    prints something like::

        Methods for generic greet:
          :primary (Dog, *) -> <lambda>
          :before (Dog, *) -> <lambda>
    """
    print(format_methods(f))
