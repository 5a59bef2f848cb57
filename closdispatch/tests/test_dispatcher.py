# -*- coding: utf-8; -*-

from contextlib import redirect_stdout
from io import StringIO

from ..dispatcher import (Dispatcher, DispatchConfig, generic, isgeneric,
                          methods, format_methods, list_methods)
from ..markers import primary, before, after, around, wildcard, most_specific, least_specific
from ..errors import NoApplicableMethodError
from ..typetags import type_name_of, class_ancestry

class Animal:
    pass
class Dog(Animal):
    pass
class Cat(Animal):
    pass

def recorder(log, tag, result=None):
    """Make a method body that logs `tag` and returns `result`."""
    def body(*args):
        log.append(tag)
        return result
    return body

def woof(dog, other):
    return "Woof"

def sniff(dog, other):
    pass

def test_single_axis_dispatch():
    greet = generic("greet")
    greet.define([Dog, wildcard], woof)
    greet.define([Animal, wildcard], lambda animal, other: "...")
    assert greet(Dog(), 42) == "Woof"
    assert greet(Dog(), None) == "Woof"
    assert greet(Dog(), Cat()) == "Woof"
    assert greet(Animal(), 42) == "..."  # Dog and Animal are distinct tags
    try:
        greet(Cat(), 42)  # no ancestry walker, so Cat does not match Animal
    except NoApplicableMethodError:
        pass
    else:
        assert False

def test_combination_protocol():
    log = []
    f = Dispatcher("f", typeof=lambda x: "X")  # everything is an X
    f.define(["X"], lambda x: "P")
    f.define(["X"], lambda x: log.append("B"), before)
    f.define(["X"], lambda x: log.append("A"), after)
    def ar(call_next, x):
        log.append("AR1")
        r = call_next()
        log.append("AR2")
        return r
    f.define(["X"], ar, around)
    assert f(object()) == "P"
    assert log == ["AR1", "B", "A", "AR2"]

def test_exact_match_priority():
    # Most specific wins, regardless of registration order.
    def populate(f, order):
        bodies = {0: ([wildcard, wildcard], lambda x, y: "generic"),
                  1: ([int, wildcard], lambda x, y: "int-first"),
                  2: ([int, str], lambda x, y: "exact")}
        for k in order:
            selector, body = bodies[k]
            f.define(selector, body)
        return f
    for order in ((0, 1, 2), (2, 1, 0), (1, 2, 0)):
        f = populate(generic("f"), order)
        assert f(1, "x") == "exact"
        assert f(1, 2.0) == "int-first"
        assert f("a", "b") == "generic"
        assert f(None, None) == "generic"

def test_deterministic_tie_break():
    f = generic("f")
    f.define([int, wildcard], lambda x, y: "A")
    f.define([wildcard, str], lambda x, y: "B")
    assert all(f(1, "x") == "A" for _ in range(20))

    g = generic("g")
    g.define([wildcard, str], lambda x, y: "B")
    g.define([int, wildcard], lambda x, y: "A")
    assert all(g(1, "x") == "B" for _ in range(20))

def test_primary_required():
    log = []
    f = generic("f")
    f.define([int], recorder(log, "before"), before)
    f.define([int], recorder(log, "after"), after)
    f.define([int], lambda call_next, x: log.append("around"), around)
    f.define([str], recorder(log, "str"))
    try:
        f(42)
    except NoApplicableMethodError as err:
        assert err.call_types == (int,)
        assert err.call_args == (42,)
        assert err.name == "f"
    else:
        assert False
    assert log == []  # nothing ran

    # it is also a TypeError
    try:
        f(4.2)
    except TypeError:
        pass
    else:
        assert False

def test_before_primary_after_order():
    log = []
    f = generic("f")
    f.define([int, str], recorder(log, "P", "result"))
    f.define([wildcard, wildcard], recorder(log, "b0"), before)
    f.define([int, wildcard], recorder(log, "b1x"), before)
    f.define([int, str], recorder(log, "b2"), before)
    f.define([wildcard, str], recorder(log, "b1y"), before)
    f.define([wildcard, wildcard], recorder(log, "a0"), after)
    f.define([int, wildcard], recorder(log, "a1x"), after)
    f.define([int, str], recorder(log, "a2"), after)
    f.define([wildcard, str], recorder(log, "a1y"), after)
    assert f(1, "a") == "result"
    # before: most specific first; after: least specific first; ties in registration order.
    assert log == ["b2", "b1x", "b1y", "b0", "P", "a0", "a1y", "a1x", "a2"]

def test_before_and_after_do_not_change_result():
    f = generic("f")
    f.define([int], lambda x: x + 1)
    f.define([int], lambda x: "ignored", before)
    f.define([int], lambda x: "also ignored", after)
    assert f(1) == 2

def make_nested_arounds(log, **options):
    f = generic("f", **options)
    f.define([int, str], recorder(log, "P", "result"))
    def general(call_next, x, y):
        log.append("enter general")
        r = call_next()
        log.append("exit general")
        return r
    def specific(call_next, x, y):
        log.append("enter specific")
        r = call_next()
        log.append("exit specific")
        return r
    f.define([int, wildcard], general, around)
    f.define([int, str], specific, around)
    return f

def test_around_nesting():
    log = []
    f = make_nested_arounds(log)
    assert f.around_outermost is least_specific
    assert f(1, "a") == "result"
    assert log == ["enter general", "enter specific", "P", "exit specific", "exit general"]

    log = []
    f = make_nested_arounds(log, around_outermost=most_specific)
    assert f(1, "a") == "result"
    assert log == ["enter specific", "enter general", "P", "exit general", "exit specific"]

def test_around_controls_continuation():
    log = []
    f = generic("f")
    f.define([int], lambda x: x * 10)
    f.define([int], lambda x: log.append(f"before {x}"), before)
    f.define([int], lambda x: log.append(f"after {x}"), after)

    # called twice, second time with substituted arguments
    def twice(call_next, x):
        first = call_next()
        second = call_next(x + 1)
        return (first, second)
    f.define([int], twice, around)
    assert f(1) == (10, 20)
    assert log == ["before 1", "after 1", "before 2", "after 2"]

    # not called at all
    log.clear()
    f.unregister([int], around)
    f.define([int], lambda call_next, x: "short-circuit", around)
    assert f(1) == "short-circuit"
    assert log == []

    # result post-processed
    f.unregister([int], around)
    f.define([int], lambda call_next, x: call_next() + 1, around)
    assert f(1) == 11

def test_inner_stage_runs_once_per_continuation_call():
    log = []
    f = generic("f")
    f.define([int], recorder(log, "P", "result"))
    def outer(call_next, x):  # least specific, so outermost
        log.append("outer")
        return [call_next(), call_next()]
    def inner(call_next, x):
        log.append("inner")
        return call_next()
    f.define([wildcard], outer, around)
    f.define([int], inner, around)
    assert f(1) == ["result", "result"]
    assert log == ["outer", "inner", "P", "inner", "P"]

def test_substituted_arguments_are_not_redispatched():
    f = generic("f")
    f.define([int], lambda x: f"int {x}")
    f.define([str], lambda x: f"str {x}")
    f.define([int], lambda call_next, x: call_next("surprise"), around)
    assert f(1) == "int surprise"

def test_continuation_with_explicit_arguments():
    f = generic("f")
    f.define([int], lambda *xs: len(xs))
    f.define([int], lambda call_next, x: (call_next(), call_next.with_args(), call_next.with_args(1, 2)), around)
    assert f(1) == (1, 0, 2)

def test_none_and_wildcard():
    f = generic("f")
    f.define([wildcard], lambda x: "anything")
    for x in (None, 0, "", [], object(), int, lambda: 0, Dog()):
        assert f(x) == "anything"
    f.define([type(None)], lambda x: "nothing")
    assert f(None) == "nothing"
    assert f(0) == "anything"

def test_type_names_as_tags():
    greet = generic("greet", typeof=type_name_of)
    greet.define(["Dog", "*"], woof)
    greet.define(["NoneType", "*"], lambda x, y: "nobody")
    assert greet(Dog(), 1) == "Woof"
    assert greet(None, 1) == "nobody"
    try:
        greet(Cat(), 1)
    except NoApplicableMethodError:
        pass
    else:
        assert False

def test_arity():
    f = generic("f")
    f.define([int], lambda x: "one")
    f.define([int, int], lambda x, y: "two")
    assert f(1) == "one"
    assert f(1, 2) == "two"
    for args in ((), (1, 2, 3)):
        try:
            f(*args)
        except NoApplicableMethodError:
            pass
        else:
            assert False

def test_recursive_generic():
    # The role of an argument depends on the number of arguments, like `range`.
    rng = generic("rng")
    rng.define([int], lambda stop: rng(0, stop))
    rng.define([int, int], lambda start, stop: rng(start, 1, stop))
    rng.define([int, int, int], lambda start, step, stop: (start, step, stop))
    assert rng(10) == (0, 1, 10)
    assert rng(2, 10) == (2, 1, 10)
    assert rng(2, 3, 10) == (2, 3, 10)

def test_registration_surface():
    f = generic("f")
    assert f.define([str], lambda x: "str").define([str], lambda x: None, ":before") is f

    @f.method(int)
    def f_int(x):
        return "int"
    assert f_int(3) == "int"  # the decorated function itself is unchanged
    assert f(3) == "int"

    @f.register([str], ":around")
    def f_around(call_next, x):
        return call_next().upper()
    assert f("a") == "STR"

    log = []
    @f.before(int)
    def f_before(x):
        log.append("before")
    @f.after(int)
    def f_after(x):
        log.append("after")
    @f.around(int)
    def f_around_int(call_next, x):
        log.append("around")
        return call_next()
    assert f(3) == "int"
    assert log == ["around", "before", "after"]

    entry = f.register([float], primary, lambda x: "float")
    assert entry.selector == (float,)
    assert f(1.0) == "float"

    assert f.unregister([float])
    assert not f.unregister([float])
    try:
        f(1.0)
    except NoApplicableMethodError:
        pass
    else:
        assert False

def test_resolve():
    log = []
    f = generic("f")
    e_general = f.register([int, wildcard], primary, recorder(log, "general"))
    e_exact = f.register([int, str], primary, recorder(log, "exact"))
    e_before = f.register([wildcard, wildcard], before, recorder(log, "before"))
    eff = f.resolve(1, "a")
    assert eff.call_types == (int, str)
    assert eff.primary is e_exact
    assert eff.primaries == (e_exact, e_general)
    assert eff.befores == (e_before,)
    assert eff.afters == ()
    assert eff.arounds == ()
    assert log == []

def test_introspection():
    greet = generic("greet")
    assert isgeneric(greet)
    assert not isgeneric(woof)
    assert greet.format_methods() == "Methods for generic greet:\n  <no methods registered>"

    greet.define([Dog, wildcard], woof)
    greet.define([Dog, wildcard], sniff, before)
    assert repr(greet) == "<Dispatcher greet: 2 methods>"
    assert [e.body for e in list_methods(greet)] == [woof, sniff]
    assert [e.body for e in greet.list_methods(":before")] == [sniff]
    assert greet.list_methods(around) == []

    text = format_methods(greet)
    assert text.splitlines() == ["Methods for generic greet:",
                                 "  :primary (Dog, *) -> woof",
                                 "  :before (Dog, *) -> sniff"]
    out = StringIO()
    with redirect_stdout(out):
        methods(greet)
    assert out.getvalue() == text + "\n"

    for f in (list_methods, format_methods, methods):
        try:
            f(woof)
        except TypeError:
            pass
        else:
            assert False

def test_no_applicable_method_message():
    greet = generic("greet")
    greet.define([Dog, wildcard], woof)
    try:
        greet(Cat(), 1)
    except NoApplicableMethodError as err:
        lines = str(err).splitlines()
        assert lines[0] == "No primary method for the call greet(Cat, int)."
        assert lines[1] == "Methods for generic greet:"
        assert lines[2] == "  :primary (Dog, *) -> woof"
    else:
        assert False

def test_independent_generics():
    f = generic("f")
    g = generic("g")
    f.define([int], lambda x: "f")
    g.define([int], lambda x: "g")
    assert f(1) == "f"
    assert g(1) == "g"
    f.unregister([int])
    assert g(1) == "g"

def test_config_defaults():
    old = DispatchConfig.around_outermost
    DispatchConfig.around_outermost = most_specific
    try:
        f = generic("f")
    finally:
        DispatchConfig.around_outermost = old
    assert f.around_outermost is most_specific
    assert generic("g").around_outermost is least_specific
    assert generic("g", around_outermost=None).around_outermost is least_specific

    old = DispatchConfig.typeof
    DispatchConfig.typeof = type_name_of
    try:
        f = generic("f")
        g = generic("g", typeof=None)
    finally:
        DispatchConfig.typeof = old
    f.define(["int"], lambda x: "by name")
    g.define(["int"], lambda x: "by name")
    assert f(1) == "by name"
    assert g(1) == "by name"

    old = DispatchConfig.ancestry
    DispatchConfig.ancestry = class_ancestry
    try:
        f = generic("f", ancestry=None)
        g = generic("g", ancestry=False)
    finally:
        DispatchConfig.ancestry = old
    for h in (f, g):
        h.define([Animal], lambda x: "animal")
    assert f(Dog()) == "animal"
    try:
        g(Dog())  # flat matching, Dog is not Animal
    except NoApplicableMethodError:
        pass
    else:
        assert False

    assert not generic("g").wrap_errors
    assert not generic("g", wrap_errors=None).wrap_errors
    assert generic("g", wrap_errors=True).wrap_errors

    assert generic().name == "<generic>"
    assert generic(None).name == "<generic>"
    assert Dispatcher(None).name == "<generic>"

    try:
        generic("f", around_outermost="outside")
    except ValueError:
        pass
    else:
        assert False
    try:
        generic("f", typeof="not callable")
    except TypeError:
        pass
    else:
        assert False

if __name__ == '__main__':
    test_single_axis_dispatch()
    test_combination_protocol()
    test_exact_match_priority()
    test_deterministic_tie_break()
    test_primary_required()
    test_before_primary_after_order()
    test_before_and_after_do_not_change_result()
    test_around_nesting()
    test_around_controls_continuation()
    test_inner_stage_runs_once_per_continuation_call()
    test_substituted_arguments_are_not_redispatched()
    test_continuation_with_explicit_arguments()
    test_none_and_wildcard()
    test_type_names_as_tags()
    test_arity()
    test_recursive_generic()
    test_registration_surface()
    test_resolve()
    test_introspection()
    test_no_applicable_method_message()
    test_independent_generics()
    test_config_defaults()
    print("All tests PASSED")
