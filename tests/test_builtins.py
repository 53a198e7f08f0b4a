"""Test builtin functions from _builtin.py."""

from decimal import Decimal

import pytest

import stencil
from stencil import _builtin


def builtin(name):
    """Look up a builtin entry by name."""
    entry = stencil.get_builtins().lookup(name)
    assert entry is not None, f"missing builtin {name}"
    return entry


def test_builtin_scope_contents():
    scope = stencil.get_builtins()
    assert scope.frozen
    assert set(scope.names()) == {
        "and", "or", "not", "call",
        "eq", "ne", "lt", "le", "gt", "ge",
        "html", "js", "urlquery",
        "len", "index", "slice",
        "print", "printf", "println",
    }
    assert all(entry.builtin for entry in scope)
    assert stencil.get_builtins() is scope


def test_builtin_scope_is_read_only():
    with pytest.raises(stencil.RegistrationError):
        stencil.get_builtins().register("eq", lambda a, b: True)


@pytest.mark.parametrize("value,expected", [
    (None, False),
    (False, False),
    (True, True),
    (0, False),
    (1, True),
    (0.0, False),
    (Decimal("0"), False),
    ("", False),
    ("x", True),
    ([], False),
    ([0], True),
    ({}, False),
    (object(), True),
])
def test_truth(value, expected):
    assert _builtin.truth(value) is expected


def test_builtin_and_or_not():
    assert builtin("and")(1, 0, 2) == 0
    assert builtin("and")(1, 2) == 2
    assert builtin("and")("") == ""
    assert builtin("or")(0, "", "x", "y") == "x"
    assert builtin("or")(0, "") == ""
    assert builtin("not")([]) is True
    assert builtin("not")("x") is False


def test_builtin_call():
    assert builtin("call")(lambda a, b: a + b, 1, 2) == 3
    with pytest.raises(stencil.FuncError, match="call of nil"):
        builtin("call")(None)
    with pytest.raises(stencil.FuncError, match="non-function of type int"):
        builtin("call")(5, 1)


@pytest.mark.parametrize("args,expected", [
    ((3, 3), True),
    ((3, 4), False),
    ((3, 3.0), True),
    ((Decimal("1.5"), 1.5), True),
    (("a", "b", "a"), True),
    (("a", "b", "c"), False),
    ((True, True), True),
    ((None, None), True),
    ((None, 1), False),
    ((1, None), False),
    (([1, 2], [1, 2]), True),
    (({"a": 1}, {"a": 1}), True),
    ((b"x", b"x"), True),
])
def test_builtin_eq(args, expected):
    assert builtin("eq")(*args) is expected


@pytest.mark.parametrize("args", [
    (3, "3"),
    (True, 1),
    ("a", [1]),
    ([1], {"a": 1}),
    (1, 2, "x"),
])
def test_builtin_eq_incompatible(args):
    with pytest.raises(stencil.FuncError, match="incompatible types for comparison"):
        builtin("eq")(*args)


def test_builtin_eq_missing_argument():
    with pytest.raises(stencil.FuncError, match="missing argument"):
        builtin("eq")(1)


def test_builtin_eq_other_objects():
    class Thing:
        pass

    thing = Thing()
    assert builtin("eq")(thing, thing) is True
    with pytest.raises(stencil.FuncError):
        builtin("eq")(thing, object())


@pytest.mark.parametrize("name,a,b,expected", [
    ("lt", 1, 2, True),
    ("lt", 2, 1, False),
    ("lt", 1, 1.5, True),
    ("lt", "a", "b", True),
    ("le", 2, 2, True),
    ("le", 3, 2, False),
    ("gt", 3, 2, True),
    ("gt", 2, 2, False),
    ("ge", 2, 2, True),
    ("ge", 1, 2, False),
    ("ne", 1, 2, True),
    ("ne", "a", "a", False),
])
def test_builtin_ordering(name, a, b, expected):
    assert builtin(name)(a, b) is expected


@pytest.mark.parametrize("name,a,b,message", [
    ("lt", 1, "a", "incompatible types"),
    ("lt", True, False, "invalid type"),
    ("lt", 1j, 2j, "invalid type"),
    ("lt", [1], [2], "invalid type"),
    ("lt", None, 1, "invalid type"),
    ("ge", {"a": 1}, {"a": 1}, "invalid type"),
    ("gt", "a", 1, "incompatible types"),
])
def test_builtin_ordering_errors(name, a, b, message):
    with pytest.raises(stencil.FuncError, match=message):
        builtin(name)(a, b)


def test_builtin_index():
    index = builtin("index")
    data = {"a": [10, 20, {"b": "deep"}]}
    assert index(data, "a", 1) == 20
    assert index(data, "a", 2, "b") == "deep"
    assert index(data, "missing") is None
    assert index("abc", 1) == "b"
    assert index((1, 2), 0) == 1
    assert index([1, 2]) == [1, 2]


@pytest.mark.parametrize("args,message", [
    (([1, 2], 2), "index out of range: 2"),
    (([1, 2], -1), "index out of range: -1"),
    (([1, 2], "x"), "cannot index with index of type str"),
    (([1, 2], True), "cannot index with index of type bool"),
    ((5, 0), "can't index item of type int"),
    ((None, 0), "index of untyped nil"),
    (({"a": None}, "a", 0), "index of untyped nil"),
    (({"a": 1}, ["unhashable"]), "cannot index map"),
])
def test_builtin_index_errors(args, message):
    with pytest.raises(stencil.FuncError, match=message):
        builtin("index")(*args)


def test_builtin_slice():
    slice_ = builtin("slice")
    assert slice_("hello", 1, 3) == "el"
    assert slice_("hello", 2) == "llo"
    assert slice_("hello") == "hello"
    assert slice_([1, 2, 3, 4], 1) == [2, 3, 4]
    assert slice_([1, 2, 3], 1, 2, 3) == [2]
    assert slice_((1, 2, 3), 0, 3) == (1, 2, 3)
    assert slice_(b"abc", 1, 2) == b"b"


@pytest.mark.parametrize("args,message", [
    (("abc", 0, 1, 2), "cannot 3-index slice a string"),
    (([1, 2], 2, 1), "invalid slice index: 2 > 1"),
    (([1, 2, 3], 0, 3, 2), "invalid slice index: 3 > 2"),
    (([1, 2], 0, 5), "index out of range: 5"),
    (([1, 2], -1), "index out of range: -1"),
    (([1, 2], 0, 1, 2, 2), "too many slice indexes"),
    ((5, 0), "can't slice item of type int"),
    ((None,), "slice of untyped nil"),
])
def test_builtin_slice_errors(args, message):
    with pytest.raises(stencil.FuncError, match=message):
        builtin("slice")(*args)


def test_builtin_len():
    assert builtin("len")("abc") == 3
    assert builtin("len")([1, 2]) == 2
    assert builtin("len")({"a": 1}) == 1
    assert builtin("len")({1, 2, 3}) == 3
    with pytest.raises(stencil.FuncError, match="len of type int"):
        builtin("len")(5)
    with pytest.raises(stencil.FuncError, match="len of untyped nil"):
        builtin("len")(None)


def test_builtin_html():
    html = builtin("html")
    assert html("<a href=\"x\">&'") == "&lt;a href=&#34;x&#34;&gt;&amp;&#39;"
    assert html("a\0b") == "a\ufffdb"
    assert html("plain") == "plain"
    assert html(1, 2) == "1 2"


def test_builtin_js():
    js = builtin("js")
    assert js("<'\"\\=&>") == "\\u003C\\'\\\"\\\\\\u003D\\u0026\\u003E"
    assert js("a\nb") == "a\\u000Ab"
    assert js("café") == "café"
    assert js("a\u2028b") == "a\\u2028b"


def test_builtin_urlquery():
    assert builtin("urlquery")("a b&c=d/é") == "a+b%26c%3Dd%2F%C3%A9"
    assert builtin("urlquery")("safe-_.~") == "safe-_.~"


def test_builtin_print_family():
    assert builtin("print")("a", 1, 2, "b") == "a1 2b"
    assert builtin("print")(1, None, True) == "1 <nil> true"
    assert builtin("println")("a", 1) == "a 1\n"
    assert builtin("printf")("%d-%s", 3, "x") == "3-x"
    with pytest.raises(stencil.FuncError, match="format must be text"):
        builtin("printf")(3)
