"""Test function resolution across scope chains."""

import threading
import time

import pytest

import stencil
from stencil import _builtin


def greet(name):
    return f"hello {name}"


def test_resolve_registration_scope():
    scope = stencil.Scope("reg", {"greet": greet}).freeze()
    entry, found = stencil.resolve("greet", [scope])
    assert found
    assert entry.func is greet


def test_resolve_not_found():
    """An unknown name is reported as absent, never raised."""
    scope = stencil.Scope("reg", {"greet": greet}).freeze()
    assert stencil.resolve("doesNotExist", [scope]) == (None, False)
    assert stencil.resolve("doesNotExist") == (None, False)


def test_resolve_falls_back_to_builtins():
    scope = stencil.Scope("reg", {"greet": greet}).freeze()
    entry, found = stencil.resolve("eq", [scope])
    assert found
    assert entry.builtin
    assert entry.func is _builtin.builtin_eq


def test_resolve_eq_values():
    """eq resolves; bad operands fail inside the call, not in resolution."""
    entry, found = stencil.resolve("eq")
    assert found
    assert entry(3, 3) is True
    with pytest.raises(stencil.FuncError, match="incompatible types"):
        entry(3, "3")


def test_resolve_execution_scope_shadows_builtin():
    """A same-named entry earlier in the chain wins over the builtin."""
    def my_eq(a, b):
        return "mine"

    exec_scope = stencil.Scope("exec", {"eq": my_eq}).freeze()
    reg_scope = stencil.Scope("reg", {"greet": greet}).freeze()

    entry, found = stencil.resolve("eq", stencil.chain(exec_scope, [reg_scope]))
    assert found
    assert entry.func is my_eq
    assert not entry.builtin

    # The builtin scope itself is untouched
    assert stencil.get_builtins().lookup("eq").func is _builtin.builtin_eq


def test_resolve_priority_order():
    first = stencil.Scope("first", {"name": lambda: "first"}).freeze()
    second = stencil.Scope("second", {"name": lambda: "second"}).freeze()

    entry, _ = stencil.resolve("name", [first, second])
    assert entry() == "first"
    entry, _ = stencil.resolve("name", [second, first])
    assert entry() == "second"


def test_resolve_skips_none_scopes():
    scope = stencil.Scope("reg", {"greet": greet}).freeze()
    entry, found = stencil.resolve("greet", [None, scope])
    assert found
    assert entry.func is greet


def test_resolve_is_deterministic_and_side_effect_free():
    scope = stencil.Scope("reg", {"greet": greet}).freeze()
    results = {stencil.resolve("greet", [scope])[0] for _ in range(10)}
    assert len(results) == 1
    assert scope.names() == ["greet"]
    builtins = stencil.get_builtins()
    before = builtins.names()
    stencil.resolve("missing", [scope])
    assert builtins.names() == before


def test_chain_order():
    exec_scope = stencil.Scope("exec")
    reg = stencil.Scope("reg")
    lib = stencil.Scope("lib")
    assert stencil.chain(exec_scope, [reg, lib]) == (exec_scope, reg, lib)
    assert stencil.chain(None, [reg]) == (reg,)
    assert stencil.chain() == ()


def test_builtins_not_built_when_registered_names_suffice(monkeypatch):
    """Lookups answered by earlier scopes never build the builtin scope."""
    calls = []

    def factory():
        calls.append(1)
        return _builtin.create_builtin_scope()

    guard = stencil.Once(factory)
    monkeypatch.setattr(_builtin, "_builtins", guard)

    tset = stencil.TemplateSet("page").funcs({"greet": greet})
    page = tset.parse("<p>{{greet .name}}</p>")
    assert page.render({"name": "ada"}) == "<p>hello ada</p>"
    assert stencil.resolve("greet", tset.scopes)[1]

    assert not stencil.builtins_loaded()
    assert calls == []

    # The first miss builds it, once
    assert stencil.resolve("eq", tset.scopes)[1]
    assert stencil.resolve("lt", tset.scopes)[1]
    assert stencil.builtins_loaded()
    assert calls == [1]


def test_builtins_built_once_under_concurrent_first_resolve(monkeypatch):
    """Many threads resolving at once build one fully populated scope."""
    count = 16
    calls = []

    def factory():
        calls.append(1)
        time.sleep(0.05)
        return _builtin.create_builtin_scope()

    monkeypatch.setattr(_builtin, "_builtins", stencil.Once(factory))

    barrier = threading.Barrier(count)
    entries = [None] * count
    scopes = [None] * count

    def worker(i):
        barrier.wait()
        entries[i], _ = stencil.resolve("eq")
        scopes[i] = stencil.get_builtins()

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert calls == [1]
    assert all(entry is entries[0] for entry in entries)
    assert all(scope is scopes[0] for scope in scopes)
    assert len(scopes[0]) == 19
    assert scopes[0].frozen
