"""Function name resolution across a chain of scopes."""

__all__ = ["resolve", "chain"]

import stencil


def resolve(name, scopes=()):
    """Find the function a call site refers to.

    Scopes are searched in the given order and the first entry wins, so an
    earlier scope shadows the same name further down. When none of them has
    the name, the builtin scope is searched last. The builtin scope is only
    built at that point.

    Args:
        name: (str) Identifier written at the call site
        scopes: (iterable of stencil.Scope) Active scopes, highest priority
            first. None entries are skipped.

    Returns:
        (tuple) `(Function, True)` when found, `(None, False)` when not.
        A missing name is never an exception; the caller decides how to
        report it.
    """
    for scope in scopes:
        if scope is None:
            continue
        entry = scope.lookup(name)
        if entry is not None:
            return entry, True
    entry = stencil.get_builtins().lookup(name)
    if entry is not None:
        return entry, True
    return None, False


def chain(exec_scope=None, reg_scopes=()):
    """Assemble the active scopes for one lookup.

    Args:
        exec_scope: (stencil.Scope | None) Scope of the running execution
        reg_scopes: (sequence of stencil.Scope) Template set scopes

    Returns:
        (tuple) Scopes in priority order, without the builtin scope
    """
    if exec_scope is None:
        return tuple(reg_scopes)
    return (exec_scope,) + tuple(reg_scopes)
