"""Function entries held by scopes.

Templates call two shapes of Python callable:
- plain: `fn(*args)` returning a single value
- state-aware: `fn(state, *args)`, marked with the `stateful` decorator,
  which also receives the `State` of the running execution

Either shape reports failure by raising. Callables are checked when they
are registered so a bad entry never reaches the executor.
"""

__all__ = ["Function", "stateful", "valid_name"]

import functools
import inspect
import re

import stencil

_NAME_RE = re.compile(r"[^\W\d]\w*")

_STATE_ATTR = "__stencil_stateful__"


def stateful(func):
    """Mark a callable as wanting the execution state as first argument.

    Bound methods and C builtins take no attributes; those come back
    wrapped in a marked function that passes every argument through.

    Usage:
        @stencil.stateful
        def template_name(state):
            return state.name
    """
    try:
        setattr(func, _STATE_ATTR, True)
    except AttributeError:
        @functools.wraps(func)
        def wrapper(*args):
            return func(*args)

        setattr(wrapper, _STATE_ATTR, True)
        return wrapper
    return func


def valid_name(name):
    """Check that a function name can be written in a template."""
    return isinstance(name, str) and _NAME_RE.fullmatch(name) is not None


class Function:
    """A named callable that templates can invoke.

    Args:
        name: (str) Name used at the call site
        func: (callable) Python implementation
        takes_state: (bool | None) Pass the execution state first. When
            None, it is read from the `stateful` marker.
        builtin: (bool) Provided by the engine rather than the host

    Raises:
        stencil.RegistrationError: If the name or callable is unusable
    """

    __slots__ = ("name", "func", "takes_state", "builtin")

    def __init__(self, name, func, takes_state=None, builtin=False):
        if takes_state is None:
            takes_state = bool(getattr(func, _STATE_ATTR, False))
        _check(name, func, takes_state)
        self.name = name
        self.func = func
        self.takes_state = takes_state
        self.builtin = builtin

    def invoke(self, args, state=None):
        """Call the function with positional arguments.

        Args:
            args: (sequence) Positional argument values
            state: (stencil.State | None) Execution state for state-aware
                functions

        Returns:
            Whatever the callable returns. Exceptions propagate.
        """
        if self.takes_state:
            return self.func(state, *args)
        return self.func(*args)

    def __call__(self, *args):
        return self.invoke(args)

    def __repr__(self):
        kind = "builtin" if self.builtin else "func"
        return f"Function({kind} {self.name})"


def _check(name, func, takes_state):
    """Reject names and callables that templates cannot use."""
    if not valid_name(name):
        raise stencil.RegistrationError(
            f"function name {name!r} is not a valid identifier")
    if not callable(func):
        raise stencil.RegistrationError(
            f"value for {name} is not callable: {type(func).__name__}")

    target = inspect.unwrap(func)
    if inspect.isclass(target):
        return
    if not inspect.isroutine(target) and hasattr(target, "__call__"):
        target = target.__call__
    if (inspect.iscoroutinefunction(target)
            or inspect.isasyncgenfunction(target)
            or inspect.isgeneratorfunction(target)):
        raise stencil.RegistrationError(
            f"function {name} must return a value, not a coroutine or generator")

    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError):
        # Some C builtins carry no signature, nothing more to check
        return

    positional = 0
    varargs = False
    for param in sig.parameters.values():
        if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD):
            positional += 1
        elif param.kind == param.VAR_POSITIONAL:
            varargs = True
        elif param.kind == param.KEYWORD_ONLY and param.default is param.empty:
            raise stencil.RegistrationError(
                f"function {name} has required keyword-only argument {param.name!r}")
    if takes_state and not positional and not varargs:
        raise stencil.RegistrationError(
            f"stateful function {name} must accept the state as first argument")
