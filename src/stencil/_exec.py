"""Template execution.

The executor walks a parsed tree and writes the result of each action to an
output stream. Function names are resolved again on every call, against the
scopes of the running execution: its own execution scope first, then the
template set's registration scopes, then the builtins.
"""

__all__ = ["State", "run", "NO_VALUE"]

import collections.abc
import logging

import stencil
from . import _fmt, _node
from ._builtin import truth

logger = logging.getLogger(__name__)


class _NoValue:
    """Result of a field lookup on a missing map key."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "<no value>"


NO_VALUE = _NoValue()

# Marks "no piped value" for the first command of a pipeline
_NONE = object()


class State:
    """State of one template execution.

    A fresh State is created for every execute call and is never shared
    between executions. State-aware functions receive it as their first
    argument.

    Attributes:
        template: (stencil.Template) Template being executed
        data: The value passed to execute, `.` and `$` in the template
        scopes: (tuple) Active scopes, execution scope first
        missingkey: (str) Missing map key handling, see TemplateSet
    """

    def __init__(self, template, data, scopes, missingkey="default"):
        self.template = template
        self.data = data
        self.scopes = tuple(scopes)
        self.missingkey = missingkey

    @property
    def name(self):
        """(str) Name of the executing template."""
        return self.template.name if self.template is not None else ""

    def resolve(self, name):
        """Resolve a function name against the active scopes."""
        return stencil.resolve(name, self.scopes)

    def error(self, node, message, ident=None):
        """Build an ExecError located at a node."""
        return stencil.ExecError(message, self.name, node.line, node.column, ident)

    def __repr__(self):
        return f"State({self.name!r}, {len(self.scopes)} scopes)"


def run(state, nodes, out):
    """Execute top level nodes, writing text to `out`.

    Args:
        state: (State) Execution state
        nodes: (list) Nodes from `stencil.parse`
        out: Object with a `write(str)` method

    Raises:
        stencil.ExecError: When an action fails
    """
    for node in nodes:
        match node:
            case _node.Text():
                out.write(node.text)
            case _node.Action():
                value = _eval_pipeline(state, node.pipeline)
                out.write(_render(value))
            case _:
                raise ValueError(f"Unhandled node type: {type(node).__name__}")


def _render(value):
    if value is NO_VALUE:
        return "<no value>"
    return _fmt.format_value(value)


def _eval_pipeline(state, pipeline):
    value = _NONE
    for command in pipeline.commands:
        value = _eval_command(state, command, value)
    return value


def _eval_command(state, command, final):
    first = command.operands[0]
    if isinstance(first, _node.Ident):
        return _eval_call(state, first, command.operands[1:], final)
    if len(command.operands) > 1 or final is not _NONE:
        raise state.error(first, f"can't give argument to non-function {first.unparse()}",
                          ident=first.unparse())
    return _eval_operand(state, first)


def _eval_operand(state, node):
    match node:
        case _node.Ident():
            return _eval_call(state, node, (), _NONE)
        case _node.Field():
            return _walk(state, state.data, node)
        case _node.Dot():
            return state.data
        case _node.Root():
            return _walk(state, state.data, node)
        case _node.Literal():
            return node.value
        case _node.Paren():
            return _walk(state, _eval_pipeline(state, node.pipeline), node)
        case _:
            raise ValueError(f"Unhandled operand type: {type(node).__name__}")


def _eval_arg(state, node):
    value = _eval_operand(state, node)
    return None if value is NO_VALUE else value


def _walk(state, value, node):
    """Follow the field path of a node starting at value."""
    for name in node.path:
        value = _field(state, value, name, node)
    return value


def _field(state, value, name, node):
    if value is None or value is NO_VALUE:
        if state.missingkey == "error":
            raise state.error(node, f"nil data; no entry for key {name!r}", ident=node.unparse())
        return NO_VALUE if state.missingkey == "default" else None
    if isinstance(value, collections.abc.Mapping):
        if name in value:
            return value[name]
        if state.missingkey == "error":
            raise state.error(node, f"map has no entry for key {name!r}", ident=node.unparse())
        return NO_VALUE if state.missingkey == "default" else None
    if not name.startswith("_"):
        try:
            return getattr(value, name)
        except AttributeError:
            pass
    raise state.error(node, f"can't evaluate field {name} in type {type(value).__name__}",
                      ident=node.unparse())


def _eval_call(state, ident, arg_nodes, final):
    name = ident.name
    entry, found = state.resolve(name)
    if not found:
        raise state.error(ident, f'function "{name}" not defined', ident=name)

    if entry.builtin and name in ("and", "or"):
        return _short_circuit(state, ident, arg_nodes, final)

    args = [_eval_arg(state, node) for node in arg_nodes]
    if final is not _NONE:
        args.append(None if final is NO_VALUE else final)
    try:
        return entry.invoke(args, state)
    except stencil.ExecError:
        raise
    except Exception as e:
        raise state.error(ident, f"error calling {name}: {e}", ident=name) from e


def _short_circuit(state, ident, arg_nodes, final):
    """Builtin and/or evaluate arguments only until the answer is known."""
    name = ident.name
    count = len(arg_nodes) + (final is not _NONE)
    if not count:
        raise state.error(ident, f"wrong number of args for {name}: want at least 1 got 0",
                          ident=name)
    stop_on = name == "or"
    value = None
    for node in arg_nodes:
        value = _eval_arg(state, node)
        if truth(value) == stop_on:
            return value
    if final is not _NONE:
        value = None if final is NO_VALUE else final
    return value
