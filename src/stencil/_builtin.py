"""Builtin scope providing the engine's own template functions.

The builtin scope contains the functions every template can call without
registering anything:
- Logic: and, or, not
- Comparison: eq, ne, lt, le, gt, ge
- Collections: index, slice, len
- Escaping: html, js, urlquery
- Formatting: print, printf, println
- Dynamic calls: call

The scope is not built at import. `get_builtins()` builds it the first time
any lookup falls through to it, under a run-once guard, and returns the
same frozen scope to every caller after that.
"""

__all__ = ["create_builtin_scope", "get_builtins", "builtins_loaded", "truth"]

import collections.abc
import decimal
import fractions
import logging
import urllib.parse

import stencil
from . import _fmt
from ._once import Once

logger = logging.getLogger(__name__)


def truth(val):
    """Decide whether a value counts as true in a template.

    None, False, zero numbers and empty text or collections are false.
    Everything else is true.
    """
    if val is None:
        return False
    if isinstance(val, (bool, int, float, complex, decimal.Decimal, fractions.Fraction)):
        return val != 0
    if isinstance(val, collections.abc.Sized):
        return len(val) > 0
    return True


# ============================================================================
# Logic
# ============================================================================

def builtin_and(arg0, *args):
    """First false argument, or the last argument: {{and .a .b}}"""
    for arg in (arg0,) + args:
        if not truth(arg):
            return arg
    return arg


def builtin_or(arg0, *args):
    """First true argument, or the last argument: {{or .a .b}}"""
    for arg in (arg0,) + args:
        if truth(arg):
            return arg
    return arg


def builtin_not(arg):
    """Boolean negation of the truth of a value: {{not .a}}"""
    return not truth(arg)


def builtin_call(fn, *args):
    """Call a function value with the remaining arguments: {{call .fn 1 2}}"""
    if fn is None:
        raise stencil.FuncError("call of nil")
    if not callable(fn):
        raise stencil.FuncError(f"non-function of type {type(fn).__name__}")
    return fn(*args)


# ============================================================================
# Comparison
# ============================================================================

# Checked in order, bool must come before the numbers
_CATEGORIES = (
    (bool, "bool"),
    ((int, float, decimal.Decimal, fractions.Fraction), "number"),
    (complex, "complex"),
    (str, "text"),
    ((bytes, bytearray), "bytes"),
    ((list, tuple), "sequence"),
    (collections.abc.Mapping, "mapping"),
)

_BASIC = {"bool", "number", "complex", "text", "bytes"}


def _category(val):
    """Classify an operand for comparison."""
    if val is None:
        return "none"
    for types, name in _CATEGORIES:
        if isinstance(val, types):
            return name
    return "other"


def builtin_eq(arg1, *args):
    """True when the first argument equals any of the others: {{eq .x 1 2}}"""
    if not args:
        raise stencil.FuncError("missing argument for comparison")
    k1 = _category(arg1)
    for arg in args:
        k2 = _category(arg)
        if k1 == "none" or k2 == "none":
            truth_ = arg1 is None and arg is None
        elif k1 != k2 or (k1 == "other" and type(arg1) is not type(arg)):
            raise stencil.FuncError("incompatible types for comparison")
        else:
            truth_ = bool(arg1 == arg)
        if truth_:
            return True
    return False


def builtin_ne(arg1, arg2):
    """True when the arguments differ: {{ne .x 1}}"""
    return not builtin_eq(arg1, arg2)


def builtin_lt(arg1, arg2):
    """True when arg1 < arg2: {{lt .x 10}}"""
    k1 = _category(arg1)
    k2 = _category(arg2)
    if k1 not in _BASIC or k2 not in _BASIC:
        raise stencil.FuncError("invalid type for comparison")
    if k1 != k2:
        raise stencil.FuncError("incompatible types for comparison")
    if k1 in ("bool", "complex"):
        raise stencil.FuncError("invalid type for comparison")
    return bool(arg1 < arg2)


def builtin_le(arg1, arg2):
    """True when arg1 <= arg2: {{le .x 10}}"""
    return builtin_lt(arg1, arg2) or builtin_eq(arg1, arg2)


def builtin_gt(arg1, arg2):
    """True when arg1 > arg2: {{gt .x 10}}"""
    return not builtin_le(arg1, arg2)


def builtin_ge(arg1, arg2):
    """True when arg1 >= arg2: {{ge .x 10}}"""
    return not builtin_lt(arg1, arg2)


# ============================================================================
# Collections
# ============================================================================

def _int_index(index, cap, what):
    """Validate an integer index against an upper bound (inclusive)."""
    if not isinstance(index, int) or isinstance(index, bool):
        raise stencil.FuncError(f"cannot {what} with index of type {type(index).__name__}")
    if index < 0 or index > cap:
        raise stencil.FuncError(f"index out of range: {index}")
    return index


def builtin_index(item, *indexes):
    """Index into text, sequences and mappings: {{index .m "key" 0}}

    Missing mapping keys give None. Sequences need a non-negative index
    below their length.
    """
    for index in indexes:
        if item is None:
            raise stencil.FuncError("index of untyped nil")
        if isinstance(item, collections.abc.Mapping):
            try:
                item = item.get(index)
            except TypeError:
                raise stencil.FuncError(
                    f"cannot index map with key of type {type(index).__name__}") from None
        elif isinstance(item, (str, bytes, bytearray, list, tuple)):
            pos = _int_index(index, len(item), "index")
            if pos == len(item):
                raise stencil.FuncError(f"index out of range: {pos}")
            item = item[pos]
        else:
            raise stencil.FuncError(f"can't index item of type {type(item).__name__}")
    return item


def builtin_slice(item, *indexes):
    """Slice text or sequences: {{slice .x 1 3}} is x[1:3]

    A third index bounds the second one. Text can't take three indexes.
    """
    if item is None:
        raise stencil.FuncError("slice of untyped nil")
    if len(indexes) > 3:
        raise stencil.FuncError(f"too many slice indexes: {len(indexes)}")
    if isinstance(item, str):
        if len(indexes) == 3:
            raise stencil.FuncError("cannot 3-index slice a string")
    elif not isinstance(item, (bytes, bytearray, list, tuple)):
        raise stencil.FuncError(f"can't slice item of type {type(item).__name__}")

    size = len(item)
    bounds = [0, size, size]
    for i, index in enumerate(indexes):
        bounds[i] = _int_index(index, size, "slice")
    if bounds[0] > bounds[1]:
        raise stencil.FuncError(f"invalid slice index: {bounds[0]} > {bounds[1]}")
    if bounds[1] > bounds[2]:
        raise stencil.FuncError(f"invalid slice index: {bounds[1]} > {bounds[2]}")
    return item[bounds[0]:bounds[1]]


def builtin_len(item):
    """Length of text or a collection: {{len .items}}"""
    if item is None:
        raise stencil.FuncError("len of untyped nil")
    if not isinstance(item, collections.abc.Sized):
        raise stencil.FuncError(f"len of type {type(item).__name__}")
    return len(item)


# ============================================================================
# Escaping
# ============================================================================

def _text_arg(args):
    """Single text argument as is, anything else through print."""
    if len(args) == 1 and isinstance(args[0], str):
        return args[0]
    return _fmt.sprint(*args)


_HTML_ESCAPES = str.maketrans({
    "\0": "\ufffd",
    '"': "&#34;",
    "'": "&#39;",
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
})

_JS_ESCAPES = {
    "\\": "\\\\",
    "'": "\\'",
    '"': '\\"',
    "<": "\\u003C",
    ">": "\\u003E",
    "&": "\\u0026",
    "=": "\\u003D",
}


def builtin_html(*args):
    """Escape text for HTML: {{html .x}}"""
    return _text_arg(args).translate(_HTML_ESCAPES)


def builtin_js(*args):
    """Escape text for a JavaScript string: {{js .x}}"""
    out = []
    for ch in _text_arg(args):
        if ch in _JS_ESCAPES:
            out.append(_JS_ESCAPES[ch])
        elif ch < " " or (ch >= "\x7f" and not ch.isprintable()):
            out.append(f"\\u{ord(ch):04X}")
        else:
            out.append(ch)
    return "".join(out)


def builtin_urlquery(*args):
    """Escape text for a URL query: {{urlquery .x}}"""
    return urllib.parse.quote_plus(_text_arg(args), safe="")


# ============================================================================
# Formatting
# ============================================================================

def builtin_print(*args):
    """Format values, spaces between non-text operands: {{print 1 2}}"""
    return _fmt.sprint(*args)


def builtin_printf(format, *args):
    """Format values with % verbs: {{printf "%d items" 3}}"""
    if not isinstance(format, str):
        raise stencil.FuncError(f"printf format must be text, got {type(format).__name__}")
    return _fmt.sprintf(format, *args)


def builtin_println(*args):
    """Format values with spaces and a trailing newline: {{println 1 2}}"""
    return _fmt.sprintln(*args)


# ============================================================================
# Registry
# ============================================================================

def create_builtin_scope():
    """Create and freeze the builtin scope.

    The table is assembled on the first lookup that reaches it.

    Returns:
        (stencil.Scope) Frozen scope of builtin functions
    """
    logger.debug("building builtin function scope")
    table = {
        "and": builtin_and,
        "call": builtin_call,
        "html": builtin_html,
        "index": builtin_index,
        "slice": builtin_slice,
        "js": builtin_js,
        "len": builtin_len,
        "not": builtin_not,
        "or": builtin_or,
        "print": builtin_print,
        "printf": builtin_printf,
        "println": builtin_println,
        "urlquery": builtin_urlquery,
        "eq": builtin_eq,
        "ge": builtin_ge,
        "gt": builtin_gt,
        "le": builtin_le,
        "lt": builtin_lt,
        "ne": builtin_ne,
    }
    scope = stencil.Scope("builtin")
    for name, func in table.items():
        scope.register(name, stencil.Function(name, func, takes_state=False, builtin=True))
    return scope.freeze()


def get_builtins():
    """Get the shared builtin scope, building it on first use.

    Safe to call from any number of threads. Construction runs once and
    every caller receives the same frozen scope.

    Returns:
        (stencil.Scope) The builtin scope
    """
    return _builtins()


def builtins_loaded():
    """Check whether the builtin scope has been built yet."""
    return _builtins.done


# Guarded singleton (Once[Scope])
_builtins = Once(create_builtin_scope)
