"""Value formatting for the print family of builtins.

Public API
----------
format_value(val)          → str
sprint(*args)              → str
sprintln(*args)            → str
sprintf(format, *args)     → str

Values render the way templates expect rather than as Python reprs:
`None` is `<nil>`, booleans are `true`/`false`, lists are `[1 2 3]` and
mappings are `map[a:1 b:2]` with sorted keys.

Verbs understood by `sprintf`
-----------------------------
  %v %s     formatted value        %q   quoted text
  %d        integer                %t   boolean
  %b %o %x %X  integer bases       %c   character from code point
  %e %E %f %F %g %G  floats        %U   unicode code point
  %T        type name              %%   literal percent

Flags, width and precision follow the verb's usual meaning. Problems never
raise; they are written into the output as `%!verb(type=value)`,
`%!verb(MISSING)` and `%!(EXTRA type=value)` markers.
"""

__all__ = ["format_value", "sprint", "sprintln", "sprintf"]

import collections.abc
import decimal
import fractions
import json
import math
import re


def format_value(val):
    """Render a single value as template output text."""
    if val is None:
        return "<nil>"
    if isinstance(val, bool):
        return "true" if val else "false"
    if isinstance(val, str):
        return val
    if isinstance(val, int):
        return str(val)
    if isinstance(val, float):
        return _format_float(val)
    if isinstance(val, (decimal.Decimal, fractions.Fraction)):
        return str(val)
    if isinstance(val, complex):
        imag = _format_float(val.imag)
        if not imag.startswith("-"):
            imag = "+" + imag
        return f"({_format_float(val.real)}{imag}i)"
    if isinstance(val, (bytes, bytearray)):
        return "[" + " ".join(str(b) for b in val) + "]"
    if isinstance(val, collections.abc.Mapping):
        items = " ".join(f"{format_value(k)}:{format_value(v)}"
                         for k, v in _sorted_items(val))
        return f"map[{items}]"
    if isinstance(val, (collections.abc.Set)):
        return "[" + " ".join(format_value(v) for v in _sorted(val)) + "]"
    if isinstance(val, collections.abc.Sequence):
        return "[" + " ".join(format_value(v) for v in val) + "]"
    return str(val)


def sprint(*args):
    """Join values, adding spaces between operands when neither is text."""
    parts = []
    for i, arg in enumerate(args):
        if i and not isinstance(arg, str) and not isinstance(args[i - 1], str):
            parts.append(" ")
        parts.append(format_value(arg))
    return "".join(parts)


def sprintln(*args):
    """Join values with spaces and end with a newline."""
    return " ".join(format_value(arg) for arg in args) + "\n"


# Highest unicode code point
_RUNE_MAX = 0x10FFFF

_VERB_RE = re.compile(r"%([-+# 0]*)(\d+)?(?:\.(\d+))?([a-zA-Z%])")


def sprintf(format, *args):
    """Format values according to a format string of `%` verbs."""
    out = []
    pos = 0
    used = 0
    for match in _VERB_RE.finditer(format):
        out.append(format[pos:match.start()])
        pos = match.end()
        flags, width, prec, verb = match.groups()
        if verb == "%":
            out.append("%")
            continue
        if used >= len(args):
            out.append(f"%!{verb}(MISSING)")
            continue
        arg = args[used]
        used += 1
        out.append(_format_verb(verb, flags, width, prec, arg))
    out.append(format[pos:])
    if used < len(args):
        extra = ", ".join(_describe(arg) for arg in args[used:])
        out.append(f"%!(EXTRA {extra})")
    return "".join(out)


def _format_verb(verb, flags, width, prec, arg):
    """Format one argument for one verb."""
    conv = flags + (width or "") + (f".{prec}" if prec is not None else "")
    is_int = isinstance(arg, int) and not isinstance(arg, bool)
    is_num = is_int or isinstance(arg, (float, decimal.Decimal, fractions.Fraction))

    match verb:
        case "v" | "s":
            text = format_value(arg)
            if prec is not None:
                text = text[:int(prec)]
            return _pad(text, flags, width)
        case "q":
            if isinstance(arg, str):
                return _pad(json.dumps(arg, ensure_ascii=False), flags, width)
            if is_int and 0 <= arg <= _RUNE_MAX:
                return _pad(repr(chr(arg)), flags, width)
        case "t":
            if isinstance(arg, bool):
                return _pad(format_value(arg), flags, width)
        case "T":
            return _pad(type(arg).__name__, flags, width)
        case "d":
            if is_int:
                return ("%" + conv + "d") % arg
        case "o" | "x" | "X":
            if is_int:
                return ("%" + conv + verb) % arg
            if verb != "o" and isinstance(arg, str):
                text = arg.encode("utf-8").hex()
                return _pad(text.upper() if verb == "X" else text, flags, width)
        case "b":
            if is_int:
                text = format(arg, "#b" if "#" in flags else "b")
                return _pad(text, flags, width)
        case "c":
            if is_int and 0 <= arg <= _RUNE_MAX:
                return _pad(chr(arg), flags, width)
        case "U":
            if is_int:
                return _pad(f"U+{arg:04X}", flags, width)
        case "e" | "E" | "f" | "F" | "g" | "G":
            if is_num:
                try:
                    return ("%" + conv + verb) % float(arg)
                except OverflowError:
                    pass  # too large for a float, marked below
    return f"%!{verb}({_describe(arg)})"


def _describe(arg):
    return f"{type(arg).__name__}={format_value(arg)}"


def _pad(text, flags, width):
    if not width:
        return text
    if "-" in flags:
        return text.ljust(int(width))
    return text.rjust(int(width))


def _format_float(val):
    """Shortest text for a float, exponent form outside a sane range."""
    if math.isnan(val):
        return "NaN"
    if math.isinf(val):
        return "+Inf" if val > 0 else "-Inf"
    number = decimal.Decimal(repr(val)).normalize()
    if number.is_zero():
        return "-0" if math.copysign(1.0, val) < 0 else "0"
    exponent = number.adjusted()
    if exponent < -4 or exponent >= 21:
        mantissa, _, power = format(number, "e").partition("e")
        sign = power[0] if power[0] in "+-" else "+"
        digits = power.lstrip("+-").rjust(2, "0")
        return f"{mantissa}e{sign}{digits}"
    return format(number, "f")


def _sorted(values):
    try:
        return sorted(values)
    except TypeError:
        return list(values)


def _sorted_items(mapping):
    try:
        return sorted(mapping.items(), key=lambda item: item[0])
    except TypeError:
        return list(mapping.items())
