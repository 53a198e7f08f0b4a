"""Parse template source into a tree of nodes.

Parsing runs in two layers. A small scanner splits the source into plain
text and `{{ ... }}` action bodies, handling `{{-`/`-}}` whitespace trimming
and `{{/* comments */}}`. Each action body is then parsed with the lark
grammar in `lark/action.lark` and converted into `stencil._node` objects.

Every identifier used as a function is resolved against the scopes given
to `parse`. A name that resolves nowhere aborts the parse with a
`ParseError` that names the identifier and its line and column.
"""

__all__ = ["parse"]

import ast
import logging

import lark

import stencil
from . import _node

logger = logging.getLogger(__name__)

LEFT_DELIM = "{{"
RIGHT_DELIM = "}}"
_SPACE = " \t\r\n"


def parse(text, name="", scopes=(), skip_func_check=False):
    """Parse template source.

    Args:
        text: (str) Template source
        name: (str) Template name used in error messages
        scopes: (sequence of stencil.Scope) Registration scopes that
            function names are resolved against, before the builtins
        skip_func_check: (bool) Don't resolve function names; a missing
            function is then only reported when the template runs

    Returns:
        (list) Top level nodes, `Text` and `Action`

    Raises:
        stencil.ParseError: On invalid syntax or an undefined function
    """
    logger.debug("parsing template %r (%d chars)", name, len(text))
    builder = _Builder(text, name, scopes, skip_func_check)
    nodes = []
    for kind, body, offset in _scan(text, name):
        if kind == "text":
            if body:
                line, column = _position(text, offset)
                nodes.append(_node.Text(body, line, column))
        else:
            nodes.append(builder.action(body, offset))
    return nodes


def _position(text, offset):
    """Convert a character offset into a 1-based (line, column)."""
    line = text.count("\n", 0, offset) + 1
    column = offset - (text.rfind("\n", 0, offset) + 1) + 1
    return line, column


def _scan(text, name):
    """Split source into ("text" | "action", body, offset) pieces.

    Trim markers are applied here: `{{- ` strips whitespace before the
    action and ` -}}` strips whitespace after it.
    """
    pieces = []
    pos = 0
    size = len(text)
    while True:
        start = text.find(LEFT_DELIM, pos)
        if start < 0:
            pieces.append(["text", text[pos:], pos])
            break
        pieces.append(["text", text[pos:start], pos])

        inner = start + len(LEFT_DELIM)
        if text.startswith("-", inner) and inner + 1 < size and text[inner + 1] in _SPACE:
            pieces[-1][1] = pieces[-1][1].rstrip(_SPACE)
            inner += 2

        if text.startswith("/*", inner):
            end, trim = _scan_comment(text, name, start, inner)
        else:
            end, trim = _scan_action(text, name, start, inner)
            body_end = end - 2 if trim else end
            pieces.append(["action", text[inner:body_end], inner])

        pos = end + len(RIGHT_DELIM)
        if trim:
            while pos < size and text[pos] in _SPACE:
                pos += 1
    return [tuple(piece) for piece in pieces]


def _scan_comment(text, name, start, inner):
    """Find the closing delimiter after a comment. Returns (end, trim)."""
    close = text.find("*/", inner + 2)
    if close < 0:
        raise stencil.ParseError("unclosed comment", name, *_position(text, start))
    after = close + 2
    if text.startswith(" -" + RIGHT_DELIM, after):
        return after + 2, True
    if text.startswith(RIGHT_DELIM, after):
        return after, False
    raise stencil.ParseError("comment ends before closing delimiter",
                             name, *_position(text, close))


def _scan_action(text, name, start, inner):
    """Find the closing delimiter of an action, skipping quoted text.

    Returns:
        (tuple) Offset of the closing delimiter and whether it has a
        ` -` trim marker in front of it
    """
    i = inner
    size = len(text)
    while i < size:
        ch = text[i]
        if ch == '"':
            i += 1
            while i < size and text[i] != '"':
                if text[i] == "\n":
                    break
                i += 2 if text[i] == "\\" else 1
            if i >= size or text[i] != '"':
                raise stencil.ParseError("unterminated quoted string",
                                         name, *_position(text, start))
            i += 1
        elif ch == "`":
            close = text.find("`", i + 1)
            if close < 0:
                raise stencil.ParseError("unterminated raw quoted string",
                                         name, *_position(text, start))
            i = close + 1
        elif text.startswith(RIGHT_DELIM, i):
            trim = i - 2 >= inner and text[i - 1] == "-" and text[i - 2] in _SPACE
            return i, trim
        else:
            i += 1
    raise stencil.ParseError("unclosed action", name, *_position(text, start))


class _Builder:
    """Convert lark trees for action bodies into nodes."""

    def __init__(self, source, name, scopes, skip_func_check):
        self.source = source
        self.name = name
        self.scopes = tuple(scopes)
        self.skip_func_check = skip_func_check
        self.offset = 0

    def action(self, body, offset):
        """Parse one action body found at `offset` in the source."""
        self.offset = offset
        try:
            tree = _lark_parser("action").parse(body)
        except lark.exceptions.UnexpectedInput as e:
            at = getattr(e, "pos_in_stream", None)
            if at is None or at < 0:
                at = len(body)
            raise stencil.ParseError(_describe(e), self.name, *self.pos(at)) from e
        except lark.exceptions.LarkError as e:
            raise stencil.ParseError(str(e), self.name, *self.pos(0)) from e

        pipeline = self.convert(tree.children[0])
        line, column = self.pos(0)
        return _node.Action(pipeline, line, column)

    def pos(self, start_pos):
        """Template (line, column) for an offset inside the current body."""
        return _position(self.source, self.offset + start_pos)

    def convert(self, tree):
        """Convert a lark Tree into a node."""
        kids = tree.children
        line, column = self.pos(tree.meta.start_pos)
        match tree.data:
            case "pipeline":
                return _node.Pipeline([self.convert(kid) for kid in kids], line, column)
            case "command":
                return _node.Command([self.convert(kid) for kid in kids], line, column)
            case "ident":
                name = str(kids[0])
                self.check_function(name, line, column)
                return _node.Ident(name, line, column)
            case "field":
                return _node.Field(str(kids[0]).split(".")[1:], line, column)
            case "dot":
                return _node.Dot(line, column)
            case "root":
                return _node.Root(str(kids[0]).split(".")[1:], line, column)
            case "string":
                token = str(kids[0])
                try:
                    value = ast.literal_eval(token)
                except (SyntaxError, ValueError) as e:
                    raise stencil.ParseError(f"invalid quoted string {token}: {e}",
                                             self.name, line, column) from e
                return _node.Literal(value, token, line, column)
            case "rawstring":
                token = str(kids[0])
                return _node.Literal(token[1:-1], token, line, column)
            case "int":
                token = str(kids[0])
                return _node.Literal(self.integer(token, line, column), token, line, column)
            case "float":
                token = str(kids[0])
                return _node.Literal(float(token), token, line, column)
            case "true":
                return _node.Literal(True, "true", line, column)
            case "false":
                return _node.Literal(False, "false", line, column)
            case "nil":
                return _node.Literal(None, "nil", line, column)
            case "paren":
                pipeline = self.convert(kids[1])
                path = str(kids[2]).split(".")[1:] if len(kids) > 2 else []
                return _node.Paren(pipeline, path, line, column)
            case _:
                raise ValueError(f"Unhandled grammar rule: {tree.data}")

    def integer(self, token, line, column):
        """Integer literal value. A leading zero means octal: 010 is 8."""
        digits = token.lstrip("+-")
        try:
            if len(digits) > 1 and digits[0] == "0" and digits.isdigit():
                value = int(digits, 8)
                return -value if token.startswith("-") else value
            return int(token, 0)
        except ValueError as e:
            raise stencil.ParseError(f"invalid number: {token}",
                                     self.name, line, column) from e

    def check_function(self, name, line, column):
        """Fail the parse when a function name resolves nowhere."""
        if self.skip_func_check:
            return
        _, found = stencil.resolve(name, self.scopes)
        if not found:
            raise stencil.ParseError(f'function "{name}" not defined',
                                     self.name, line, column)


def _describe(error):
    """Short message for a lark parse failure."""
    if isinstance(error, lark.exceptions.UnexpectedCharacters):
        return f"unexpected {error.char!r} in action"
    if isinstance(error, lark.exceptions.UnexpectedToken):
        if error.token.type == "$END":
            return "unexpected end of action"
        return f"unexpected {str(error.token)!r} in action"
    return "unexpected end of action"


_parsers = {}


def _lark_parser(name):
    """Get globally shared lark parser.

    Args:
        name: (str) name of the grammar file (without .lark)

    Returns:
        (lark.Lark) Parser instance
    """
    parser = _parsers.get(name)
    if parser is not None:
        return parser

    path = f"lark/{name}.lark"
    parser = lark.Lark.open(
        path, rel_to=__file__, parser="lalr", propagate_positions=True
    )
    _parsers[name] = parser
    return parser
