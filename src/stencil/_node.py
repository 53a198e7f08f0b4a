"""Parse tree nodes for templates.

Nodes are immutable once built and hold no reference to functions, so a
parsed tree can be shared between template set clones and executed from
many threads at once.
"""

__all__ = [
    "Node",
    "Text",
    "Action",
    "Pipeline",
    "Command",
    "Ident",
    "Field",
    "Dot",
    "Root",
    "Literal",
    "Paren",
]


class Node:
    """Base class for tree nodes.

    Attributes:
        line: (int) 1-based line in the template source
        column: (int) 1-based column in the template source
    """

    __slots__ = ("line", "column")

    def __init__(self, line, column):
        self.line = line
        self.column = column

    def unparse(self):
        """Render the node back to template syntax."""
        raise NotImplementedError(f"{type(self).__name__} must implement unparse")

    def __repr__(self):
        return f"{type(self).__name__}({self.unparse()!r} @{self.line}:{self.column})"


class Text(Node):
    """Plain text copied to the output."""

    __slots__ = ("text",)

    def __init__(self, text, line=1, column=1):
        super().__init__(line, column)
        self.text = text

    def unparse(self):
        return self.text


class Action(Node):
    """A `{{ pipeline }}` action whose value is written to the output."""

    __slots__ = ("pipeline",)

    def __init__(self, pipeline, line, column):
        super().__init__(line, column)
        self.pipeline = pipeline

    def unparse(self):
        return "{{" + self.pipeline.unparse() + "}}"


class Pipeline(Node):
    """Commands joined with `|`, each result fed to the next as final argument."""

    __slots__ = ("commands",)

    def __init__(self, commands, line, column):
        super().__init__(line, column)
        self.commands = commands

    def unparse(self):
        return " | ".join(cmd.unparse() for cmd in self.commands)


class Command(Node):
    """One stage of a pipeline: a list of operands.

    When the first operand is an identifier the command is a function
    call and the rest are its arguments.
    """

    __slots__ = ("operands",)

    def __init__(self, operands, line, column):
        super().__init__(line, column)
        self.operands = operands

    def unparse(self):
        return " ".join(op.unparse() for op in self.operands)


class Ident(Node):
    """A function name."""

    __slots__ = ("name",)

    def __init__(self, name, line, column):
        super().__init__(line, column)
        self.name = name

    def unparse(self):
        return self.name


class Field(Node):
    """Field chain on dot: `.Name.Sub`."""

    __slots__ = ("path",)

    def __init__(self, path, line, column):
        super().__init__(line, column)
        self.path = tuple(path)

    def unparse(self):
        return "".join("." + name for name in self.path)


class Dot(Node):
    """The current value: `.`"""

    __slots__ = ()

    def unparse(self):
        return "."


class Root(Node):
    """The data passed to execute, with an optional field chain: `$.Name`"""

    __slots__ = ("path",)

    def __init__(self, path, line, column):
        super().__init__(line, column)
        self.path = tuple(path)

    def unparse(self):
        return "$" + "".join("." + name for name in self.path)


class Literal(Node):
    """A constant: text, number, boolean or nil."""

    __slots__ = ("value", "source")

    def __init__(self, value, source, line, column):
        super().__init__(line, column)
        self.value = value
        self.source = source

    def unparse(self):
        return self.source


class Paren(Node):
    """A parenthesized pipeline with an optional field chain: `(f .x).Name`"""

    __slots__ = ("pipeline", "path")

    def __init__(self, pipeline, path, line, column):
        super().__init__(line, column)
        self.pipeline = pipeline
        self.path = tuple(path)

    def unparse(self):
        return "(" + self.pipeline.unparse() + ")" + "".join("." + name for name in self.path)
