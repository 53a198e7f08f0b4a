"""Template sets and parsed templates.

A `TemplateSet` owns a registration scope. Host functions are added with
`funcs()` before parsing; the first `parse()` freezes the scope so templates
executing from many threads can share it. `clone()` gives an independent
set with a mutable copy of the scope.

Usage:
    tset = stencil.TemplateSet("page").funcs({"greet": greet})
    page = tset.parse("{{greet .Name}}")
    page.render({"Name": "Ada"})
    page.render({"Name": "Ada"}, funcs={"greet": shout})
"""

__all__ = ["TemplateSet", "Template", "MISSINGKEY_MODES"]

import io
import logging

import stencil
from . import _exec

logger = logging.getLogger(__name__)

MISSINGKEY_MODES = ("default", "zero", "error")


class TemplateSet:
    """A group of templates sharing registered functions and options.

    Args:
        name: (str) Name of the set, also the default template name
        missingkey: (str) Missing map key behaviour: "default" renders
            `<no value>`, "zero" gives None, "error" stops execution
        warn_redefine: (bool) Log a warning when a registration replaces a
            function already in the set's scope
        skip_func_check: (bool) Don't check function names while parsing

    Attributes:
        name: (str) Set name
        scope: (stencil.Scope) The set's own registration scope
        templates: (dict) Parsed templates by name
    """

    def __init__(self, name="", *, missingkey="default", warn_redefine=False,
                 skip_func_check=False):
        self.name = name
        self.missingkey = _check_missingkey(missingkey)
        self.skip_func_check = skip_func_check
        self.scope = stencil.Scope(f"{name or 'set'} funcs", warn_redefine=warn_redefine)
        self.shared = []
        self.templates = {}

    @property
    def scopes(self):
        """(tuple) Registration scopes in lookup order, own scope first."""
        return (self.scope,) + tuple(self.shared)

    def funcs(self, funcs):
        """Register host functions in the set's scope.

        Args:
            funcs: (dict) Name to callable mapping. A name already present
                is replaced. Values may also be `stencil.Function` entries,
                which keep their own `takes_state` setting.

        Returns:
            (TemplateSet) self, for chaining

        Raises:
            stencil.RegistrationError: After parsing has started, or for a
                callable templates can't use
        """
        self.scope.update(funcs)
        return self

    def use(self, scope):
        """Consult a shared frozen scope after the set's own scope.

        Shared scopes are part of registration and close with it: once the
        set has parsed, `clone()` gives a set that can take more.

        Raises:
            stencil.RegistrationError: If the scope is still mutable, or
                the set has already parsed
        """
        if self.scope.frozen:
            raise stencil.RegistrationError(
                f"cannot use scope {scope.name}: set {self.name!r} has already parsed")
        if not scope.frozen:
            raise stencil.RegistrationError(
                f"shared scope {scope.name} must be frozen before use")
        self.shared.append(scope)
        return self

    def option(self, *options):
        """Set options from "key=value" text, such as "missingkey=zero"."""
        for opt in options:
            key, sep, value = opt.partition("=")
            if not sep:
                raise ValueError(f"unrecognized option: {opt}")
            match key:
                case "missingkey":
                    self.missingkey = _check_missingkey(value)
                case _:
                    raise ValueError(f"unrecognized option: {opt}")
        return self

    def parse(self, text, name=None):
        """Parse source into a template stored in this set.

        The set's registration scope is frozen first, registrations are
        rejected from then on.

        Args:
            text: (str) Template source
            name: (str | None) Template name, defaults to the set name

        Returns:
            (Template) The parsed template

        Raises:
            stencil.ParseError: On bad syntax or an undefined function
        """
        if name is None:
            name = self.name
        self.scope.freeze()
        nodes = stencil.parse(text, name, self.scopes, self.skip_func_check)
        template = Template(name, self, nodes, text)
        self.templates[name] = template
        return template

    def lookup(self, name):
        """Get a parsed template by name, or None."""
        return self.templates.get(name)

    def clone(self, name=None):
        """Copy the set with an independent, mutable registration scope.

        Parsed templates are carried over and execute against the clone's
        functions. Shared scopes are frozen and carried over as is.
        """
        clone = TemplateSet.__new__(TemplateSet)
        clone.name = self.name if name is None else name
        clone.missingkey = self.missingkey
        clone.skip_func_check = self.skip_func_check
        clone.scope = self.scope.copy()
        clone.shared = list(self.shared)
        clone.templates = {
            key: Template(tmpl.name, clone, tmpl.nodes, tmpl.source)
            for key, tmpl in self.templates.items()
        }
        return clone

    def __repr__(self):
        return f"TemplateSet({self.name!r}, {len(self.templates)} templates)"


class Template:
    """A parsed template bound to its set.

    Attributes:
        name: (str) Template name
        set: (TemplateSet) Owning set
        nodes: (list) Parsed top level nodes
        source: (str) Original source
    """

    def __init__(self, name, tset, nodes, source=""):
        self.name = name
        self.set = tset
        self.nodes = nodes
        self.source = source

    def execute(self, out, data=None, funcs=None):
        """Execute the template, writing to `out`.

        Args:
            out: Object with a `write(str)` method
            data: Value for `.` and `$`
            funcs: (dict | None) Functions for this execution only. They
                shadow the set's functions and the builtins.

        Raises:
            stencil.RegistrationError: If a function in `funcs` is unusable
            stencil.ExecError: If an action fails. The template stays
                usable for later executions.
        """
        exec_scope = stencil.Scope(f"{self.name or 'template'} exec", funcs).freeze()
        scopes = stencil.chain(exec_scope, self.set.scopes)
        state = _exec.State(self, data, scopes, self.set.missingkey)
        logger.debug("executing template %r", self.name)
        _exec.run(state, self.nodes, out)

    def render(self, data=None, funcs=None):
        """Execute the template and return the output text."""
        out = io.StringIO()
        self.execute(out, data, funcs)
        return out.getvalue()

    def __repr__(self):
        return f"Template({self.name!r})"


def _check_missingkey(mode):
    if mode not in MISSINGKEY_MODES:
        raise ValueError(f"missingkey must be one of {', '.join(MISSINGKEY_MODES)}, got {mode!r}")
    return mode
