"""Function scopes with a mutable to frozen lifecycle."""

__all__ = ["Scope"]

import logging

import stencil

logger = logging.getLogger(__name__)


class Scope:
    """A named collection of function entries.

    Scopes start out mutable and accept registrations. Freezing is one way;
    a frozen scope is read-only and can be shared between threads. Use
    `copy()` to get a new mutable scope with the same entries.

    Args:
        name: (str) Diagnostic name of the scope
        funcs: (dict | None) Initial name to callable mapping
        warn_redefine: (bool) Log a warning when a registration replaces
            an existing name

    Attributes:
        name: (str) Diagnostic name
        warn_redefine: (bool) Warn on replaced names
    """

    def __init__(self, name, funcs=None, warn_redefine=False):
        self.name = name
        self.warn_redefine = warn_redefine
        self._entries = {}
        self._frozen = False
        if funcs:
            self.update(funcs)

    @property
    def frozen(self):
        """(bool) True when the scope no longer accepts registrations."""
        return self._frozen

    def freeze(self):
        """Make the scope read-only. Freezing twice is harmless."""
        if not self._frozen:
            logger.debug("freezing scope %s with %d functions",
                         self.name, len(self._entries))
            self._frozen = True
        return self

    def register(self, name, func, takes_state=None):
        """Add or replace a function.

        Args:
            name: (str) Name used at the call site
            func: (callable | stencil.Function) Implementation
            takes_state: (bool | None) Override the `stateful` marker

        Returns:
            (stencil.Function) The stored entry

        Raises:
            stencil.RegistrationError: If the scope is frozen or the
                callable is not usable from a template
        """
        if self._frozen:
            raise stencil.RegistrationError(
                f"cannot register {name!r}: scope {self.name} is frozen")
        if isinstance(func, stencil.Function):
            entry = func
            if entry.name != name:
                entry = stencil.Function(name, entry.func, entry.takes_state,
                                         entry.builtin)
        else:
            entry = stencil.Function(name, func, takes_state)
        if name in self._entries and self.warn_redefine:
            logger.warning("scope %s: function %r redefined", self.name, name)
        logger.debug("scope %s: registered %r", self.name, name)
        self._entries[name] = entry
        return entry

    def update(self, funcs):
        """Register every entry of a name to callable mapping."""
        for name, func in funcs.items():
            self.register(name, func)
        return self

    def lookup(self, name):
        """Exact name lookup.

        Returns:
            (stencil.Function | None) Entry or None when absent
        """
        return self._entries.get(name)

    def copy(self, name=None):
        """Create a new mutable scope holding the same entries."""
        scope = Scope(name or self.name, warn_redefine=self.warn_redefine)
        scope._entries = dict(self._entries)
        return scope

    def names(self):
        """List the registered names in registration order."""
        return list(self._entries)

    def __contains__(self, name):
        return name in self._entries

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries.values())

    def __repr__(self):
        state = "frozen" if self._frozen else "mutable"
        return f"Scope({self.name}, {len(self._entries)} functions, {state})"
