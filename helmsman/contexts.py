"""
Execution records for one dispatch.

- Args: immutable token sequence (a tuple) with first()/tail()/get()/present().
- Context: parsed flag set + remaining args + matched command, linked to its parent
  context so lookups can walk the chain mirroring the command nesting.
"""


class Args(tuple):
    """Remaining positional tokens at one dispatch level."""

    def get(self, n, default="", /):
        return self[n] if 0 <= n < len(self) else default

    def first(self):
        return self.get(0)

    def tail(self):
        return Args(self[1:])

    def present(self):
        return len(self) != 0


class Context:
    """
    Mutable execution record of one dispatch level.

    Attributes
    - app: the App dispatching at this level (a sub-command App for nested levels).
    - flagset: the parsed FlagSet of this level.
    - parent: the Context of the enclosing level, or None at the root.
    - command: the Command being run at this level (None for App-level contexts).
    - shell_complete: True when the invocation asks for completion candidates.
    """

    def __init__(self, app, flagset, parent=None, *, command=None, shell_complete=None):
        self.app = app
        self.flagset = flagset
        self.parent = parent
        self.command = command
        if shell_complete is None:
            shell_complete = parent.shell_complete if parent is not None else False
        self.shell_complete = bool(shell_complete)

    def __repr__(self):
        return "context(app=%r, command=%r, args=%r)" % (
            self.app.name,
            getattr(self.command, "name", None),
            tuple(self.args),
        )

    @property
    def args(self):
        return Args(self.flagset.args)

    def nargs(self):
        return len(self.flagset.args)

    def value(self, name, /):
        return self.flagset.value(name)

    def is_set(self, name, /):
        return name in self.flagset.visited

    def flag_names(self):
        return sorted(self.flagset.visited)

    def lineage(self):
        """Return this context followed by its ancestors, innermost first."""
        lineage = [context := self]
        while context.parent is not None:
            lineage.append(context := context.parent)
        return tuple(lineage)

    def global_value(self, name, /):
        """Value of `name` from the nearest enclosing context that declares it (None if none does)."""
        for context in self.lineage()[1:] or (self,):
            if context.flagset.lookup(name) is not None:
                return context.value(name)
        return None

    def global_is_set(self, name, /):
        return any(context.is_set(name) for context in self.lineage())


__all__ = (
    "Args",
    "Context",
)
