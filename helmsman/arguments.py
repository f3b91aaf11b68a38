"""
Helmsman flag declarations and the flag set parser.

What this module provides
- Flag: presence-only (boolean) switch, e.g. --verbose / -v.
- Option: value-bearing switch with a converter, e.g. --output FILE / --output=FILE.
- FlagSet: a parser scoped to one command. It registers every declared name and consumes
  leading flag tokens with classic getopt-like rules, leaving the rest as positional args.
- normalize_flags(): reconcile aliases after parsing (value fan-out, “two forms” check).
- visible_flags(): drop hidden declarations for help/completion output.
- HELP_FLAG / VERSION_FLAG / BASH_COMPLETION_FLAG: built-in declarations.

Parsing rules (FlagSet.parse)
- Parsing stops at the first token that is not a flag ("-" alone counts as positional)
  or right after "--", which is consumed.
- "-name" and "--name" are equivalent; "=value" may be attached inline.
- Flags accept an optional inline boolean ("--debug=false"); options take the inline
  value or the following token.
- The parser never prints; every problem is raised as a UsageError subclass.
"""
import builtins
import re

from .faults import *
from .utils import *

_TRUTHS = {"1", "t", "T", "TRUE", "true", "True"}
_FALSEHOODS = {"0", "f", "F", "FALSE", "false", "False"}


def _sanitize_names(cls, names, /):
    """
    Validate declared names (given without dashes) and return them as a tuple.

    Rules
    - At least one name is required.
    - Each name is a non-empty string of letter-led, hyphen-separated segments
      ("v", "verbose", "no-color", "generate-bash-completion").
    - Duplicates are rejected; declaration order is kept (the first name is the primary one).
    """
    if not names:
        raise TypeError(f"{cls.__typename__} must specify at least one name")

    seen = []
    for name in names:
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} names must be strings")
        elif not (name := name.strip()):
            raise ValueError(f"{cls.__typename__} names cannot be empty-strings")
        elif not re.fullmatch(r"[^\W\d_](-?[^\W_]+)*", name):
            raise ValueError(f"{cls.__typename__} names must be valid flag names without leading dashes")
        elif name in seen:
            raise ValueError(f"{cls.__typename__} names cannot contain duplicates")
        seen.append(name)
    return tuple(seen)


def _sanitize_text(cls, field, object, /):
    if not isinstance(object, str | Unset):
        raise TypeError(f"{cls.__typename__} {field!r} must be a string")
    elif isinstance(object, str) and not (object := object.strip()):
        raise ValueError(f"{cls.__typename__} {field!r} cannot be empty")
    return coalesce(object)


def spell(name, /):
    """Render a bare flag name the way users type it: "-v" for one letter, "--verbose" otherwise."""
    return ("-" if len(name) == 1 else "--") + name


class Flag(metaclass=Introspective):
    """
    Named, presence-only flag declaration.

    Its presence sets the value to True for every one of its names; absent flags read as False.
    """

    __introspectable__ = (
        "names",
        "usage",
        "hidden",
    )

    def __init__(self, *names, usage=Unset, hidden=False):
        self._names = _sanitize_names(type(self), names)
        self._usage = _sanitize_text(type(self), "usage", usage)
        self._hidden = bool(hidden)

    @property
    def name(self):
        return self._names[0]

    @property
    def default(self):
        return False

    def spelling(self):
        return ", ".join(map(spell, self._names))


class Option(Flag):
    """
    Named, value-bearing flag declaration.

    - type: converter applied to the raw string (str by default); a raised
      ValueError/TypeError becomes an InvalidFlagValueError.
    - default: value reported when the option is not given.
    - metavar: placeholder shown in help (defaults to the upper-cased primary name).
    """

    __introspectable__ = (
        "names",
        "usage",
        "hidden",
        "type",
        "default",
        "metavar",
    )

    def __init__(self, *names, usage=Unset, hidden=False, type=str, default=None, metavar=Unset):
        super().__init__(*names, usage=usage, hidden=hidden)
        if not callable(type):
            raise TypeError(f"{builtins.type(self).__typename__} 'type' must be callable")
        self._type = type
        self._default = default
        self._metavar = _sanitize_text(builtins.type(self), "metavar", metavar) or self.name.upper()

    def convert(self, value, /):
        return self._type(value)


HELP_FLAG = Flag("help", "h", usage="show help")
VERSION_FLAG = Flag("version", "v", usage="print the version")
BASH_COMPLETION_FLAG = Flag("generate-bash-completion", hidden=True)


class FlagSet:
    """
    Parser for the flags of one dispatch level.

    Attributes
    - name: the owning command/app name (used only for diagnostics).
    - args: tokens left over after parse() (positional arguments), as a tuple.
    - visited: names given on the command line (plus aliases filled in by normalize_flags()).
    """

    def __init__(self, name, flags=()):
        self.name = name
        self._declared = {}
        self._values = {}
        self._visited = set()
        self._args = ()
        for flag in flags:
            for alias in flag.names:
                if alias in self._declared:
                    raise ConfigurationError(
                        "%s flag redefined: %s" % (name, alias),
                        name=alias,
                        command=name,
                    )
                self._declared[alias] = flag

    @property
    def args(self):
        return self._args

    @property
    def visited(self):
        return frozenset(self._visited)

    def lookup(self, name, /):
        return self._declared.get(name)

    def value(self, name, /):
        if name in self._values:
            return self._values[name]
        if (flag := self._declared.get(name)) is not None:
            return flag.default
        return None

    def set(self, name, value, /):
        if name not in self._declared:
            raise UndefinedFlagError("no such flag -%s" % name, name=name)
        self._values[name] = value
        self._visited.add(name)

    def parse(self, tokens, /):
        """
        Consume leading flag tokens from `tokens`; the remainder becomes self.args.

        Raises a UsageError subclass on the first malformed, unknown, or badly valued flag;
        self.args then holds the tokens that were not consumed yet.
        """
        tokens = list(tokens)
        index = 0
        try:
            while index < len(tokens):
                token = tokens[index]
                if len(token) < 2 or not token.startswith("-"):
                    break
                dashes = 2 if token.startswith("--") else 1
                if token == "--":
                    index += 1
                    break

                name = token[dashes:]
                if not name or name[0] in "-=":
                    raise BadFlagSyntaxError("bad flag syntax: %s" % token, token=token)
                index += 1

                name, inline, value = name.partition("=")
                if (flag := self._declared.get(name)) is None:
                    raise UndefinedFlagError("flag provided but not defined: -%s" % name, token=token, name=name)

                if isinstance(flag, Option):
                    if not inline:
                        if index >= len(tokens):
                            raise FlagValueRequiredError("flag needs an argument: -%s" % name, token=token, name=name)
                        value = tokens[index]
                        index += 1
                    try:
                        value = flag.convert(value)
                    except (ValueError, TypeError) as exception:
                        raise InvalidFlagValueError(
                            "invalid value %r for flag -%s: %s" % (value, name, exception),
                            token=token,
                            name=name,
                            value=value,
                        ) from exception
                elif inline:
                    if value in _TRUTHS:
                        value = True
                    elif value in _FALSEHOODS:
                        value = False
                    else:
                        raise InvalidFlagValueError(
                            "invalid boolean value %r for -%s" % (value, name),
                            token=token,
                            name=name,
                            value=value,
                        )
                else:
                    value = True

                self.set(name, value)
        finally:
            self._args = tuple(tokens[index:])


def normalize_flags(flags, flagset, /):
    """
    Reconcile multi-name flags after parsing.

    - Two names of the same flag given together is an error ("-h --help").
    - Otherwise the given name's value is copied to every other name of that flag,
      so lookups succeed under any alias.
    """
    visited = flagset.visited
    for flag in flags:
        if len(flag.names) == 1:
            continue
        found = None
        for name in flag.names:
            if name not in visited:
                continue
            if found is not None:
                raise FlagNormalizationError(
                    "cannot use two forms of the same flag: %s %s" % (name, found),
                    names=(found, name),
                )
            found = name
        if found is None:
            continue
        for name in flag.names:
            if name not in visited:
                flagset.set(name, flagset.value(found))


def visible_flags(flags, /):
    """Return the declarations that are not hidden, preserving order."""
    return [flag for flag in flags if not flag.hidden]


__all__ = (
    "Flag",
    "Option",
    "FlagSet",
    "HELP_FLAG",
    "VERSION_FLAG",
    "BASH_COMPLETION_FLAG",
    "normalize_flags",
    "visible_flags",
    "spell",
)
