"""
Helmsman application layer: the root of the dispatch tree.

What this module provides
- App: an immutable, dispatchable root (or nested sub-command) node. At construction it
  derives its effective command list (built-in "help" added), its effective flags
  (help/version/completion flags added) and a sorted category index.
- App.run(prompt): dispatch one invocation from argv, a shell-like string, or tokens.
- App.run_as_subcommand(context): the same sequence for a nested App built by a command.
- CommandCategory: commands sharing a category label, in declaration order.
- invoke(app, prompt): convenience runner.

Errors propagate by raising; a normal return means the invocation succeeded (help, version
and completion short-circuits included).
"""
import os
import shlex
import sys
from collections.abc import Iterable, Mapping
from datetime import datetime

from rich.console import Console

from .actions import resolve_action, run_hook
from .arguments import BASH_COMPLETION_FLAG, HELP_FLAG, VERSION_FLAG, Flag, FlagSet, normalize_flags, visible_flags
from .commands import Command, _aftermath, _translated, help_command
from .contexts import Context
from .faults import *
from .helper import *
from .utils import *


def _compile_time():
    # Modification time of the running program; now when it cannot be stat'ed.
    try:
        return datetime.fromtimestamp(os.path.getmtime(sys.argv[0]))
    except (OSError, IndexError):
        return datetime.now()


def _process_strings(cls, metadata):
    if not isinstance(metadata["name"], str):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    for name in (
            "name",
            "help_name",
            "usage",
            "usage_text",
            "args_usage",
            "description",
            "version",
            "author",
            "email",
            "copyright",
    ):
        if not isinstance(object := metadata[name], str | Unset):
            raise TypeError(f"{cls.__typename__} {name!r} must be a string")
        elif isinstance(object, str) and not (object := object.strip()):
            raise ValueError(f"{cls.__typename__} {name!r} cannot be empty")
        metadata[name] = coalesce(object)


def _process_collections(cls, metadata):
    for name, kind in (("commands", Command), ("flags", Flag)):
        object = metadata[name]
        if isinstance(object, str) or not isinstance(object, Iterable):
            raise TypeError(f"{cls.__typename__} {name!r} must be an iterable of {kind.__name__.lower()}s")
        object = tuple(object)
        if not all(isinstance(item, kind) for item in object):
            raise TypeError(f"{cls.__typename__} {name!r} must be an iterable of {kind.__name__.lower()}s")
        metadata[name] = object

    if not isinstance(metadata["metadata"], Mapping):
        raise TypeError(f"{cls.__typename__} 'metadata' must be a mapping")
    metadata["metadata"] = dict(metadata["metadata"])


def _process_hooks(cls, metadata):
    for name in (
            "before",
            "after",
            "action",
            "on_usage_error",
            "command_not_found",
            "bash_complete",
            "exiter",
            "exit_err_handler",
    ):
        if metadata[name] is not None and not callable(metadata[name]):
            raise TypeError(f"{cls.__typename__} {name!r} must be callable")
    for name in ("help_flag", "version_flag"):
        if metadata[name] is not None and not isinstance(metadata[name], Flag):
            raise TypeError(f"{cls.__typename__} {name!r} must be a flag or None")


def _collides(flag, flags):
    declared = {alias for other in flags for alias in other.names}
    return any(alias in declared for alias in flag.names)


class CommandCategory(metaclass=Introspective):
    """Commands sharing one category label (None for uncategorized), in declaration order."""

    __introspectable__ = (
        "name",
        "commands",
    )

    def __init__(self, name, commands=()):
        self._name = name
        self._commands = tuple(commands)

    def visible_commands(self):
        return [command for command in self._commands if not command.hidden]


def _categorize(commands):
    index = {}
    for command in commands:
        index.setdefault(command.category, []).append(command)
    return tuple(sorted(
        (CommandCategory(name, members) for name, members in index.items()),
        key=lambda category: lexicographic(category.name or ""),
    ))


class App(metaclass=Introspective):
    """
    Root of a command tree.

    Every knob is a keyword defaulting to Unset; unset knobs fall back to:
    - name: basename of sys.argv[0] ("app" when that is empty); help_name: name; version: "0.0.0".
    - writer: Console(); err_writer: Console(stderr=True); exiter: sys.exit.
    - help_flag / version_flag: HELP_FLAG / VERSION_FLAG (pass None to disable).
    - action: the built-in help action.

    nested=True marks an App built for a command's sub-tree; it declares neither the version
    flag nor the completion flag.

    `commands` and `flags` expose the effective lists (built-ins included).
    """

    __introspectable__ = (
        "name",
        "help_name",
        "usage",
        "usage_text",
        "args_usage",
        "description",
        "version",
        "hide_version",
        "hide_help",
        "commands",
        "flags",
        "metadata",
        "compiled",
        "author",
        "email",
        "copyright",
        "writer",
        "err_writer",
        "before",
        "after",
        "action",
        "on_usage_error",
        "command_not_found",
        "bash_complete",
        "enable_bash_completion",
        "exiter",
        "exit_err_handler",
        "help_flag",
        "version_flag",
        "nested",
    )

    __displayable__ = (
        "name",
        "version",
        "commands",
        "flags",
    )

    def __init__(
            self,
            name=Unset,
            /,
            *,
            help_name=Unset,
            usage=Unset,
            usage_text=Unset,
            args_usage=Unset,
            description=Unset,
            version=Unset,
            hide_version=False,
            hide_help=False,
            commands=(),
            flags=(),
            metadata=Unset,
            compiled=Unset,
            author=Unset,
            email=Unset,
            copyright=Unset,
            writer=Unset,
            err_writer=Unset,
            before=None,
            after=None,
            action=None,
            on_usage_error=None,
            command_not_found=None,
            bash_complete=None,
            enable_bash_completion=False,
            exiter=Unset,
            exit_err_handler=None,
            help_flag=Unset,
            version_flag=Unset,
            nested=False,
    ):
        settings = {
            "name": coalesce(name, os.path.basename(sys.argv[0]) or "app"),
            "help_name": help_name,
            "usage": usage,
            "usage_text": usage_text,
            "args_usage": args_usage,
            "description": description,
            "version": coalesce(version, "0.0.0"),
            "hide_version": bool(hide_version),
            "hide_help": bool(hide_help),
            "commands": commands,
            "flags": flags,
            "metadata": coalesce(metadata, {}),
            "compiled": _compile_time() if compiled is Unset else compiled,
            "author": author,
            "email": email,
            "copyright": copyright,
            "writer": Console() if writer is Unset else writer,
            "err_writer": Console(stderr=True) if err_writer is Unset else err_writer,
            "before": before,
            "after": after,
            "action": action,
            "on_usage_error": on_usage_error,
            "command_not_found": command_not_found,
            "bash_complete": bash_complete,
            "enable_bash_completion": bool(enable_bash_completion),
            "exiter": coalesce(exiter, sys.exit),
            "exit_err_handler": exit_err_handler,
            "help_flag": coalesce(help_flag, HELP_FLAG),
            "version_flag": coalesce(version_flag, VERSION_FLAG),
            "nested": bool(nested),
        }
        _process_strings(type(self), settings)
        _process_collections(type(self), settings)
        _process_hooks(type(self), settings)
        if not isinstance(settings["compiled"], datetime):
            raise TypeError(f"{type(self).__typename__} 'compiled' must be a datetime")
        settings["help_name"] = settings["help_name"] or settings["name"]

        commands = list(settings["commands"])
        flags = list(settings["flags"])
        helped = not settings["hide_help"] and not any(command.has_name("help") for command in commands)
        if helped:
            commands.append(help_command)
        for flag, wanted in (
                (settings["help_flag"], helped),
                (settings["version_flag"], not settings["hide_version"] and not settings["nested"]),
                (BASH_COMPLETION_FLAG, settings["enable_bash_completion"] and not settings["nested"]),
        ):
            if wanted and flag is not None and not _collides(flag, flags):
                flags.append(flag)
        settings["commands"] = tuple(commands)
        settings["flags"] = tuple(flags)

        for name, object in settings.items():
            setattr(self, "_" + name, object)
        self._resolved = resolve_action(action, subject="app 'action'") if action is not None else help_command._resolved
        self._categories = _categorize(self._commands)

    @property
    def categories(self):
        return self._categories

    def command(self, name, /):
        """Return the first command answering to `name`, or None."""
        for command in self._commands:
            if command.has_name(name):
                return command
        return None

    def visible_categories(self):
        return [category for category in self._categories if category.visible_commands()]

    def visible_commands(self):
        return [command for command in self._commands if not command.hidden]

    def visible_flags(self):
        return visible_flags(self._flags)

    def handle_exit_coder(self, context, error, /):
        if self._exit_err_handler is not None:
            self._exit_err_handler(context, error)
            return
        handle_exit_coder(error, writer=self._err_writer, exiter=self._exiter)

    def _parse(self, tokens):
        flagset = FlagSet(self._name, self._flags)
        try:
            flagset.parse(tokens)
        except UsageError as error:
            return flagset, error
        return flagset, None

    def _dispatch(self, context):
        """Run the after scope, before hook and the command or action for an accepted invocation."""
        with _aftermath(self._after, context):
            if self._before is not None:
                try:
                    run_hook(self._before, context)
                except Exception as error:
                    show_app_help(context)
                    self.handle_exit_coder(context, error)
                    raise

            if context.args.present() and (command := self.command(context.args.first())) is not None:
                command.run(context)
                return

            with _translated(context):
                self._resolved(context)

    def run(self, prompt=Unset, /):
        """
        Dispatch one invocation.

        Parameters
        - prompt:
          • Unset: read tokens from sys.argv[1:].
          • str: shell-like string; will be split via shlex.split.
          • Iterable[str]: pre-tokenized sequence.

        Raises
        - TypeError: when prompt is not Unset/str/Iterable[str].
        - the usage, hook, or action error of the invocation.
        """
        if prompt is Unset:
            tokens = sys.argv[1:]
        elif isinstance(prompt, str):
            tokens = shlex.split(prompt)
        elif isinstance(prompt, Iterable):
            tokens = list(prompt)
            if not all(isinstance(token, str) for token in tokens):
                raise TypeError("run() argument must be a string or an iterable of strings")
        else:
            raise TypeError("run() argument must be a string or an iterable of strings")

        shell_complete = False
        if self._enable_bash_completion and tokens and tokens[-1] == "--" + BASH_COMPLETION_FLAG.name:
            shell_complete = True
            tokens = tokens[:-1]

        flagset, failure = self._parse(tokens)
        context = Context(self, flagset, shell_complete=shell_complete)
        try:
            normalize_flags(self._flags, flagset)
        except FlagNormalizationError as error:
            echo(self._writer, str(error))
            show_app_help(context)
            raise

        if check_completions(context):
            return

        if failure is not None:
            if self._on_usage_error is not None:
                with _translated(context):
                    run_hook(self._on_usage_error, context, failure, False)
                return
            echo(self._writer, "Incorrect Usage. %s" % failure)
            echo(self._writer)
            show_app_help(context)
            raise failure

        if not self._hide_help and check_help(context):
            show_app_help(context)
            return

        if not self._hide_version and check_version(context):
            show_version(context)
            return

        self._dispatch(context)

    def run_as_subcommand(self, context, /):
        """
        Dispatch the nested level below `context`; `context.args.tail()` holds its tokens.
        """
        flagset, failure = self._parse(context.args.tail())
        child = Context(self, flagset, context)
        try:
            normalize_flags(self._flags, flagset)
        except FlagNormalizationError as error:
            echo(self._writer, str(error))
            echo(self._writer)
            if self._commands:
                show_subcommand_help(child)
            else:
                show_command_help(context, child.args.first())
            raise

        if check_completions(child):
            return

        if failure is not None:
            if self._on_usage_error is not None:
                with _translated(child):
                    run_hook(self._on_usage_error, child, failure, True)
                return
            echo(self._writer, "Incorrect Usage. %s" % failure)
            echo(self._writer)
            show_subcommand_help(child)
            raise failure

        if self._commands:
            if check_subcommand_help(child):
                return
        elif check_command_help(context, child.args.first()):
            return

        self._dispatch(child)


def invoke(app, prompt=Unset, /):
    """
    Convenience runner.

    - app: an App, or a Command (wrapped into a one-level App named after it).
    - prompt: forwarded to App.run().
    """
    if isinstance(app, Command):
        app = App(app.name, commands=app.subcommands, flags=app.flags, action=app.action, before=app.before, after=app.after)
    if not isinstance(app, App):
        raise TypeError("invoke() first argument must be an app or a command")
    app.run(prompt)


__all__ = (
    "App",
    "CommandCategory",
    "invoke",
)
