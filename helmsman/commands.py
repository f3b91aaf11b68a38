"""
Helmsman command layer: the command tree and its lifecycle dispatcher.

What this module provides
- Command: an immutable node of the dispatch tree (name, aliases, flags, sub-commands,
  lifecycle hooks, parsing toggles). Command.run(context) dispatches one invocation:
  • commands owning sub-commands delegate to a nested App (build_subcommand_app);
  • leaf commands partition their tokens, parse flags, and sequence the hooks
    (usage error → help → before → action → after).
- build_subcommand_app(command, context): the nested, independently dispatchable App for
  a command's sub-tree, inheriting the parent App's shared configuration.
- command(...): create a Command from a function (direct or decorator form).
- sort_commands(commands): name order used for help listings.
- help_command / help_subcommand: the built-in "help" commands.

Token order handed to the flag parser (Command.arrange)
- skip_flag_parsing:           ["--", *tokens] (nothing is a flag).
- default (reordering):        flag region first, then positionals; untouched when no flag.
- skip_arg_reorder + short:    positionals then flags without a terminator, flags alone with one.
- skip_arg_reorder:            positionals then flags.
- use_short_option_handling expands "-abc" into "-a -b -c" in the flag region first.

Lifecycle guarantees
- The after hook runs exactly once whenever the before/action stage is entered, on every
  exit path. Its failure joins an in-flight error into a MultiError.
- Errors raised by hooks and actions pass through App.handle_exit_coder before propagating.
- A command is never mutated by dispatch: the synthetic help flag goes into a per-run list.
"""
import copy
import inspect
from collections.abc import Iterable
from contextlib import contextmanager

from .actions import resolve_action, run_hook
from .arguments import Flag, FlagSet, normalize_flags, visible_flags
from .contexts import Context
from .faults import *
from .helper import *
from .partition import *
from .utils import *


_TEXTS = (
    "name",
    "short_name",
    "usage",
    "usage_text",
    "description",
    "args_usage",
    "category",
    "help_name",
)


def _process_strings(cls, metadata):
    """
    Validate and trim the scalar text fields of a command in place.

    - name is required and must be a non-empty string.
    - the others accept a string or Unset; Unset becomes None.
    """
    if not isinstance(metadata["name"], str):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    for name in _TEXTS:
        if not isinstance(object := metadata[name], str | Unset):
            raise TypeError(f"{cls.__typename__} {name!r} must be a string")
        elif isinstance(object, str) and not (object := object.strip()):
            raise ValueError(f"{cls.__typename__} {name!r} cannot be empty")
        metadata[name] = coalesce(object)


def _process_collections(cls, metadata):
    """
    Validate the collection fields and stabilize them to tuples (declaration order kept).
    """
    for name, kind in (
            ("aliases", str),
            ("ancestors", str),
            ("subcommands", Command),
            ("flags", Flag),
    ):
        object = metadata[name]
        if isinstance(object, str) or not isinstance(object, Iterable):
            raise TypeError(f"{cls.__typename__} {name!r} must be an iterable of {kind.__name__.lower()}s")
        object = tuple(object)
        if not all(isinstance(item, kind) for item in object):
            raise TypeError(f"{cls.__typename__} {name!r} must be an iterable of {kind.__name__.lower()}s")
        metadata[name] = object


def _process_hooks(cls, metadata):
    for name in ("before", "after", "action", "on_usage_error", "bash_complete"):
        if metadata[name] is not None and not callable(metadata[name]):
            raise TypeError(f"{cls.__typename__} {name!r} must be callable")


@contextmanager
def _translated(context):
    """Route anything raised in the block through the app's exit coder, then let it propagate."""
    try:
        yield
    except Exception as error:
        context.app.handle_exit_coder(context, error)
        raise


@contextmanager
def _aftermath(hook, context):
    """
    Run `hook(context)` once when the block exits, however it exits.

    - block raised an error, hook raised too: both are raised together as a MultiError.
    - block unwound (SystemExit, KeyboardInterrupt, ...): the unwind keeps propagating; a hook
      failure is still routed through the exit coder and chained as its __context__.
    - block succeeded, hook raised: the hook error is raised.
    Every error leaving this scope because of the hook goes through the exit coder.
    """
    if hook is None:
        yield
        return

    try:
        yield
    except Exception as error:
        try:
            run_hook(hook, context)
        except Exception as failure:
            aggregate = MultiError(error, failure)
            context.app.handle_exit_coder(context, aggregate)
            raise aggregate from None
        raise
    except BaseException as unwind:
        try:
            run_hook(hook, context)
        except Exception as failure:
            context.app.handle_exit_coder(context, failure)
            raise unwind
        raise

    with _translated(context):
        run_hook(hook, context)


class Command(metaclass=Introspective):
    """
    One node of the dispatch tree.

    Identity
    - name (required), short_name (deprecated, prefer aliases), aliases.
    - ancestors: names from the root down to this command's parent; stamped one level at a
      time when a parent builds its sub-command App. full_name joins them with the name.

    Help text (opaque to dispatch)
    - usage, usage_text, description, args_usage, category, help_name.

    Hooks (callables or None)
    - before(context), after(context), action(context) or action(),
      on_usage_error(context, error, is_subcommand), bash_complete(context).

    Tree and parsing
    - subcommands: child Commands; when present the command only delegates.
    - flags: Flag/Option declarations parsed at this level.
    - skip_flag_parsing, skip_arg_reorder, use_short_option_handling, hide_help, hidden.
    """

    __introspectable__ = (
        "name",
        "short_name",
        "aliases",
        "usage",
        "usage_text",
        "description",
        "args_usage",
        "category",
        "help_name",
        "before",
        "after",
        "action",
        "on_usage_error",
        "bash_complete",
        "subcommands",
        "flags",
        "skip_flag_parsing",
        "skip_arg_reorder",
        "use_short_option_handling",
        "hide_help",
        "hidden",
        "ancestors",
    )

    __displayable__ = (
        "name",
        "aliases",
        "usage",
        "category",
        "subcommands",
        "flags",
        "ancestors",
    )

    def __init__(
            self,
            name,
            /,
            *,
            short_name=Unset,
            aliases=(),
            usage=Unset,
            usage_text=Unset,
            description=Unset,
            args_usage=Unset,
            category=Unset,
            help_name=Unset,
            before=None,
            after=None,
            action=None,
            on_usage_error=None,
            bash_complete=None,
            subcommands=(),
            flags=(),
            skip_flag_parsing=False,
            skip_arg_reorder=False,
            use_short_option_handling=False,
            hide_help=False,
            hidden=False,
            ancestors=(),
    ):
        metadata = {
            "name": name,
            "short_name": short_name,
            "aliases": aliases,
            "usage": usage,
            "usage_text": usage_text,
            "description": description,
            "args_usage": args_usage,
            "category": category,
            "help_name": help_name,
            "before": before,
            "after": after,
            "action": action,
            "on_usage_error": on_usage_error,
            "bash_complete": bash_complete,
            "subcommands": subcommands,
            "flags": flags,
            "skip_flag_parsing": bool(skip_flag_parsing),
            "skip_arg_reorder": bool(skip_arg_reorder),
            "use_short_option_handling": bool(use_short_option_handling),
            "hide_help": bool(hide_help),
            "hidden": bool(hidden),
            "ancestors": ancestors,
        }
        _process_strings(type(self), metadata)
        _process_collections(type(self), metadata)
        _process_hooks(type(self), metadata)

        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        # Resolve the callable shape once; dispatch never inspects it again.
        self._resolved = resolve_action(action, subject="command 'action'") if action is not None else None

    def __replace__(self, /, **overrides):
        fields = {}
        for name in type(self).__introspectable__:
            object = getattr(self, "_" + name)
            fields[name] = Unset if object is None and name in _TEXTS else object
        fields |= overrides
        return type(self)(fields.pop("name"), **fields)

    @property
    def full_name(self):
        return " ".join((*self._ancestors, self._name))

    def names(self):
        names = [self._name]
        if self._short_name:
            names.append(self._short_name)
        return names + list(self._aliases)

    def has_name(self, name, /):
        return name in self.names()

    def visible_flags(self):
        return visible_flags(self._flags)

    def arrange(self, tokens, /):
        """
        Return the token order handed to this command's flag parser (see module docstring).
        """
        tokens = list(tokens)
        if self._skip_flag_parsing:
            return [TERMINATOR, *tokens]

        first, terminator = get_indexes(tokens)
        flags, positionals = split_args(tokens, first, terminator)
        if self._use_short_option_handling:
            flags = translate_short_options(flags)

        if not self._skip_arg_reorder:
            return [*flags, *positionals] if first > -1 else tokens
        if self._use_short_option_handling:
            if terminator == -1 and first > -1:
                return [*positionals, *flags]
            if first == -1:
                return positionals
            return flags
        return [*positionals, *flags]

    def run(self, context, /):
        """
        Dispatch this command. `context` is the enclosing level's context: its first arg is
        this command's name and the rest are this command's tokens.

        Returns normally on success (including help/completion short-circuits); raises the
        usage, hook, or action error otherwise.
        """
        if self._subcommands:
            return build_subcommand_app(self, context).run_as_subcommand(context)

        writer = context.app.writer
        flags = list(self._flags)
        if not self._hide_help and context.app.help_flag is not None:
            flags.append(context.app.help_flag)
        flagset = FlagSet(self._name, flags)

        failure = None
        try:
            flagset.parse(self.arrange(context.args.tail()))
        except UsageError as error:
            failure = error

        try:
            normalize_flags(flags, flagset)
        except FlagNormalizationError as error:
            echo(writer, str(error))
            echo(writer)
            show_command_help(context, self._name)
            raise

        child = Context(context.app, flagset, context, command=self)
        if check_command_completions(child, self._name):
            return

        if failure is not None:
            if self._on_usage_error is not None:
                with _translated(child):
                    run_hook(self._on_usage_error, child, failure, False)
                return
            echo(writer, "Incorrect Usage: %s" % failure)
            echo(writer)
            show_command_help(child, self._name)
            raise failure

        if check_command_help(child, self._name):
            return

        with _aftermath(self._after, child):
            if self._before is not None:
                try:
                    run_hook(self._before, child)
                except Exception as error:
                    show_command_help(child, self._name)
                    child.app.handle_exit_coder(child, error)
                    raise

            with _translated(child):
                (self._resolved or help_subcommand._resolved)(child)


def build_subcommand_app(command, context, /):
    """
    Build the App dispatching `command`'s sub-tree.

    Inherited from context.app: metadata, command_not_found, writers, version/hide_version,
    compiled, author/email/copyright, completion, exit handling, built-in flags.
    Taken from the command: name (parent name + command name), help text, flags, hooks.
    Sub-commands are copied with their ancestor path one level deeper.
    The App is nested: version and completion flags stay at the root.
    """
    from .apps import App

    parent = context.app
    name = "%s %s" % (parent.name, command.name)
    return App(
        name,
        help_name=command.help_name or name,
        usage=command.usage or Unset,
        usage_text=command.usage_text or Unset,
        description=command.description or Unset,
        args_usage=command.args_usage or Unset,
        commands=[
            copy.replace(subcommand, ancestors=(*command.ancestors, command.name))
            for subcommand in command.subcommands
        ],
        flags=command.flags,
        hide_help=command.hide_help,
        metadata=parent.metadata,
        command_not_found=parent.command_not_found,
        version=parent.version,
        hide_version=parent.hide_version,
        compiled=parent.compiled,
        author=parent.author or Unset,
        email=parent.email or Unset,
        copyright=parent.copyright or Unset,
        writer=parent.writer,
        err_writer=parent.err_writer,
        enable_bash_completion=parent.enable_bash_completion,
        nested=True,
        bash_complete=command.bash_complete,
        before=command.before,
        after=command.after,
        action=command._resolved or help_subcommand._resolved,
        on_usage_error=command.on_usage_error,
        exiter=parent.exiter,
        exit_err_handler=parent.exit_err_handler,
        help_flag=parent.help_flag,
        version_flag=parent.version_flag,
    )


def sort_commands(commands, /):
    """Return `commands` ordered by name (case-insensitive, upper case first on ties)."""
    return sorted(commands, key=lambda command: lexicographic(command.name))


def command(source=Unset, /, **kwargs):
    """
    Create a Command from a function, or return a decorator that will.

    - name defaults to the function name (underscores become hyphens).
    - usage defaults to the first line of the function's docstring.
    - every other keyword is forwarded to Command.

    Forms
    - build = command(build, flags=[...])
    - @command(aliases=["b"])
      def build(context): ...
    """
    @rename("command")
    def wrapper(source, /):
        if not callable(source):
            raise TypeError("@command() must be applied to a callable")
        options = dict(kwargs)
        name = options.pop("name", source.__name__.replace("_", "-"))
        if "usage" not in options and (doc := inspect.getdoc(source)):
            options["usage"] = doc.splitlines()[0]
        return Command(name, action=source, **options)

    return wrapper(source) if source is not Unset else wrapper


@rename("help")
def _help_action(context):
    if context.args.present():
        show_command_help(context, context.args.first())
        return
    show_app_help(context)


@rename("help")
def _help_subcommand_action(context):
    if context.args.present():
        show_command_help(context, context.args.first())
        return
    show_subcommand_help(context)


help_command = Command(
    "help",
    aliases=("h",),
    usage="Shows a list of commands or help for one command",
    args_usage="[command]",
    action=_help_action,
)

help_subcommand = Command(
    "help",
    aliases=("h",),
    usage="Shows a list of commands or help for one command",
    args_usage="[command]",
    action=_help_subcommand_action,
)


__all__ = (
    "Command",
    "build_subcommand_app",
    "sort_commands",
    "command",
    "help_command",
    "help_subcommand",
)
