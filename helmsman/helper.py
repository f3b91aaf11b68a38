"""
Help, version and completion output for a dispatch level.

Renderers (print through context.app.writer, a rich Console)
- show_app_help(context): the root listing (name, usage, version, commands, global options).
- show_command_help(context, name): one command's page; "" renders the sub-command listing
  of context.app; an unknown name defers to app.command_not_found or raises
  ExitError("No help topic for 'NAME'", 3).
- show_subcommand_help(context): help for the command running at this level.
- show_version(context): "NAME version VERSION".
- show_completions(context) / show_command_completions(context, name): one candidate per line.

Predicates (render as a side effect and return True when the invocation asked for it)
- check_help, check_version, check_command_help, check_subcommand_help,
  check_completions, check_command_completions.

Palette keys (override with a __styles__ mapping in __main__)
- section-label, program-name, command-name, flag-name, metavar, category-label, description
"""
from collections import defaultdict

from rich.console import Group
from rich.padding import Padding
from rich.table import Table
from rich.text import Text

from .arguments import Option, spell, visible_flags
from .faults import ExitError


def echo(console, *objects):
    """Print plain lines exactly as given (no markup, no highlighting, no wrapping)."""
    console.print(*objects, markup=False, highlight=False, soft_wrap=True)


def _palette(console):
    styles = defaultdict(str, {
        "section-label": "bold #FFFFFF",  # pure white headers
        "program-name": "bold #FF4D94",  # magenta-pink program name
        "command-name": "bold #00E6FF",  # cyan command names
        "flag-name": "bold #22C55E",  # green flags
        "metavar": "bold #FFD600",  # amber placeholders
        "category-label": "italic #A3A3A3",  # neutral gray categories
        "description": "#9CA3AF",  # muted gray text
    } | getattr(__import__("__main__"), "__styles__", {}))

    def styler(style):
        return styles[style] if console.color_system else ""
    return styler


def _section(title, body, styler):
    return Group(Text(title.upper() + ":", styler("section-label")), Padding(body, (0, 0, 0, 3)))


def _flags_table(flags, styler):
    table = Table.grid(padding=(0, 3))
    table.add_column(no_wrap=True)
    table.add_column()
    for flag in visible_flags(flags):
        names = Text(flag.spelling(), styler("flag-name"))
        if isinstance(flag, Option):
            names.append(" " + flag.metavar, styler("metavar"))
        table.add_row(names, Text(flag.usage or "", styler("description")))
    return table


def _commands_table(commands, styler):
    table = Table.grid(padding=(0, 3))
    table.add_column(no_wrap=True)
    table.add_column()
    for command in commands:
        table.add_row(
            Text(", ".join(command.names()), styler("command-name")),
            Text(command.usage or "", styler("description")),
        )
    return table


def _categories(app, styler):
    renderables = []
    for category in app.visible_categories():
        if category.name:
            renderables.append(Text(category.name + ":", styler("category-label")))
        renderables.append(Padding(_commands_table(category.visible_commands(), styler), (0, 0, 0, 2 * bool(category.name))))
    return Group(*renderables)


def show_app_help(context):
    app = context.app
    styler = _palette(app.writer)
    name = Text.assemble((app.help_name, styler("program-name")), " - " + app.usage if app.usage else "")
    usage = app.usage_text or "%s %s%s%s" % (
        app.help_name,
        "[global options]" if app.visible_flags() else "",
        " command [command options]" if app.visible_commands() else "",
        " " + app.args_usage if app.args_usage else " [arguments...]",
    )
    sections = [
        _section("name", name, styler),
        _section("usage", Text(usage), styler),
    ]
    if app.version and not app.hide_version:
        sections.append(_section("version", Text(app.version), styler))
    if app.description:
        sections.append(_section("description", Text(app.description, styler("description")), styler))
    if app.author or app.email:
        sections.append(_section("author", Text(" ".join(filter(None, (app.author, app.email and "<%s>" % app.email)))), styler))
    if app.visible_commands():
        sections.append(_section("commands", _categories(app, styler), styler))
    if app.visible_flags():
        sections.append(_section("global options", _flags_table(app.flags, styler), styler))
    if app.copyright:
        sections.append(_section("copyright", Text(app.copyright), styler))
    app.writer.print(Group(*sections))


def _show_subcommand_listing(context):
    app = context.app
    styler = _palette(app.writer)
    name = Text.assemble((app.help_name, styler("program-name")), " - " + app.usage if app.usage else "")
    usage = app.usage_text or "%s command%s%s" % (
        app.help_name,
        " [command options]" if app.visible_flags() else "",
        " " + app.args_usage if app.args_usage else " [arguments...]",
    )
    sections = [
        _section("name", name, styler),
        _section("usage", Text(usage), styler),
    ]
    if app.description:
        sections.append(_section("description", Text(app.description, styler("description")), styler))
    if app.visible_commands():
        sections.append(_section("commands", _categories(app, styler), styler))
    if app.visible_flags():
        sections.append(_section("options", _flags_table(app.flags, styler), styler))
    app.writer.print(Group(*sections))


def _show_command_page(context, command):
    app = context.app
    styler = _palette(app.writer)
    full = command.help_name or "%s %s" % (app.help_name, command.name)
    name = Text.assemble((full, styler("program-name")), " - " + command.usage if command.usage else "")
    usage = command.usage_text or "%s%s%s" % (
        full,
        " [command options]" if command.visible_flags() else "",
        " " + command.args_usage if command.args_usage else " [arguments...]",
    )
    sections = [
        _section("name", name, styler),
        _section("usage", Text(usage), styler),
    ]
    if command.category:
        sections.append(_section("category", Text(command.category, styler("category-label")), styler))
    if command.description:
        sections.append(_section("description", Text(command.description, styler("description")), styler))
    if command.visible_flags():
        sections.append(_section("options", _flags_table(command.flags, styler), styler))
    app.writer.print(Group(*sections))


def show_command_help(context, name, /):
    if not name:
        _show_subcommand_listing(context)
        return

    if (command := context.app.command(name)) is not None:
        _show_command_page(context, command)
        return

    if context.app.command_not_found is None:
        raise ExitError("No help topic for '%s'" % name, 3, name=name)
    context.app.command_not_found(context, name)


def show_subcommand_help(context):
    show_command_help(context, getattr(context.command, "name", ""))


def show_version(context):
    echo(context.app.writer, "%s version %s" % (context.app.name, context.app.version))


def show_completions(context):
    app = context.app
    if app.bash_complete is not None:
        app.bash_complete(context)
        return
    for command in app.visible_commands():
        for name in command.names():
            echo(app.writer, name)


def show_command_completions(context, name, /):
    if (command := context.app.command(name)) is None:
        return
    if command.bash_complete is not None:
        command.bash_complete(context)
        return
    for flag in visible_flags(command.flags):
        for alias in flag.names:
            echo(context.app.writer, spell(alias))
    for subcommand in command.subcommands:
        if not subcommand.hidden:
            for alias in subcommand.names():
                echo(context.app.writer, alias)


def _asked(context, flag):
    return flag is not None and any(context.value(name) is True for name in flag.names)


def check_help(context):
    return _asked(context, context.app.help_flag)


def check_version(context):
    return _asked(context, context.app.version_flag)


def check_command_help(context, name, /):
    if not check_help(context):
        return False
    show_command_help(context, name)
    return True


def check_subcommand_help(context):
    if not check_help(context):
        return False
    show_subcommand_help(context)
    return True


def check_completions(context):
    if not context.shell_complete:
        return False
    if context.args.present() and context.app.command(context.args.first()) is not None:
        return False
    show_completions(context)
    return True


def check_command_completions(context, name, /):
    if not context.shell_complete:
        return False
    show_command_completions(context, name)
    return True


__all__ = (
    "echo",
    "show_app_help",
    "show_command_help",
    "show_subcommand_help",
    "show_version",
    "show_completions",
    "show_command_completions",
    "check_help",
    "check_version",
    "check_command_help",
    "check_subcommand_help",
    "check_completions",
    "check_command_completions",
)
