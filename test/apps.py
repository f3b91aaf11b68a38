"""
App behavioral tests (construction, top-level dispatch, help/version/completion).

Conventions
- Test method names follow CamelCase per project convention.
- Output is captured with a colorless rich Console; exits are recorded, never performed.
"""
import io
import sys
import unittest
from unittest import TestCase, mock

from rich.console import Console

from helmsman import BASH_COMPLETION_FLAG, HELP_FLAG, VERSION_FLAG, App, Command, Context, Flag, FlagSet, Option, invoke
from helmsman.faults import ExitError, UndefinedFlagError


def application(*commands, **options):
    console = Console(file=io.StringIO(), color_system=None, width=120)
    codes = []
    options.setdefault("name", "tool")
    app = App(options.pop("name"), commands=commands, writer=console, err_writer=console, exiter=codes.append, **options)
    return app, console, codes


class TestConstruction(TestCase):

    def testBuiltinsAreAdded(self):
        app, _, _ = application(Command("build"))
        self.assertEqual([command.name for command in app.commands], ["build", "help"])
        self.assertEqual(app.flags, (HELP_FLAG, VERSION_FLAG))
        self.assertEqual(app.help_name, "tool")
        self.assertEqual(app.version, "0.0.0")

    def testHiddenBuiltins(self):
        app, _, _ = application(Command("build"), hide_help=True, hide_version=True)
        self.assertEqual([command.name for command in app.commands], ["build"])
        self.assertEqual(app.flags, ())

    def testDeclaredHelpCommandWins(self):
        custom = Command("help")
        app, _, _ = application(custom)
        self.assertEqual(app.commands, (custom,))
        self.assertNotIn(HELP_FLAG, app.flags)

    def testCollidingBuiltinFlagIsSkipped(self):
        verbose = Flag("verbose", "v")
        app, _, _ = application(flags=[verbose])
        self.assertEqual(app.flags, (verbose, HELP_FLAG))

    def testCompletionFlag(self):
        app, _, _ = application(enable_bash_completion=True)
        self.assertIn(BASH_COMPLETION_FLAG, app.flags)
        self.assertNotIn(BASH_COMPLETION_FLAG, app.visible_flags())

    def testCategories(self):
        app, _, _ = application(
            Command("zip", category="b-tools"),
            Command("add", category="A-tools"),
            Command("secret", category="hidden", hidden=True),
        )
        self.assertEqual([category.name for category in app.categories], [None, "A-tools", "b-tools", "hidden"])
        self.assertEqual([category.name for category in app.visible_categories()], [None, "A-tools", "b-tools"])
        self.assertEqual([command.name for command in app.visible_commands()], ["zip", "add", "help"])

    def testLookup(self):
        build = Command("build", aliases=("b",))
        app, _, _ = application(build)
        self.assertIs(app.command("b"), build)
        self.assertIsNone(app.command("missing"))

    def testDefaultNameWithEmptyArgv(self):
        console = Console(file=io.StringIO(), color_system=None)
        with mock.patch.object(sys, "argv", [""]):
            app = App(writer=console, err_writer=console)
        self.assertEqual(app.name, "app")
        self.assertEqual(app.help_name, "app")

    def testDefaultNameFromArgv(self):
        console = Console(file=io.StringIO(), color_system=None)
        with mock.patch.object(sys, "argv", ["/usr/local/bin/deploy", "--dry-run"]):
            app = App(writer=console, err_writer=console)
        self.assertEqual(app.name, "deploy")

    def testNestedAppDeclaresNoVersionOrCompletion(self):
        app, _, _ = application(enable_bash_completion=True, nested=True)
        self.assertEqual(app.flags, (HELP_FLAG,))
        self.assertIs(app.version_flag, VERSION_FLAG)

    def testValidation(self):
        with self.assertRaises(TypeError):
            App("tool", commands=["build"])
        with self.assertRaises(TypeError):
            App("tool", action="run")
        with self.assertRaises(ValueError):
            App("")


class TestRun(TestCase):

    def setUp(self):
        self.seen = []

    def testPromptForms(self):
        app, _, _ = application(Command("build", flags=[Flag("force")], action=self.seen.append))
        app.run("build --force 'a b'")
        app.run(iter(["build", "c"]))
        self.assertEqual(self.seen[0].args, ("a b",))
        self.assertIs(self.seen[0].value("force"), True)
        self.assertEqual(self.seen[1].args, ("c",))
        with self.assertRaises(TypeError):
            app.run(3)
        with self.assertRaises(TypeError):
            app.run(["build", 3])

    def testGlobalFlagsStopAtCommandName(self):
        app, _, _ = application(Command("build", action=self.seen.append), flags=[Option("config")])
        app.run(["--config", "x.toml", "build", "arg"])
        context, = self.seen
        self.assertEqual(context.args, ("arg",))
        self.assertEqual(context.global_value("config"), "x.toml")

    def testAppAction(self):
        app, _, _ = application(action=self.seen.append)
        app.run(["one", "two"])
        self.assertEqual(self.seen[0].args, ("one", "two"))
        self.assertIsNone(self.seen[0].command)

    def testDefaultActionShowsHelp(self):
        app, console, _ = application(Command("build", usage="Build things"), usage="Demo tool")
        app.run([])
        output = console.file.getvalue()
        self.assertIn("tool - Demo tool", output)
        self.assertIn("COMMANDS:", output)
        self.assertIn("Build things", output)
        self.assertIn("--help, -h", output)

    def testHelpFlag(self):
        app, console, _ = application(action=self.seen.append)
        app.run(["--help"])
        self.assertEqual(self.seen, [])
        self.assertIn("USAGE:", console.file.getvalue())

    def testVersionFlag(self):
        app, console, _ = application(action=self.seen.append, version="1.2.3")
        app.run(["-v"])
        self.assertEqual(self.seen, [])
        self.assertEqual(console.file.getvalue(), "tool version 1.2.3\n")

    def testUsageError(self):
        app, console, _ = application(action=self.seen.append)
        with self.assertRaises(UndefinedFlagError):
            app.run(["--nope"])
        self.assertEqual(self.seen, [])
        self.assertIn("Incorrect Usage. flag provided but not defined: -nope", console.file.getvalue())

    def testUsageErrorHook(self):
        calls = []
        app, _, _ = application(on_usage_error=lambda context, error, is_subcommand: calls.append(is_subcommand))
        app.run(["--nope"])
        self.assertEqual(calls, [False])

    def testReturnedUsageErrorIsTranslated(self):
        app, _, codes = application(on_usage_error=lambda context, error, is_subcommand: ExitError("bad", 2))
        with self.assertRaises(ExitError):
            app.run(["--nope"])
        self.assertEqual(codes, [2])

    def testReturnedBeforeError(self):
        events = []
        app, _, codes = application(
            action=events.append,
            before=lambda context: ExitError("refused", 5),
            after=lambda context: events.append("after"),
        )
        with self.assertRaises(ExitError):
            app.run([])
        self.assertEqual(events, ["after"])
        self.assertEqual(codes, [5])

    def testReturnedAfterError(self):
        app, _, codes = application(action=self.seen.append, after=lambda context: ExitError("late", 5))
        with self.assertRaises(ExitError):
            app.run([])
        self.assertEqual(len(self.seen), 1)
        self.assertEqual(codes, [5])

    def testNestedUsageErrorWithoutCommandsShowsListing(self):
        root, console, _ = application(Command("sub"))
        flagset = FlagSet("tool", root.flags)
        flagset.parse(["sub", "--nope"])
        nested = App("tool sub", hide_help=True, nested=True, writer=console, err_writer=console)
        with self.assertRaises(UndefinedFlagError):
            nested.run_as_subcommand(Context(root, flagset))
        output = console.file.getvalue()
        self.assertIn("Incorrect Usage. flag provided but not defined: -nope", output)
        self.assertIn("tool sub", output)

    def testBeforeFailure(self):
        events = []

        def before(context):
            raise ExitError("refused", 5)

        app, console, codes = application(action=events.append, after=lambda context: events.append("after"), before=before)
        with self.assertRaises(ExitError):
            app.run([])
        self.assertEqual(events, ["after"])
        self.assertEqual(codes, [5])
        self.assertIn("refused", console.file.getvalue())

    def testAppAfterSeesCommandError(self):
        events = []

        def action(context):
            raise ValueError("broken")

        app, _, _ = application(Command("build", action=action), after=lambda context: events.append("after"))
        with self.assertRaisesRegex(ValueError, "broken"):
            app.run(["build"])
        self.assertEqual(events, ["after"])

    def testCustomExitHandler(self):
        handled = []
        app, _, codes = application(
            action=lambda context: ExitError("custom", 9),
            exit_err_handler=lambda context, error: handled.append(error.exit_code),
        )
        with self.assertRaises(ExitError):
            app.run([])
        self.assertEqual(handled, [9])
        self.assertEqual(codes, [])

    def testInvoke(self):
        app, _, _ = application(action=self.seen.append)
        invoke(app, "x")
        self.assertEqual(self.seen[0].args, ("x",))
        with self.assertRaises(TypeError):
            invoke(object())


class TestHelpCommand(TestCase):

    def testHelpForCommand(self):
        app, console, _ = application(Command("build", usage="Build things", flags=[Option("output", "o", usage="target path")]))
        app.run(["help", "build"])
        output = console.file.getvalue()
        self.assertIn("tool build - Build things", output)
        self.assertIn("--output, -o OUTPUT", output)
        self.assertIn("target path", output)

    def testHelpAlias(self):
        app, console, _ = application(Command("build", usage="Build things"))
        app.run(["h", "build"])
        self.assertIn("tool build - Build things", console.file.getvalue())

    def testUnknownTopic(self):
        app, console, codes = application()
        with self.assertRaises(ExitError) as context:
            app.run(["help", "nope"])
        self.assertEqual(context.exception.exit_code, 3)
        self.assertEqual(codes, [3])
        self.assertIn("No help topic for 'nope'", console.file.getvalue())

    def testUnknownTopicHandler(self):
        missing = []
        app, _, codes = application(command_not_found=lambda context, name: missing.append(name))
        app.run(["help", "nope"])
        self.assertEqual(missing, ["nope"])
        self.assertEqual(codes, [])


class TestCompletion(TestCase):

    def testAppCompletionListsCommands(self):
        app, console, _ = application(
            Command("build", aliases=("b",)),
            Command("secret", hidden=True),
            enable_bash_completion=True,
        )
        app.run(["--generate-bash-completion"])
        self.assertEqual(console.file.getvalue().split(), ["build", "b", "help", "h"])

    def testCommandCompletionListsFlags(self):
        ran = []
        app, console, _ = application(
            Command("build", flags=[Flag("force", "f")], action=ran.append),
            enable_bash_completion=True,
        )
        app.run(["build", "--generate-bash-completion"])
        self.assertEqual(ran, [])
        self.assertEqual(console.file.getvalue().split(), ["--force", "-f"])

    def testCustomCompletion(self):
        app, console, _ = application(
            Command("build", bash_complete=lambda context: context.app.writer.print("custom")),
            enable_bash_completion=True,
        )
        app.run(["build", "--generate-bash-completion"])
        self.assertEqual(console.file.getvalue().split(), ["custom"])

    def testCompletionDisabled(self):
        app, _, _ = application(on_usage_error=lambda context, error, is_subcommand: None)
        app.run(["--generate-bash-completion"])


class TestPackage(TestCase):

    def testMetadata(self):
        import helmsman
        self.assertEqual(helmsman.__title__, "helmsman")
        self.assertEqual(helmsman.__author__, "Helmsman Contributors")
        self.assertEqual(".".join(map(str, helmsman.version_info[:3])), helmsman.__version__)

if __name__ == "__main__":
    unittest.main()
