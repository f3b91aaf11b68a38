"""
Flag declaration and flag set parser tests.

Scope
- Declaration validation (names, texts, converters).
- Go-flag-style parsing: stop rules, inline values, error kinds and messages.
- Alias normalization.

Conventions
- Test method names follow CamelCase per project convention.
"""
import unittest
from unittest import TestCase

from helmsman.arguments import HELP_FLAG, Flag, FlagSet, Option, normalize_flags, spell, visible_flags
from helmsman.faults import (
    BadFlagSyntaxError,
    ConfigurationError,
    FlagNormalizationError,
    FlagValueRequiredError,
    InvalidFlagValueError,
    UndefinedFlagError,
    UsageError,
)


class TestDeclarations(TestCase):

    def testSpelling(self):
        self.assertEqual(spell("v"), "-v")
        self.assertEqual(spell("verbose"), "--verbose")
        self.assertEqual(Flag("verbose", "V").spelling(), "--verbose, -V")

    def testNamesMustNotCarryDashes(self):
        with self.assertRaises(ValueError):
            Flag("--verbose")

    def testNamesAreRequired(self):
        with self.assertRaises(TypeError):
            Flag()

    def testDuplicateNamesRejected(self):
        with self.assertRaises(ValueError):
            Flag("x", "x")

    def testOptionMetavarDefaultsToName(self):
        self.assertEqual(Option("output", "o").metavar, "OUTPUT")
        self.assertEqual(Option("output", metavar="FILE").metavar, "FILE")

    def testOptionTypeMustBeCallable(self):
        with self.assertRaises(TypeError):
            Option("count", type=3)

    def testVisibleFlags(self):
        shown, hidden = Flag("shown"), Flag("hidden", hidden=True)
        self.assertEqual(visible_flags([shown, hidden]), [shown])


class TestParse(TestCase):

    def setUp(self):
        self.flagset = FlagSet("tool", [
            Flag("verbose", "V"),
            Option("output", "o"),
            Option("count", "c", type=int, default=1),
        ])

    def testStopsAtFirstPositional(self):
        self.flagset.parse(["-V", "file", "--output", "x"])
        self.assertEqual(self.flagset.args, ("file", "--output", "x"))
        self.assertIs(self.flagset.value("V"), True)

    def testTerminatorIsConsumed(self):
        self.flagset.parse(["--", "-V"])
        self.assertEqual(self.flagset.args, ("-V",))
        self.assertEqual(self.flagset.visited, frozenset())

    def testLoneDashIsPositional(self):
        self.flagset.parse(["-", "x"])
        self.assertEqual(self.flagset.args, ("-", "x"))

    def testOptionValues(self):
        self.flagset.parse(["--output=a.txt", "-c", "4", "rest"])
        self.assertEqual(self.flagset.value("output"), "a.txt")
        self.assertEqual(self.flagset.value("c"), 4)
        self.assertEqual(self.flagset.args, ("rest",))

    def testDefaults(self):
        self.flagset.parse([])
        self.assertIs(self.flagset.value("verbose"), False)
        self.assertEqual(self.flagset.value("count"), 1)
        self.assertIsNone(self.flagset.value("output"))
        self.assertIsNone(self.flagset.value("missing"))

    def testInlineBoolean(self):
        self.flagset.parse(["--verbose=false"])
        self.assertIs(self.flagset.value("verbose"), False)
        self.assertIn("verbose", self.flagset.visited)

    def testUndefinedFlag(self):
        with self.assertRaises(UndefinedFlagError) as context:
            self.flagset.parse(["--nope"])
        self.assertEqual(str(context.exception), "flag provided but not defined: -nope")
        self.assertIsInstance(context.exception, UsageError)

    def testBadSyntax(self):
        with self.assertRaises(BadFlagSyntaxError) as context:
            self.flagset.parse(["---x"])
        self.assertEqual(str(context.exception), "bad flag syntax: ---x")

    def testValueRequired(self):
        with self.assertRaises(FlagValueRequiredError) as context:
            self.flagset.parse(["--output"])
        self.assertEqual(str(context.exception), "flag needs an argument: -output")

    def testInvalidValue(self):
        with self.assertRaises(InvalidFlagValueError):
            self.flagset.parse(["--count", "many"])
        with self.assertRaises(InvalidFlagValueError):
            self.flagset.parse(["--verbose=maybe"])

    def testArgsKeepUnconsumedTokensAfterFailure(self):
        with self.assertRaises(UndefinedFlagError):
            self.flagset.parse(["-V", "--nope", "x"])
        self.assertEqual(self.flagset.args, ("x",))

    def testRedefinedFlag(self):
        with self.assertRaises(ConfigurationError) as context:
            FlagSet("tool", [Flag("x"), Option("x")])
        self.assertEqual(str(context.exception), "tool flag redefined: x")


class TestNormalize(TestCase):

    def testValueIsCopiedToAliases(self):
        flags = [Option("output", "o")]
        flagset = FlagSet("tool", flags)
        flagset.parse(["-o", "out"])
        normalize_flags(flags, flagset)
        self.assertEqual(flagset.value("output"), "out")
        self.assertIn("output", flagset.visited)

    def testTwoFormsOfTheSameFlag(self):
        flags = [HELP_FLAG]
        flagset = FlagSet("tool", flags)
        flagset.parse(["-h", "--help"])
        with self.assertRaises(FlagNormalizationError) as context:
            normalize_flags(flags, flagset)
        self.assertEqual(str(context.exception), "cannot use two forms of the same flag: h help")


if __name__ == "__main__":
    unittest.main()
