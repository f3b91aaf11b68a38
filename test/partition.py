"""
Token partitioning tests (index scan, splitting, short-option expansion).

Conventions
- Test method names follow CamelCase per project convention.
"""
import unittest
from unittest import TestCase

from helmsman.partition import get_indexes, split_args, translate_short_options


class TestIndexes(TestCase):

    def testNoFlagsYieldsSentinel(self):
        self.assertEqual(get_indexes(["a", "b", "c"]), (-1, -1))

    def testEmptyTokens(self):
        self.assertEqual(get_indexes([]), (-1, -1))

    def testFirstFlagOnlyIsRecorded(self):
        self.assertEqual(get_indexes(["pos", "-a", "-b"]), (1, -1))

    def testLoneDashIsNotAFlag(self):
        self.assertEqual(get_indexes(["-", "x"]), (-1, -1))
        self.assertEqual(get_indexes(["-", "-x"]), (1, -1))

    def testTerminatorStopsScan(self):
        self.assertEqual(get_indexes(["-f", "v", "--", "-g"]), (0, 2))

    def testTerminatorWithoutFlagsYieldsSentinel(self):
        self.assertEqual(get_indexes(["a", "--", "-g"]), (-1, -1))


class TestSplit(TestCase):

    def testPlainTokensAreAllPositional(self):
        for tokens in (["a"], ["a", "-", "b"], ["x", "y", "z"]):
            flags, positionals = split_args(tokens, *get_indexes(tokens))
            self.assertEqual(flags, [])
            self.assertEqual(positionals, tokens)

    def testFlagRegionRunsToEnd(self):
        tokens = ["pos1", "-f", "v", "pos2"]
        self.assertEqual(split_args(tokens, *get_indexes(tokens)), (["-f", "v", "pos2"], ["pos1"]))

    def testFlagRegionStopsBeforeTerminator(self):
        tokens = ["a", "-f", "v", "--", "-x", "b"]
        first, terminator = get_indexes(tokens)
        flags, _ = split_args(tokens, first, terminator)
        self.assertEqual(flags, ["-f", "v"])
        self.assertNotIn("-x", flags)

    def testTrailingTokensAreDuplicated(self):
        tokens = ["-f", "v", "--", "extra"]
        flags, positionals = split_args(tokens, *get_indexes(tokens))
        self.assertEqual(flags, ["-f", "v"])
        self.assertEqual(positionals, ["--", "extra", "--", "extra"])
        self.assertEqual(positionals.count("extra"), 2)

    def testInputIsNotModified(self):
        tokens = ["a", "-f", "--", "b"]
        split_args(tokens, *get_indexes(tokens))
        self.assertEqual(tokens, ["a", "-f", "--", "b"])


class TestShortOptions(TestCase):

    def testCombinedOptionsAreExpanded(self):
        self.assertEqual(translate_short_options(["-abc", "--long", "x"]), ["-a", "-b", "-c", "--long", "x"])

    def testShortTokensPassThrough(self):
        tokens = ["-a", "-", "x", "--long", "--ab", "ab"]
        self.assertEqual(translate_short_options(tokens), tokens)


if __name__ == "__main__":
    unittest.main()
