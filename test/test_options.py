"""
Options module behavioral tests (registration, token grammar, typed lookup).

Scope
- Validate declaration helpers, redeclaration policy and adoption.
- Validate parse(): option forms, stop conditions, error classes and payloads.
- Validate lookup(): typed round-trips and contract violations.

Conventions
- Test method names follow CamelCase per project convention.
- Custom value holders mirror what a host would write (comma-separated lists).
"""

from __future__ import annotations

import unittest
from datetime import timedelta
from unittest import TestCase

from cmdtree import (
    OptionSet,
    lookup,
    Value,
    uint,
    CommandException,
    OptionParseError,
    MalformedOptionError,
    UnknownOptionError,
    MissingValueError,
    InvalidValueError,
    HelpRequested,
    ContractViolation,
    UndeclaredOptionError,
    OptionTypeError,
    RedeclaredOptionWarning,
)


class Names(Value):
    """comma separated list accumulated over repeated options."""

    def __init__(self):
        self.items = []

    def set(self, text, /):
        self.items.extend(text.split(","))

    def reset(self):
        self.items = []

    def get(self):
        return list(self.items)

    def __str__(self):
        return ",".join(self.items)


class TestDeclaration(TestCase):
    """Behavioral tests for option registration."""

    def testDeclarationsChain(self):
        options = OptionSet("echo")
        self.assertIs(options.bool("verbose").string("case").int("count"), options)
        self.assertEqual([option.name for option in options], ["case", "count", "verbose"])
        self.assertEqual(len(options), 3)
        self.assertIn("case", options)
        self.assertNotIn("missing", options)

    def testDefaultsBeforeParse(self):
        options = (
            OptionSet("tool")
            .bool("verbose")
            .int("count", 3)
            .uint("workers")
            .float("ratio", 0.5)
            .string("level", "info")
            .duration("timeout")
        )
        self.assertIs(options.get("verbose"), False)
        self.assertEqual(options.get("count"), 3)
        self.assertEqual(options.get("workers"), 0)
        self.assertEqual(options.get("ratio"), 0.5)
        self.assertEqual(options.get("level"), "info")
        self.assertEqual(options.get("timeout"), timedelta(0))
        self.assertFalse(options.parsed)

    def testDeclareWithPythonTypes(self):
        options = OptionSet().declare("delay", timedelta).declare("size", int, 7)
        options.parse(["-delay", "2s", "-size", "9"])
        self.assertEqual(options.get("delay"), timedelta(seconds=2))
        self.assertEqual(options.get("size"), 9)

    def testDefaultTextIsCapturedAtDeclaration(self):
        options = OptionSet().string("level", "info").duration("timeout", timedelta(seconds=90))
        self.assertEqual(options.lookup("level").default, "info")
        self.assertEqual(options.lookup("timeout").default, "1m30s")
        options.parse(["-level", "debug"])
        self.assertEqual(options.lookup("level").default, "info")

    def testLookupOfMissingOptionRecordIsNone(self):
        self.assertIsNone(OptionSet().lookup("nope"))

    def testRedeclarationWarnsAndLastWins(self):
        options = OptionSet("tool").int("n", 1)
        with self.assertWarns(RedeclaredOptionWarning):
            options.string("n", "x")
        self.assertEqual(options.get("n"), "x")
        self.assertEqual(len(options), 1)

    def testInvalidNamesRejected(self):
        for name in ("", " ", "-x", "a=b"):
            with self.subTest(name=name):
                with self.assertRaises(ValueError):
                    OptionSet().bool(name)
        with self.assertRaises(TypeError):
            OptionSet().bool(None)

    def testVarRequiresValueProtocol(self):
        with self.assertRaises(TypeError):
            OptionSet().var(object(), "thing")

    def testAdoptNeverOverridesDeclaredNames(self):
        parent = OptionSet("parent").string("mode", "fast").bool("verbose")
        child = OptionSet("child").int("mode", 1)

        self.assertFalse(child.adopt(parent.lookup("mode")))
        self.assertTrue(child.adopt(parent.lookup("verbose")))
        self.assertEqual(child.get("mode"), 1)

        child.parse(["-verbose"])
        self.assertIs(parent.get("verbose"), True)


class TestParse(TestCase):
    """Behavioral tests for the token grammar."""

    def setUp(self):
        self.options = OptionSet("echo").bool("verbose").string("case").int("count")

    def testStopsAtFirstPositional(self):
        args = self.options.parse(["-verbose", "--case", "upper", "hello", "-count", "2"])
        self.assertEqual(args, ["hello", "-count", "2"])
        self.assertEqual(self.options.args, args)
        self.assertIs(self.options.get("verbose"), True)
        self.assertEqual(self.options.get("case"), "upper")
        self.assertEqual(self.options.get("count"), 0)
        self.assertTrue(self.options.parsed)

    def testInlineValues(self):
        self.options.parse(["-verbose=false", "--count=3", "-case="])
        self.assertIs(self.options.get("verbose"), False)
        self.assertEqual(self.options.get("count"), 3)
        self.assertEqual(self.options.get("case"), "")

    def testValueMayContainEquals(self):
        self.options.parse(["-case=a=b"])
        self.assertEqual(self.options.get("case"), "a=b")

    def testBooleanDoesNotConsumeNextToken(self):
        self.assertEqual(self.options.parse(["-verbose", "false"]), ["false"])
        self.assertIs(self.options.get("verbose"), True)

    def testSpacedValueMayLookLikeAnOption(self):
        self.options.parse(["-case", "-verbose"])
        self.assertEqual(self.options.get("case"), "-verbose")
        self.assertIs(self.options.get("verbose"), False)

    def testLoneDashIsPositional(self):
        self.assertEqual(self.options.parse(["-", "-verbose"]), ["-", "-verbose"])

    def testDoubleDashIsConsumed(self):
        self.assertEqual(self.options.parse(["-count", "1", "--", "-verbose"]), ["-verbose"])
        self.assertIs(self.options.get("verbose"), False)

    def testChangedListsNamesSetOnTheCommandLine(self):
        self.options.parse(["-count", "2", "-verbose"])
        self.assertEqual(self.options.changed, ("count", "verbose"))

    def testUnknownOption(self):
        with self.assertRaises(UnknownOptionError) as context:
            self.options.parse(["-verbos"])
        fault = context.exception
        self.assertIsInstance(fault, OptionParseError)
        self.assertIsInstance(fault, CommandException)
        self.assertEqual(fault.message, "option provided but not defined: -verbos")
        self.assertEqual(fault.options["suggestions"], ["verbose"])
        self.assertEqual(fault.options["index"], 1)

    def testMissingValue(self):
        with self.assertRaises(MissingValueError) as context:
            self.options.parse(["-verbose", "-case"])
        self.assertEqual(str(context.exception), "option needs an argument: -case")
        self.assertEqual(context.exception.options["index"], 2)

    def testInvalidValue(self):
        with self.assertRaises(InvalidValueError) as context:
            self.options.parse(["-verbose", "-count", "many"], index=3)
        self.assertIn("'many'", context.exception.message)
        self.assertIn("fourth position", context.exception.message)

    def testInvalidBoolean(self):
        with self.assertRaises(InvalidValueError):
            self.options.parse(["-verbose=maybe"])

    def testAcceptedBooleanSpellings(self):
        for text, expected in (("1", True), ("t", True), ("TRUE", True), ("0", False), ("F", False), ("False", False)):
            with self.subTest(text=text):
                self.options.parse(["-verbose=" + text])
                self.assertIs(self.options.get("verbose"), expected)

    def testMalformedTokens(self):
        for token in ("---verbose", "-=x", "--=x"):
            with self.subTest(token=token):
                with self.assertRaises(MalformedOptionError):
                    self.options.parse([token])

    def testHelpRequestedWhenUndeclared(self):
        for token in ("-h", "-help", "--help"):
            with self.subTest(token=token):
                with self.assertRaises(HelpRequested):
                    self.options.parse([token])

    def testDeclaredHelpNameIsAnOrdinaryOption(self):
        options = OptionSet("tool").bool("h")
        self.assertEqual(options.parse(["-h", "x"]), ["x"])
        self.assertIs(options.get("h"), True)

    def testCustomValueAccumulates(self):
        options = OptionSet("tool").var(Names(), "names", "comma separated `names`")
        options.parse(["-names", "a,b", "-names=c"])
        self.assertEqual(lookup(options, "names", list[str]), ["a", "b", "c"])

    def testResetRestoresDefaults(self):
        options = OptionSet("tool").int("count", 5).var(Names(), "names")
        options.parse(["-count", "9", "-names", "x", "rest"])
        options.reset()
        self.assertEqual(options.get("count"), 5)
        self.assertEqual(options.get("names"), [])
        self.assertEqual(options.args, [])
        self.assertEqual(options.changed, ())
        self.assertFalse(options.parsed)


class TestLookup(TestCase):
    """Behavioral tests for typed lookup."""

    def setUp(self):
        self.options = (
            OptionSet("tool")
            .bool("verbose")
            .int("count")
            .uint("workers")
            .float("ratio")
            .string("name")
            .duration("timeout")
        )
        self.options.parse([
            "-verbose",
            "-count", "-3",
            "-workers", "4",
            "-ratio", "0.25",
            "-name", "octocat",
            "-timeout", "1m30s",
        ])

    def testTypedRoundTrips(self):
        self.assertIs(lookup(self.options, "verbose", bool), True)
        self.assertEqual(lookup(self.options, "count", int), -3)
        self.assertEqual(lookup(self.options, "workers", uint), 4)
        self.assertEqual(lookup(self.options, "ratio", float), 0.25)
        self.assertEqual(lookup(self.options, "name", str), "octocat")
        self.assertEqual(lookup(self.options, "timeout", timedelta), timedelta(seconds=90))

    def testUndeclaredName(self):
        with self.assertRaises(UndeclaredOptionError) as context:
            lookup(self.options, "missing", str)
        self.assertIsInstance(context.exception, ContractViolation)
        self.assertIsInstance(context.exception, LookupError)
        self.assertNotIsInstance(context.exception, CommandException)

    def testGetOfUndeclaredName(self):
        with self.assertRaises(UndeclaredOptionError):
            self.options.get("missing")

    def testTypeMismatch(self):
        with self.assertRaises(OptionTypeError) as context:
            lookup(self.options, "count", str)
        self.assertIsInstance(context.exception, ContractViolation)
        self.assertIs(context.exception.options["expected"], str)
        self.assertEqual(context.exception.options["received"], -3)

    def testBooleanIsNotAnInteger(self):
        with self.assertRaises(OptionTypeError):
            lookup(self.options, "verbose", int)

    def testUnsignedNegativeRejectedAtParse(self):
        with self.assertRaises(InvalidValueError):
            OptionSet().uint("workers").parse(["-workers=-1"])

    def testIntegersFollowSixtyFourBitRules(self):
        options = OptionSet().int("n").uint("u")
        options.parse(["-n=010", "-u", "0x10"])
        self.assertEqual(lookup(options, "n", int), 8)
        self.assertEqual(lookup(options, "u", uint), 16)
        for token in ("-n=%d" % 2**63, "-u=%d" % 2**64):
            with self.subTest(token=token):
                with self.assertRaises(InvalidValueError):
                    options.parse([token])

    def testLookupNeedsATypedTarget(self):
        with self.assertRaises(TypeError):
            lookup(self.options, "count", "int")
        with self.assertRaises(TypeError):
            lookup({}, "count", int)


if __name__ == "__main__":
    unittest.main()
