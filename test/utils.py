"""
Tests for the shared helpers.

This module verifies:
- The `Unset` sentinel: singleton identity, falsiness, copy behavior, finality.
- `coalesce`, `mirror` and `rename`.
- `levenshtein` edit distances.
- `tonumber` loose numeric reading and `stringify` command-line spelling.
"""
import copy
import math
import unittest
from unittest import TestCase

from argosy.utils import *


class UnsetTest(TestCase):
    """
    Test suite for the `Unset` sentinel.
    """

    def testSingleton(self) -> None:
        """
        The constructor returns the module-level instance.
        """
        self.assertIs(UnsetType(), Unset)

    def testFalsy(self) -> None:
        self.assertFalse(Unset)
        self.assertIsNot(Unset, None)
        self.assertEqual(repr(Unset), "Unset")

    def testCopyPreservesIdentity(self) -> None:
        """
        Copies of structures holding Unset keep the very same sentinel.
        """
        self.assertIs(copy.copy(Unset), Unset)
        self.assertIs(copy.deepcopy({"x": [Unset]})["x"][0], Unset)

    def testFinal(self) -> None:
        with self.assertRaises(TypeError):
            type("Sub", (UnsetType,), {})

    def testUnionSyntax(self) -> None:
        self.assertIsInstance(Unset, str | Unset)


class HelpersTest(TestCase):
    """
    Test suite for coalesce, mirror and rename.
    """

    def testCoalesce(self) -> None:
        self.assertEqual(coalesce("a", "b"), "a")
        self.assertEqual(coalesce(Unset, "b"), "b")
        self.assertIsNone(coalesce(Unset))
        self.assertIsNone(coalesce(None, "b"))

    def testMirrorCopiesContainers(self) -> None:
        class Holder:
            values = mirror("values")
            pair = mirror("pair")

            def __init__(self):
                self._values = [1, [2]]
                self._pair = (1, 2)

        holder = Holder()
        holder.values[1].append(3)
        self.assertEqual(holder._values, [1, [2]])
        self.assertIs(holder.pair, holder._pair)
        with self.assertRaises(AttributeError):
            holder.values = []

    def testRename(self) -> None:
        def function():
            pass

        self.assertEqual(rename(function, "other").__name__, "other")
        self.assertEqual(rename("third")(function).__qualname__, "third")
        with self.assertRaises(TypeError):
            rename(1, "x")


class DistanceTest(TestCase):

    def testDistances(self) -> None:
        cases = {
            ("", ""): 0,
            ("foo", "foo"): 0,
            ("fooo", "foo"): 1,
            ("foo", ""): 3,
            ("build", "bulid"): 2,
            ("kitten", "sitting"): 3,
        }
        for (left, right), expected in cases.items():
            with self.subTest(left=left, right=right):
                self.assertEqual(levenshtein(left, right), expected)
                self.assertEqual(levenshtein(right, left), expected)

    def testWholeCharacters(self) -> None:
        self.assertEqual(levenshtein("café", "cafe"), 1)
        self.assertEqual(levenshtein("déploy", "deploy"), 1)

    def testTypes(self) -> None:
        with self.assertRaises(TypeError):
            levenshtein("a", 1)


class NumberTest(TestCase):
    """
    Test suite for tonumber and stringify.
    """

    def testIntegers(self) -> None:
        self.assertEqual(tonumber("12"), 12)
        self.assertEqual(tonumber("-3"), -3)
        self.assertEqual(tonumber("+7"), 7)
        self.assertIsInstance(tonumber("12"), int)

    def testFloats(self) -> None:
        self.assertEqual(tonumber("1.5"), 1.5)
        self.assertEqual(tonumber(".5"), 0.5)
        self.assertEqual(tonumber("1e3"), 1000.0)

    def testPrefixed(self) -> None:
        self.assertEqual(tonumber("0x1F"), 31)
        self.assertEqual(tonumber("0o17"), 15)
        self.assertEqual(tonumber("0b101"), 5)

    def testInfinity(self) -> None:
        self.assertEqual(tonumber("Infinity"), math.inf)
        self.assertEqual(tonumber("-Infinity"), -math.inf)

    def testBlankIsZero(self) -> None:
        self.assertEqual(tonumber(""), 0)
        self.assertEqual(tonumber("  "), 0)

    def testPassThrough(self) -> None:
        self.assertEqual(tonumber(True), 1)
        self.assertEqual(tonumber(2.5), 2.5)
        self.assertIsNone(tonumber(math.nan))

    def testRejected(self) -> None:
        for value in ("abc", "1.2.3", "12px", "--1", "inf", None):
            with self.subTest(value=value):
                self.assertIsNone(tonumber(value))

    def testStringify(self) -> None:
        self.assertEqual(stringify(True), "true")
        self.assertEqual(stringify(False), "false")
        self.assertEqual(stringify(5), "5")
        self.assertEqual(stringify("x"), "x")


if __name__ == "__main__":
    unittest.main()
