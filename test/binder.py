# python
"""
Binder behavioral tests.

Scope
- derive_options(): schema to parser options (booleans, arrays, strings,
  aliases, defaults, unknown-flag knowledge).
- bind(): positional slots, flag defaults, casting per kind, allowed values,
  array splitting and dependencies.

Conventions
- Test method names follow CamelCase per project convention.
- Every case goes through parse() first, the way the launcher does.
"""

from __future__ import annotations

import unittest
import warnings
from unittest import TestCase

from argosy import (
    Array,
    Boolean,
    InvalidChoiceError,
    InvalidNumberError,
    MissingPositionalError,
    MissingRequiredFlagError,
    Number,
    ParserOptions,
    Positional,
    QuotedArrayElementError,
    SplitArrayWarning,
    String,
    UnknownFlagError,
    UnmetDependencyError,
    bind,
    define_args,
    derive_options,
    parse,
)


def run(schema, *argv, base=None):
    options = derive_options(schema) if base is None else derive_options(schema, base)
    return bind(schema, parse(list(argv), options))


class TestDeriveOptions(TestCase):
    """Parser options built from a schema."""

    def testKinds(self):
        schema = define_args(v=Boolean(alias="b"), tags=Array(default="x"), name=String(), count=Number(default=2))
        options = derive_options(schema)
        self.assertEqual(options.boolean, frozenset({"v"}))
        self.assertEqual(options.array, frozenset({"tags"}))
        self.assertEqual(options.string, frozenset({"tags", "name"}))
        self.assertEqual(options.resolve("b"), "v")
        self.assertEqual(options.defaults["v"], False)
        self.assertEqual(options.defaults["tags"], ["x"])
        self.assertEqual(options.defaults["count"], 2)
        self.assertNotIn("name", options.defaults)

    def testBaseDefaultsWin(self):
        schema = define_args(name=String(default="a"))
        options = derive_options(schema, ParserOptions(defaults={"name": "b"}))
        self.assertEqual(options.defaults["name"], "b")

    def testStrictKnowsSchema(self):
        schema = define_args(name=String(alias="n"), v=Boolean())
        options = derive_options(schema, ParserOptions(unknown="strict"))
        self.assertEqual(parse(["--name=a", "-n", "b", "-v", "--no-v"], options).flags["name"], "b")
        with self.assertRaises(UnknownFlagError):
            parse(["--other"], options)

    def testPositionalsAreNotFlags(self):
        options = derive_options(define_args(file=Positional()))
        self.assertFalse(options.knows("file"))

    def testBaseTypeChecked(self):
        with self.assertRaises(TypeError):
            derive_options(define_args(), {"unknown": "strict"})


class TestPositionals(TestCase):
    """Slots filled in declaration order."""

    def testBoundInOrder(self):
        schema = define_args(src=Positional(), dst=Positional())
        self.assertEqual(dict(run(schema, "a", "b", "c")), {"src": "a", "dst": "b"})

    def testMissingRequired(self):
        schema = define_args(src=Positional(required=True))
        with self.assertRaises(MissingPositionalError) as context:
            run(schema)
        self.assertEqual(context.exception.name, "src")

    def testMissingOptionalUsesDefault(self):
        schema = define_args(src=Positional(default="."), dst=Positional())
        self.assertEqual(dict(run(schema)), {"src": ".", "dst": None})

    def testAllowed(self):
        schema = define_args(mode=Positional(allowed=["a", "b"]))
        self.assertEqual(run(schema, "a")["mode"], "a")
        with self.assertRaises(InvalidChoiceError) as context:
            run(schema, "c")
        self.assertIn("<mode>", context.exception.message)

    def testNegativeNumberPositional(self):
        self.assertEqual(run(define_args(n=Positional()), "-5")["n"], "-5")


class TestFlags(TestCase):
    """Defaults, casting and required flags."""

    def testBooleanDefaultsToFalse(self):
        self.assertIs(run(define_args(v=Boolean()))["v"], False)

    def testBooleanSpellings(self):
        schema = define_args(color=Boolean(default=True, alias="c"))
        self.assertIs(run(schema)["color"], True)
        self.assertIs(run(schema, "--no-color")["color"], False)
        self.assertIs(run(schema, "--color=false")["color"], False)
        self.assertIs(run(schema, "--color=FALSE")["color"], False)
        self.assertIs(run(schema, "-c")["color"], True)

    def testBooleanConsumesValueToken(self):
        schema = define_args(v=Boolean(), file=Positional())
        self.assertEqual(dict(run(schema, "--v", "x")), {"v": True, "file": None})

    def testStringValue(self):
        self.assertEqual(run(define_args(name=String()), "--name", "Ada")["name"], "Ada")

    def testStringWithoutValueReadsTrue(self):
        self.assertEqual(run(define_args(name=String()), "--name")["name"], "true")

    def testStringKeepsNumericText(self):
        self.assertEqual(run(define_args(id=String()), "--id=007", base=ParserOptions(parse_numbers=True))["id"], "007")

    def testAbsentStringIsNone(self):
        self.assertIsNone(run(define_args(name=String()))["name"])

    def testNumberCast(self):
        schema = define_args(n=Number())
        self.assertEqual(run(schema, "--n=5")["n"], 5)
        self.assertEqual(run(schema, "--n", "2.5")["n"], 2.5)
        self.assertEqual(run(schema, "--n=0x10")["n"], 16)

    def testNumberDefault(self):
        self.assertEqual(run(define_args(n=Number(default=3)))["n"], 3)

    def testInvalidNumber(self):
        with self.assertRaises(InvalidNumberError) as context:
            run(define_args(n=Number()), "--n=abc")
        self.assertEqual((context.exception.name, context.exception.raw), ("n", "abc"))

    def testNumberAllowed(self):
        schema = define_args(level=Number(allowed=[1, 2, 3]))
        self.assertEqual(run(schema, "--level=2")["level"], 2)
        with self.assertRaises(InvalidChoiceError) as context:
            run(schema, "--level=4")
        self.assertEqual(context.exception.allowed, (1, 2, 3))

    def testStringAllowed(self):
        schema = define_args(mode=String(allowed=["fast", "safe"]))
        with self.assertRaises(InvalidChoiceError) as context:
            run(schema, "--mode=slow")
        self.assertEqual(context.exception.raw, "slow")

    def testRequiredFlag(self):
        schema = define_args(token=String(required=True))
        with self.assertRaises(MissingRequiredFlagError) as context:
            run(schema)
        self.assertEqual(context.exception.name, "token")
        self.assertEqual(run(schema, "--token=t")["token"], "t")

    def testRequiredFlagSatisfiedByDefault(self):
        self.assertEqual(run(define_args(token=String(required=True, default="t")))["token"], "t")

    def testEveryDeclaredNameIsBound(self):
        schema = define_args(a=Positional(), b=Boolean(), c=String(), d=Number(), e=Array())
        self.assertEqual(dict(run(schema)), {"a": None, "b": False, "c": None, "d": None, "e": []})

    def testUndeclaredFlagsAreNotBound(self):
        self.assertEqual(dict(run(define_args(a=String()), "--b=1")), {"a": None})


class TestArrays(TestCase):
    """Repetition, comma lists and brackets."""

    def testCommaSeparated(self):
        self.assertEqual(run(define_args(tags=Array()), "--tags=a,b", "--tags", "c")["tags"], ["a", "b", "c"])

    def testBrackets(self):
        self.assertEqual(run(define_args(tags=Array()), "--tags=[a, b]")["tags"], ["a", "b"])

    def testEmptyPartsDropped(self):
        self.assertEqual(run(define_args(tags=Array()), "--tags=a,,b,")["tags"], ["a", "b"])

    def testNumericLookingElementsStayText(self):
        schema = define_args(ids=Array())
        self.assertEqual(run(schema, "--ids=1,2", base=ParserOptions(parse_numbers=True))["ids"], ["1", "2"])

    def testDefaultWhenAbsent(self):
        self.assertEqual(run(define_args(tags=Array(default=["x", "y"])))["tags"], ["x", "y"])

    def testArgvAppendsToDefault(self):
        self.assertEqual(run(define_args(tags=Array(default="x")), "--tags=a")["tags"], ["x", "a"])

    def testQuotedElement(self):
        with self.assertRaises(QuotedArrayElementError):
            run(define_args(tags=Array()), "--tags=\"a\",b")

    def testAllowedPerElement(self):
        schema = define_args(tags=Array(allowed=["a", "b"]))
        self.assertEqual(run(schema, "--tags=a,b")["tags"], ["a", "b"])
        with self.assertRaises(InvalidChoiceError) as context:
            run(schema, "--tags=a,c")
        self.assertEqual(context.exception.raw, "c")

    def testSplitByShellWarns(self):
        schema = define_args(tags=Array())
        with warnings.catch_warnings(record=True) as captured:
            warnings.simplefilter("always")
            value = run(schema, "--tags=[a,", "--tags=b]")["tags"]
        self.assertEqual(value, ["[a", "b]"])
        self.assertEqual(sum(isinstance(record.message, SplitArrayWarning) for record in captured), 1)


class TestDependencies(TestCase):
    """Arguments that need others."""

    def testUnmetDependency(self):
        schema = define_args(user=String(), password=String(dependencies=["user"]))
        with self.assertRaises(UnmetDependencyError) as context:
            run(schema, "--password=x")
        self.assertEqual(context.exception.missing, ("user",))
        self.assertEqual(context.exception.message, "argument --password can only be used when --user is set")

    def testMetDependency(self):
        schema = define_args(user=String(), password=String(dependencies=["user"]))
        self.assertEqual(dict(run(schema, "--user=a", "--password=x")), {"user": "a", "password": "x"})

    def testDefaultedValueIsNotUsage(self):
        schema = define_args(user=String(), password=String(default="x", dependencies=["user"]))
        self.assertEqual(run(schema)["password"], "x")

    def testBooleanUsedWhenTrue(self):
        schema = define_args(force=Boolean(), confirm=Boolean(dependencies=["force"]))
        self.assertIs(run(schema)["confirm"], False)
        with self.assertRaises(UnmetDependencyError):
            run(schema, "--confirm")
        self.assertIs(run(schema, "--confirm", "--force")["confirm"], True)

    def testFalseDependencyIsUnmet(self):
        schema = define_args(force=Boolean(default=True), confirm=Boolean(dependencies=["force"]))
        with self.assertRaises(UnmetDependencyError):
            run(schema, "--confirm", "--no-force")

    def testSeveralMissing(self):
        schema = define_args(a=String(), b=String(), c=String(dependencies=["a", "b"]))
        with self.assertRaises(UnmetDependencyError) as context:
            run(schema, "--c=1")
        self.assertEqual(context.exception.message, "argument --c can only be used when --a, --b are set")

    def testPositionalDependency(self):
        schema = define_args(path=Positional(), force=Boolean(dependencies=["path"]))
        with self.assertRaises(UnmetDependencyError):
            run(schema, "--force")
        self.assertIs(run(schema, "here", "--force")["force"], True)


class TestResult(TestCase):

    def testReadOnly(self):
        result = run(define_args(a=String()), "--a=1")
        with self.assertRaises(TypeError):
            result["a"] = "2"  # type: ignore[index]


if __name__ == "__main__":
    unittest.main()
