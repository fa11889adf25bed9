# python
"""
Commands module behavioral tests.

Scope
- Command construction: meta normalization, args schema, static commands, hooks.
- define_command(): legacy spellings (setup, cleanup, sub_commands).
- command(): decorator form deriving meta from the handler.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import unittest
import warnings
from types import MappingProxyType
from unittest import TestCase

from argosy import Boolean, Command, CommandMeta, Positional, command, define_args, define_command


def noop(ctx):
    return None


class TestMeta(TestCase):
    """Normalization of the meta field."""

    def testOmitted(self):
        self.assertEqual(Command().meta, CommandMeta())

    def testName(self):
        self.assertEqual(Command("build").name, "build")

    def testMapping(self):
        meta = Command({"name": "build", "version": "1.0.0", "aliases": ["b"], "hidden": 1}).meta
        self.assertIsInstance(meta, CommandMeta)
        self.assertEqual(meta.version, "1.0.0")
        self.assertEqual(meta.aliases, ("b",))
        self.assertIs(meta.hidden, True)

    def testUnknownField(self):
        with self.assertRaises(TypeError):
            Command({"name": "build", "usage": "x"})

    def testEmptyName(self):
        with self.assertRaises(ValueError):
            Command({"name": " "})

    def testAliasesMustBeStrings(self):
        with self.assertRaises(TypeError):
            Command({"aliases": "b"})
        with self.assertRaises(TypeError):
            Command({"aliases": [1]})

    def testWrongType(self):
        with self.assertRaises(TypeError):
            Command(42)


class TestCommand(TestCase):
    """Arguments, subcommands and hooks."""

    def testArgsThroughDefineArgs(self):
        cmd = Command(args={"file": {"type": "positional", "required": True}})
        self.assertEqual(cmd.args["file"], Positional(required=True))
        self.assertIsInstance(cmd.args, MappingProxyType)

    def testArgsMustBeMapping(self):
        with self.assertRaises(TypeError):
            Command(args=["file"])

    def testCommands(self):
        child = Command("child", run=noop)
        cmd = Command(commands={"child": child, "lazy": lambda: child, "ref": "package.module:attr"})
        self.assertEqual(list(cmd.commands), ["child", "lazy", "ref"])
        self.assertIsNone(Command().commands)

    def testCommandNames(self):
        with self.assertRaises(ValueError):
            Command(commands={"-x": Command()})
        with self.assertRaises(ValueError):
            Command(commands={"": Command()})

    def testCommandSpecs(self):
        with self.assertRaises(TypeError):
            Command(commands={"x": 42})

    def testHooksMustBeCallable(self):
        for name in ("run", "on_cmd_init", "on_cmd_exit", "on_launcher_init", "on_launcher_exit"):
            with self.subTest(hook=name):
                with self.assertRaises(TypeError):
                    Command(**{name: "nope"})

    def testAbsentHooksAreNone(self):
        cmd = Command()
        self.assertIsNone(cmd.run)
        self.assertIsNone(cmd.on_cmd_init)
        self.assertFalse(cmd.runnable)

    def testRunnable(self):
        self.assertTrue(Command(run=noop).runnable)

    def testReplace(self):
        cmd = Command("build", args=define_args(v=Boolean()), run=noop)
        other = cmd.replace(meta={"name": "make"})
        self.assertEqual(other.name, "make")
        self.assertIs(other.run, noop)
        self.assertEqual(other.args, cmd.args)
        self.assertEqual(cmd.name, "build")

    def testRepr(self):
        self.assertTrue(repr(Command("build")).startswith("command("))


class TestDefineCommand(TestCase):
    """Legacy spellings."""

    def testLegacyNames(self):
        child = Command("child")
        with warnings.catch_warnings(record=True) as captured:
            warnings.simplefilter("always")
            cmd = define_command("root", setup=noop, cleanup=noop, sub_commands={"child": child})
        self.assertIs(cmd.on_cmd_init, noop)
        self.assertIs(cmd.on_cmd_exit, noop)
        self.assertEqual(dict(cmd.commands), {"child": child})
        self.assertEqual(sum(issubclass(record.category, DeprecationWarning) for record in captured), 3)

    def testNewerNameWins(self):
        def modern(ctx):
            return None

        with warnings.catch_warnings():
            warnings.simplefilter("ignore", DeprecationWarning)
            cmd = define_command(setup=noop, on_cmd_init=modern)
        self.assertIs(cmd.on_cmd_init, modern)

    def testModernNamesDoNotWarn(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            define_command("root", on_cmd_init=noop, commands={})


class TestDecorator(TestCase):
    """command() in both forms."""

    def testBareForm(self):
        def deploy_app(ctx):
            """Deploy the application.

            Longer text.
            """

        cmd = command(deploy_app)
        self.assertEqual(cmd.name, "deploy-app")
        self.assertEqual(cmd.meta.description, "Deploy the application.")
        self.assertIs(cmd.run, deploy_app)

    def testFactoryForm(self):
        @command(meta={"name": "go"}, args=define_args(fast=Boolean()))
        def handler(ctx):
            pass

        self.assertIsInstance(handler, Command)
        self.assertEqual(handler.name, "go")
        self.assertIn("fast", handler.args)

    def testNotCallable(self):
        with self.assertRaises(TypeError):
            command(meta="x")(42)


if __name__ == "__main__":
    unittest.main()
