"""
Repl module behavioral tests (builder, session loop, help rendering).

Scope
- Validate ReplBuilder setters and the name checks performed by build().
- Validate the session loop: resolution by prefix, argument errors with usage,
  handler outcomes, reserved commands, CTRL-C and end of input.
- Validate the help layout and wrapping.
- Validate nested sessions, including fatal errors crossing session boundaries.

Conventions
- Test method names follow CamelCase per project convention.
- Repls read from ScriptedSource and write to a rich Console over a StringIO.
"""

from __future__ import annotations

import functools
import io
import unittest
from unittest import TestCase

from rich.console import Console

from easyrepl import (
    RESERVED,
    Argument,
    Command,
    CommandStatus,
    Fatal,
    LineSource,
    LoopStatus,
    PromptLineSource,
    Recoverable,
    Repl,
    command,
    critical,
)
from easyrepl.faults import (
    BuilderError,
    CriticalError,
    DuplicateNameError,
    FaultCode,
    InvalidNameError,
    ReservedNameError,
)


class ScriptedSource:
    """LineSource replaying fixed lines; exception classes in the script are raised."""

    def __init__(self, *lines):
        self.lines = list(lines)
        self.history = []
        self.prompts = []

    def read(self, prompt, /):
        self.prompts.append(prompt)
        if not self.lines:
            raise EOFError
        line = self.lines.pop(0)
        if isinstance(line, type) and issubclass(line, BaseException):
            raise line
        return line

    def record(self, line, /):
        self.history.append(line)


def console():
    return Console(file=io.StringIO(), width=200, color_system=None)


def output(repl):
    return repl.console.file.getvalue()


class Calculator:
    """Builds a small repl over shared, explicitly passed state."""

    def __init__(self, *lines, **options):
        self.calls = []
        self.source = ScriptedSource(*lines)

        @command("Add X to Y")
        def add(x: int, y: int):
            self.calls.append(("add", x + y))

        @command("Multiply X by Y")
        def mul(x: int, y: int):
            self.calls.append(("mul", x * y))

        builder = (
            Repl.builder()
            .description("Calculator")
            .console(console())
            .source(self.source)
            .add("add", add)
            .add("mul", mul)
        )
        for option, value in options.items():
            getattr(builder, option)(value)
        self.repl = builder.build()


class TestReplBuilder(TestCase):
    """Behavioral tests for ReplBuilder and the build-time name checks."""

    def testReservedNameRejected(self):
        builder = Repl.builder().add("help", lambda: None)
        with self.assertRaises(ReservedNameError) as context:
            builder.build()
        self.assertEqual(context.exception.name, "help")
        self.assertEqual(context.exception.code, FaultCode.RESERVED_NAME)

    def testQuitIsReservedToo(self):
        with self.assertRaises(ReservedNameError):
            Repl.builder().add("quit", lambda: None).build()

    def testDuplicateNameRejected(self):
        builder = Repl.builder().add("add", lambda: None).add("add", lambda: None)
        with self.assertRaises(DuplicateNameError) as context:
            builder.build()
        self.assertEqual(context.exception.code, FaultCode.DUPLICATE_NAME)

    def testInvalidNamesRejected(self):
        for name in ("", "two words", "'quoted'", "unbalanced'", " padded"):
            with self.subTest(name=name):
                with self.assertRaises(InvalidNameError) as context:
                    Repl.builder().add(name, lambda: None).build()
                self.assertEqual(context.exception.code, FaultCode.INVALID_NAME)

    def testFirstViolationInRegistrationOrderWins(self):
        builder = Repl.builder().add("a b", lambda: None).add("help", lambda: None)
        with self.assertRaises(InvalidNameError):
            builder.build()

    def testBuilderErrorsAreValueErrors(self):
        self.assertTrue(issubclass(BuilderError, ValueError))

    def testValidNamesBuild(self):
        repl = (
            Repl.builder()
            .console(console())
            .source(ScriptedSource())
            .add("add", lambda x: None)
            .add("sub-tract", lambda: None)
            .add("x_1", lambda: None)
            .build()
        )
        self.assertEqual(sorted(repl.commands), ["add", "sub-tract", "x_1"])

    def testPlainCallableIsWrapped(self):
        repl = Repl.builder().console(console()).source(ScriptedSource()).add("echo", lambda text: None).build()
        self.assertIsInstance(repl.commands["echo"], Command)
        self.assertEqual(repl.commands["echo"].signature, ("text:str",))

    def testCommandsMappingIsReadOnly(self):
        repl = Repl.builder().console(console()).source(ScriptedSource()).add("a", lambda: None).build()
        with self.assertRaises(TypeError):
            repl.commands["b"] = Command(lambda: None)  # type: ignore[index]

    def testReservedNamesAreIndexedButNotRegistered(self):
        repl = Repl.builder().console(console()).source(ScriptedSource()).build()
        self.assertEqual(dict(repl.commands), {})
        for name in RESERVED:
            self.assertIn(name, repl.index)

    def testDefaults(self):
        repl = Repl.builder().source(ScriptedSource()).build()
        self.assertEqual(repl.prompt, "> ")
        self.assertEqual(repl.description, "")
        self.assertEqual(repl.text_width, 80)
        self.assertIsInstance(repl.console, Console)

    def testDefaultSourceIsPromptLineSource(self):
        repl = Repl.builder().console(console()).build()
        self.assertIsInstance(repl.source, PromptLineSource)

    def testSetterValidation(self):
        builder = Repl.builder()
        with self.assertRaises(ValueError):
            builder.text_width(0)
        with self.assertRaises(TypeError):
            builder.text_width("80")  # type: ignore[arg-type]
        with self.assertRaises(TypeError):
            builder.hints("yes")  # type: ignore[arg-type]
        with self.assertRaises(TypeError):
            builder.prompt(3)  # type: ignore[arg-type]
        with self.assertRaises(TypeError):
            builder.console(object())  # type: ignore[arg-type]
        with self.assertRaises(TypeError):
            builder.source(object())  # type: ignore[arg-type]
        with self.assertRaises(TypeError):
            builder.add(3, lambda: None)  # type: ignore[arg-type]
        with self.assertRaises(TypeError):
            builder.add("x", 3)  # type: ignore[arg-type]

    def testScriptedSourceSatisfiesProtocol(self):
        self.assertIsInstance(ScriptedSource(), LineSource)

    def testDirectConstructionAppliesNameChecks(self):
        with self.assertRaises(ReservedNameError):
            Repl({"help": lambda: None}, console=console(), source=ScriptedSource())


class TestSessionLoop(TestCase):
    """Behavioral tests for Repl.next(), handle_line() and run()."""

    def testPrefixResolvesAndRuns(self):
        calc = Calculator("a 1 2")
        self.assertIs(calc.repl.next(), LoopStatus.CONTINUE)
        self.assertEqual(calc.calls, [("add", 3)])

    def testUniquePrefixAmongManyCommands(self):
        calc = Calculator("m 3 4")
        calc.repl.run()
        self.assertEqual(calc.calls, [("mul", 12)])

    def testWrongArityPrintsUsage(self):
        calc = Calculator("add 1")
        calc.repl.run()
        self.assertEqual(calc.calls, [])
        self.assertEqual(
            output(calc.repl),
            "Error: wrong number of arguments: got 1, expected 2\n"
            "Usage: add x:int y:int\n",
        )

    def testWrongValuePrintsUsage(self):
        calc = Calculator("add 1 two")
        calc.repl.run()
        self.assertIn("Error: failed to parse argument value 'two': ", output(calc.repl))
        self.assertIn("Usage: add x:int y:int", output(calc.repl))

    def testLoopContinuesAfterErrors(self):
        calc = Calculator("add 1", "zz", "add 1 1")
        calc.repl.run()
        self.assertEqual(calc.calls, [("add", 2)])

    def testUnknownCommandPrintsHelpPointer(self):
        calc = Calculator("zz 1")
        calc.repl.run()
        self.assertEqual(
            output(calc.repl),
            "Command not found: zz\n"
            "Use 'help' to see available commands.\n",
        )

    def testAmbiguousCommandListsCandidates(self):
        repl = (
            Repl.builder()
            .console(console())
            .source(ScriptedSource("co"))
            .add("connect", lambda: None)
            .add("count", lambda: None)
            .build()
        )
        repl.run()
        self.assertEqual(
            output(repl),
            "Command not found: co\n"
            "Candidates:\n"
            "  connect\n"
            "  count\n"
            "Use 'help' to see available commands.\n",
        )

    def testPredictionDisabledOffersCandidate(self):
        calc = Calculator("a 1 2", "add 1 2", predict_commands=False)
        calc.repl.run()
        self.assertEqual(calc.calls, [("add", 3)])
        self.assertIn("Command not found: a\nCandidates:\n  add\n", output(calc.repl))

    def testExactNameWinsOverLongerName(self):
        calls = []
        repl = (
            Repl.builder()
            .console(console())
            .source(ScriptedSource("add", "adda"))
            .add("add", lambda: calls.append("add"))
            .add("addall", lambda: calls.append("addall"))
            .build()
        )
        repl.run()
        self.assertEqual(calls, ["add", "addall"])

    def testQuotedArgumentsStayTogether(self):
        received = []
        repl = (
            Repl.builder()
            .console(console())
            .source(ScriptedSource("say 'hello world' 2"))
            .add("say", command(lambda text, times: received.append((text, times)), "Say", ["str", "int"]))
            .build()
        )
        repl.run()
        self.assertEqual(received, [("hello world", 2)])

    def testMalformedQuotingIsReported(self):
        calc = Calculator("add '1 2")
        self.assertIs(calc.repl.next(), LoopStatus.CONTINUE)
        self.assertEqual(output(calc.repl), "Error: No closing quotation\n")
        self.assertEqual(calc.calls, [])

    def testBlankLinesAreSkipped(self):
        calc = Calculator("", "   ", "add 1 2")
        self.assertIs(calc.repl.next(), LoopStatus.CONTINUE)
        self.assertIs(calc.repl.next(), LoopStatus.CONTINUE)
        self.assertEqual(calc.source.history, [])
        calc.repl.run()
        self.assertEqual(calc.calls, [("add", 3)])
        self.assertEqual(output(calc.repl), "")

    def testLinesAreRecordedStripped(self):
        calc = Calculator("  add 1 2  ", "zz")
        calc.repl.run()
        self.assertEqual(calc.source.history, ["add 1 2", "zz"])

    def testPromptIsPassedToSource(self):
        calc = Calculator("add 1 2", prompt="calc> ")
        calc.repl.run()
        self.assertEqual(calc.source.prompts, ["calc> ", "calc> "])

    def testKeyboardInterruptBreaks(self):
        calc = Calculator(KeyboardInterrupt, "add 1 2")
        self.assertIs(calc.repl.next(), LoopStatus.BREAK)
        self.assertEqual(output(calc.repl), "CTRL-C\n")

    def testRunStopsOnKeyboardInterrupt(self):
        calc = Calculator(KeyboardInterrupt, "add 1 2")
        calc.repl.run()
        self.assertEqual(calc.calls, [])

    def testEndOfInputBreaksSilently(self):
        calc = Calculator()
        self.assertIs(calc.repl.next(), LoopStatus.BREAK)
        self.assertEqual(output(calc.repl), "")

    def testQuitBreaks(self):
        calc = Calculator("quit", "add 1 2")
        calc.repl.run()
        self.assertEqual(calc.calls, [])
        self.assertEqual(calc.source.lines, ["add 1 2"])

    def testQuitByPrefix(self):
        calc = Calculator("q")
        self.assertIs(calc.repl.next(), LoopStatus.BREAK)

    def testReservedCommandsIgnoreExtraTokens(self):
        calc = Calculator("quit now please")
        self.assertIs(calc.repl.next(), LoopStatus.BREAK)

    def testHelpPrintsHelp(self):
        calc = Calculator("help")
        calc.repl.run()
        self.assertEqual(output(calc.repl), calc.repl.help() + "\n")

    def testTerminateBreaks(self):
        repl = (
            Repl.builder()
            .console(console())
            .source(ScriptedSource("bye", "bye"))
            .add("bye", lambda: CommandStatus.TERMINATE)
            .build()
        )
        self.assertIs(repl.next(), LoopStatus.BREAK)

    def testRaisedExceptionIsPrintedAndLoopContinues(self):
        def fail():
            raise ValueError("bad input")

        source = ScriptedSource("fail", "fail")
        repl = Repl.builder().console(console()).source(source).add("fail", fail).build()
        repl.run()
        self.assertEqual(output(repl), "Error: bad input\nError: bad input\n")

    def testUnexpectedReturnValueIsPrintedAndLoopContinues(self):
        source = ScriptedSource("answer", "answer")
        repl = Repl.builder().console(console()).source(source).add("answer", lambda: 42).build()
        repl.run()
        self.assertEqual(
            output(repl),
            "Error: command handler returned 'int', expected a CommandStatus, Recoverable or Fatal\n" * 2,
        )
        self.assertEqual(source.history, ["answer", "answer"])

    def testRecoverableReturnIsPrinted(self):
        repl = (
            Repl.builder()
            .console(console())
            .source(ScriptedSource("soft"))
            .add("soft", lambda: Recoverable("disk almost full"))
            .build()
        )
        self.assertIs(repl.next(), LoopStatus.CONTINUE)
        self.assertEqual(output(repl), "Error: disk almost full\n")

    def testExceptionWithoutMessageUsesTypeName(self):
        def fail():
            raise RuntimeError()

        repl = Repl.builder().console(console()).source(ScriptedSource("fail")).add("fail", fail).build()
        repl.run()
        self.assertEqual(output(repl), "Error: RuntimeError\n")

    def testFatalReturnPropagates(self):
        source = ScriptedSource("boom", "boom")
        repl = Repl.builder().console(console()).source(source).add("boom", lambda: Fatal("meltdown")).build()
        with self.assertRaises(CriticalError) as context:
            repl.run()
        self.assertEqual(context.exception.message, "meltdown")
        self.assertEqual(context.exception.code, FaultCode.CRITICAL_ERROR)
        self.assertEqual(output(repl), "")
        self.assertEqual(source.lines, ["boom"])

    def testCriticalBlockPropagatesWithCause(self):
        def boom():
            with critical():
                raise ConnectionError("link down")

        repl = Repl.builder().console(console()).source(ScriptedSource("boom")).add("boom", boom).build()
        with self.assertRaises(CriticalError) as context:
            repl.run()
        self.assertIsInstance(context.exception.__cause__, ConnectionError)

    def testFatalWithExceptionCauseIsChained(self):
        cause = OSError("gone")
        repl = Repl.builder().console(console()).source(ScriptedSource("x")).add("x", lambda: Fatal(cause)).build()
        with self.assertRaises(CriticalError) as context:
            repl.run()
        self.assertIs(context.exception.__cause__, cause)
        self.assertEqual(context.exception.message, "gone")

    def testSharedStateAcrossHandlers(self):
        counter = {"value": 0}

        def increment(by):
            counter["value"] += by

        def reset():
            counter["value"] = 0

        source = ScriptedSource("inc 2", "inc 3", "reset", "inc 4")
        repl = (
            Repl.builder()
            .console(console())
            .source(source)
            .add("inc", Command(increment, "Increase", [int]))
            .add("reset", reset)
            .build()
        )
        repl.run()
        self.assertEqual(counter["value"], 4)

    def testPredictIsSortedAndIncludesReserved(self):
        repl = (
            Repl.builder()
            .console(console())
            .source(ScriptedSource())
            .add("hello", lambda: None)
            .add("hat", lambda: None)
            .build()
        )
        self.assertEqual(repl.predict("h"), ["hat", "hello", "help"])
        self.assertEqual(repl.predict(""), [])


class TestNestedSessions(TestCase):
    """Behavioral tests for a handler running another repl."""

    def build(self, depth, scripts, record):
        @command("Open a nested session")
        def new():
            self.build(depth + 1, scripts, record).run()

        def boom():
            with critical():
                raise RuntimeError(f"failure at depth {depth}")

        return (
            Repl.builder()
            .console(console())
            .source(scripts[depth])
            .add("new", new)
            .add("mark", lambda: record.append(depth))
            .add("boom", boom)
            .build()
        )

    def testInnerQuitReturnsToOuterSession(self):
        record = []
        scripts = [ScriptedSource("new", "mark"), ScriptedSource("mark", "quit")]
        self.build(0, scripts, record).run()
        self.assertEqual(record, [1, 0])

    def testFatalErrorCrossesSessions(self):
        record = []
        scripts = [
            ScriptedSource("new", "mark"),
            ScriptedSource("new"),
            ScriptedSource("boom", "mark"),
        ]
        with self.assertRaises(CriticalError) as context:
            self.build(0, scripts, record).run()
        self.assertEqual(context.exception.message, "failure at depth 2")
        self.assertEqual(record, [])
        self.assertEqual(scripts[0].lines, ["mark"])


class TestHelp(TestCase):
    """Behavioral tests for Repl.help() layout."""

    def testLayout(self):
        repl = (
            Repl.builder()
            .description("Test")
            .console(console())
            .source(ScriptedSource())
            .add("say", Command(lambda text: None, "Say", [Argument("text")]))
            .add("add", command(lambda x, y: None, "Add X to Y", [Argument("x", type=int), Argument("y", type=int)]))
            .build()
        )
        self.assertEqual(
            repl.help(),
            "Test\n"
            "\n"
            "Available commands:\n"
            "  add x:int y:int  Add X to Y\n"
            "  say text:str     Say\n"
            "\n"
            "Other commands:\n"
            "  help  Show this help message\n"
            "  quit  Quit repl",
        )

    def testEmptyDescriptionAndNoCommands(self):
        repl = Repl.builder().console(console()).source(ScriptedSource()).build()
        self.assertEqual(
            repl.help(),
            "Available commands:\n"
            "\n"
            "\n"
            "Other commands:\n"
            "  help  Show this help message\n"
            "  quit  Quit repl",
        )

    def testLongDescriptionsWrapWithHangingIndent(self):
        repl = (
            Repl.builder()
            .text_width(30)
            .console(console())
            .source(ScriptedSource())
            .add("go", Command(lambda: None, "alpha beta gamma delta epsilon zeta"))
            .build()
        )
        self.assertIn(
            "  go   alpha beta gamma delta\n"
            "       epsilon zeta\n",
            repl.help(),
        )

    def testCommandWithoutArgumentsKeepsSeparator(self):
        repl = (
            Repl.builder()
            .console(console())
            .source(ScriptedSource())
            .add("a", Command(lambda x: None, "A", [Argument("x", type=int)]))
            .add("restart", Command(lambda: None, "Restart"))
            .build()
        )
        self.assertIn(
            "Available commands:\n"
            "  a x:int   A\n"
            "  restart   Restart\n",
            repl.help(),
        )

    def testPartialHandlerShowsNoDescription(self):
        def increment(counter, by):
            """Increase the counter"""

        repl = (
            Repl.builder()
            .console(console())
            .source(ScriptedSource())
            .add("inc", functools.partial(increment, []))
            .build()
        )
        self.assertIn("  inc by:str\n\nOther commands:", repl.help())

    def testUnnamedArgumentsShowTagOnly(self):
        repl = (
            Repl.builder()
            .console(console())
            .source(ScriptedSource())
            .add("open", Command(lambda path: None, "Open", ["path"]))
            .build()
        )
        self.assertIn("  open :path  Open", repl.help())


if __name__ == "__main__":
    unittest.main()
