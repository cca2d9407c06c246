#!/usr/bin/env python3
"""Tests for the UserPromptSubmit dispatcher.

Tests cover:
- Rule matching (always-fire, pattern, skip)
- Literal text and subprocess actions
- Prompt substitution and stdin payload
- Failure isolation (non-zero exit, timeout, spawn failure)
- Concurrency and output ordering
"""

import logging
import re
import sys
import textwrap
import time

import pytest

from vibe.dispatcher import (
    PROMPT_ARG,
    Dispatcher,
    EmitLiteralText,
    InvokeExternalScript,
    Rule,
    Skip,
)


def pattern(expr):
    return re.compile(expr, re.IGNORECASE)


@pytest.fixture
def script(tmp_path):
    """Write a throwaway Python script and return its path."""

    def _make(name, body):
        path = tmp_path / name
        path.write_text(textwrap.dedent(body))
        return path

    return _make


class TestMatching:
    def test_no_match_gives_empty_output(self):
        rules = [
            Rule("a", EmitLiteralText("A"), pattern(r"architecture")),
            Rule("b", EmitLiteralText("B"), pattern(r"^test-gpt")),
        ]
        assert Dispatcher(rules).dispatch("hello there") == ""

    def test_empty_rule_table(self):
        assert Dispatcher([]).dispatch("anything") == ""

    @pytest.mark.parametrize("prompt", ["", "x", "architecture review", "ralph ulw"])
    def test_single_always_fire_literal(self, prompt):
        rules = [Rule("always", EmitLiteralText("ALWAYS"))]
        assert Dispatcher(rules).dispatch(prompt) == "ALWAYS"

    def test_pattern_is_case_insensitive_substring(self):
        rule = Rule("arch", EmitLiteralText("A"), pattern(r"architecture.*review"))
        assert rule.matches("please do an ARCHITECTURE deep REVIEW")
        assert not rule.matches("review the architecture")

    def test_skip_rule_is_inert(self):
        rules = [
            Rule("skip", Skip(), pattern(r"ralph")),
            Rule("other", EmitLiteralText("X"), pattern(r"zzz")),
        ]
        dispatcher = Dispatcher(rules)
        assert [r.label for r in dispatcher.match("ralph")] == ["skip"]
        assert dispatcher.dispatch("ralph") == ""

    def test_all_matching_rules_fire_in_table_order(self):
        rules = [
            Rule("one", EmitLiteralText("first")),
            Rule("two", EmitLiteralText("second"), pattern(r"go")),
            Rule("three", EmitLiteralText("third"), pattern(r"nope")),
            Rule("four", EmitLiteralText("fourth"), pattern(r"g")),
        ]
        assert Dispatcher(rules).dispatch("go") == "first\nsecond\nfourth"


class TestScripts:
    def test_stdout_appended(self, script):
        path = script("hello.py", 'print("[HELLO] hi")\n')
        rules = [Rule("hello", InvokeExternalScript(path))]
        assert Dispatcher(rules).dispatch("anything") == "[HELLO] hi"

    def test_prompt_placeholder_substituted(self, script):
        path = script(
            "echo_args.py",
            """
            import sys
            print("|".join(sys.argv[1:]))
            """,
        )
        rules = [Rule("echo", InvokeExternalScript(path, ("fixed", PROMPT_ARG)))]
        assert Dispatcher(rules).dispatch("my prompt") == "fixed|my prompt"

    def test_payload_on_stdin(self, script):
        path = script(
            "payload.py",
            """
            import json, sys
            print(json.load(sys.stdin)["prompt"].upper())
            """,
        )
        rules = [Rule("payload", InvokeExternalScript(path))]
        assert Dispatcher(rules).dispatch("shout") == "SHOUT"

    def test_empty_stdout_contributes_nothing(self, script):
        quiet = script("quiet.py", "pass\n")
        rules = [
            Rule("quiet", InvokeExternalScript(quiet)),
            Rule("text", EmitLiteralText("T")),
        ]
        assert Dispatcher(rules).dispatch("p") == "T"


class TestFailureIsolation:
    def test_crashing_script_does_not_affect_siblings(self, script):
        crash = script("crash.py", 'raise SystemExit("boom")\n')
        ok = script("ok.py", 'print("OK")\n')
        rules = [
            Rule("crash", InvokeExternalScript(crash)),
            Rule("ok", InvokeExternalScript(ok)),
        ]
        dispatcher = Dispatcher(rules)
        results = dispatcher.run("p")

        assert results[0].error == "exit 1"
        assert results[0].output == ""
        assert dispatcher.dispatch("p") == "OK"

    def test_partial_output_of_failed_script_dropped(self, script):
        noisy = script("noisy.py", 'import sys\nprint("half done")\nsys.exit(2)\n')
        results = Dispatcher([Rule("noisy", InvokeExternalScript(noisy))]).run("p")

        assert results[0].error == "exit 2"
        assert results[0].output == ""

    def test_timeout_is_enforced(self, script):
        slow = script("slow.py", "import time\ntime.sleep(30)\nprint('late')\n")
        ok = script("ok.py", 'print("OK")\n')
        rules = [
            Rule("slow", InvokeExternalScript(slow)),
            Rule("ok", InvokeExternalScript(ok)),
        ]
        started = time.time()
        results = Dispatcher(rules, timeout=1).run("p")

        assert time.time() - started < 10
        assert results[0].output == ""
        assert results[0].error.startswith("timed out")
        assert results[1].output.strip() == "OK"

    def test_missing_executable_is_swallowed(self, tmp_path):
        rules = [
            Rule("ghost", InvokeExternalScript(tmp_path / "does-not-exist")),
            Rule("text", EmitLiteralText("still here")),
        ]
        dispatcher = Dispatcher(rules)
        results = dispatcher.run("p")

        assert results[0].error.startswith("spawn failed")
        assert dispatcher.dispatch("p") == "still here"

    @pytest.mark.parametrize("prompt", ["fix this\x00 please", "broken \ud800 surrogate"])
    def test_unspawnable_prompt_keeps_sibling_output(self, script, prompt):
        ok = script("ok.py", 'print("OK")\n')
        echo = script("echo.py", "import sys\nprint(sys.argv[1])\n")
        rules = [
            Rule("literal", EmitLiteralText("LITERAL")),
            Rule("ok", InvokeExternalScript(ok)),
            Rule("echo", InvokeExternalScript(echo, (PROMPT_ARG,))),
        ]
        dispatcher = Dispatcher(rules)
        results = dispatcher.run(prompt)

        assert results[2].error.startswith("spawn failed")
        assert dispatcher.dispatch(prompt) == "LITERAL\nOK"

    def test_timeout_kills_grandchildren_holding_stdout(self, script):
        forker = script(
            "forker.py",
            """
            import subprocess, sys, time
            subprocess.Popen([sys.executable, "-c", "import time; time.sleep(30)"])
            time.sleep(30)
            """,
        )
        started = time.time()
        results = Dispatcher([Rule("forker", InvokeExternalScript(forker))], timeout=1).run("p")

        assert time.time() - started < 10
        assert results[0].error.startswith("timed out")

    def test_failure_logged_with_elapsed_time(self, script, caplog):
        crash = script("crash.py", "raise SystemExit(3)\n")
        caplog.set_level(logging.DEBUG, logger="vibe.dispatcher")

        results = Dispatcher([Rule("crash", InvokeExternalScript(crash))]).run("p")

        assert results[0].elapsed_ms > 0
        assert f"crash failed after {results[0].elapsed_ms}ms: exit 3" in caplog.text

    def test_cancel_prevents_new_scripts(self, script):
        ok = script("ok.py", 'print("OK")\n')
        dispatcher = Dispatcher([Rule("ok", InvokeExternalScript(ok))])
        dispatcher.cancel()
        assert dispatcher.dispatch("p") == ""


class TestConcurrency:
    def test_scripts_run_in_parallel(self, script):
        body = "import time\ntime.sleep(1)\nprint('{}')\n"
        rules = [
            Rule(f"s{i}", InvokeExternalScript(script(f"s{i}.py", body.format(i))))
            for i in range(4)
        ]
        started = time.time()
        output = Dispatcher(rules, max_workers=4).dispatch("p")
        elapsed = time.time() - started

        assert output == "0\n1\n2\n3"
        assert elapsed < 3.5

    def test_build_command_uses_interpreter_for_python(self, tmp_path):
        dispatcher = Dispatcher([], interpreter="/usr/bin/python3")
        action = InvokeExternalScript(tmp_path / "x.py", ("a",))
        assert dispatcher.build_command(action, "p") == [
            "/usr/bin/python3",
            str(tmp_path / "x.py"),
            "a",
        ]

    def test_build_command_runs_other_files_directly(self, tmp_path):
        dispatcher = Dispatcher([])
        action = InvokeExternalScript(tmp_path / "tool.sh", (PROMPT_ARG,))
        assert dispatcher.build_command(action, "p") == [str(tmp_path / "tool.sh"), "p"]


def test_defaults_come_from_config():
    dispatcher = Dispatcher([])
    assert dispatcher.timeout == 30.0
    assert dispatcher.max_workers == 8
    assert dispatcher.interpreter == sys.executable
