"""Unit tests for the parameter expansion engine.

These tests pin down every cell of the invocation-code table, the ``l``/``q``
synonym, single-letter shorthand, the ``${...}`` detection rules, and the
counter-backed :class:`ParameterExpander`.

Usage
-----
Run ``pytest tests/test_expansion.py -v``. No fixtures beyond pytest's own are
required.
"""

from __future__ import annotations

import logging
import threading

import pytest

from mdblocks.expansion import (
    InvocationCode,
    NewVariable,
    ParameterExpander,
    UniqueCounter,
    expand_parameter,
    expand_parameters,
    shell_escape,
    value_reference,
    variable_reference,
)


@pytest.mark.parametrize(
    ("code", "value", "expected"),
    [
        ("cc", "ls -la", "ls -la"),
        ("ec", "hello world", 'printf %s "hello world"'),
        ("ee", "hello world", "hello world"),
        ("el", "hello world", '$(printf %s "hello world")'),
        ("lc", "hello world", 'printf %s "hello world"'),
        ("le", "hello world", "hello world"),
        ("ll", "hello world", "hello world"),
        ("qc", "hello world", 'printf %s "hello world"'),
        ("qe", "hello world", "hello world"),
        ("lq", "hello world", "hello world"),
        ("ql", "hello world", "hello world"),
        ("qq", "hello world", "hello world"),
        ("vc", "MY_VAR", 'printf %s "${MY_VAR}"'),
        ("ve", "MY_VAR", "${MY_VAR}"),
        ("vl", "MY_VAR", "${MY_VAR}"),
        ("vv", "MY_VAR", "MY_VAR"),
    ],
)
def test_direct_expansions_create_no_variable(code: str, value: str, expected: str) -> None:
    """Combinations that render in place must not stage a variable."""
    expansion, new_var = expand_parameter("PARAM", code, value, unique=1)
    assert expansion == expected, f"{code}: expected {expected!r}, got {expansion!r}"
    assert new_var is None, f"{code}: expected no new variable, got {new_var!r}"


@pytest.mark.parametrize(
    ("code", "value", "expected_expansion", "assignment"),
    [
        ("ce", "ls -la", "PARAM_", "$(ls -la)"),
        ("cl", "ls -la", "${PARAM_}", "$(ls -la)"),
        ("cq", "ls -la", "${PARAM_}", "$(ls -la)"),
        ("cv", "ls -la", "PARAM_", "$(ls -la)"),
        ("ev", "hello world", "PARAM_", 'printf %s "hello world"'),
        ("lv", "hello world", "PARAM_", "hello\\ world"),
        ("qv", "hello world", "PARAM_", "hello\\ world"),
    ],
)
def test_staged_expansions_create_variable(
    code: str, value: str, expected_expansion: str, assignment: str
) -> None:
    """Command and variable outputs stage the value through ``PARAM_<unique>``."""
    expansion, new_var = expand_parameter("PARAM", code, value, unique="")
    assert expansion == expected_expansion
    assert new_var == NewVariable(
        name="PARAM_",
        value=value,
        assignment_code=assignment,
        invocation=code,
        param="PARAM",
    )


@pytest.mark.parametrize("code", [None, "", "xx", "cx", "z"])
def test_unrecognized_codes_return_value_unchanged(code: str | None) -> None:
    expansion, new_var = expand_parameter("PARAM", code, "value", unique=3)
    assert expansion == "value"
    assert new_var is None


def test_unrecognized_code_logs_warning(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="mdblocks.expansion"):
        expand_parameter("PARAM", "xx", "value", unique=3)
    assert "unrecognized invocation code 'xx'" in caplog.text


@pytest.mark.parametrize(
    ("letter", "value"),
    [("c", "ls -la"), ("e", "hello world"), ("l", "hello world"), ("v", "MY_VAR")],
)
def test_single_letter_matches_q_suffix(letter: str, value: str) -> None:
    """``x`` is shorthand for ``xq`` for every input letter."""
    short = expand_parameter("PARAM", letter, value, unique=42)
    long = expand_parameter("PARAM", f"{letter}q", value, unique=42)
    assert short[0] == long[0]
    if short[1] is None or long[1] is None:
        assert short[1] is None
        assert long[1] is None
    else:
        assert (short[1].name, short[1].value, short[1].assignment_code) == (
            long[1].name,
            long[1].value,
            long[1].assignment_code,
        )


def test_codes_are_case_insensitive() -> None:
    assert expand_parameter("P", "VL", "X", unique=1) == ("${X}", None)
    assert InvocationCode.parse("Ce") == InvocationCode.parse("cE")


def test_repeated_expansion_with_fixed_unique_is_identical() -> None:
    first = expand_parameter("PARAM", "ce", "date", unique=7)
    second = expand_parameter("PARAM", "ce", "date", unique=7)
    assert first == second
    assert first[0] == "PARAM_7"


def test_variable_output_expansion_is_new_variable_name() -> None:
    for code in ("ce", "cv", "ev", "lv"):
        expansion, new_var = expand_parameter("PARAM", code, "x y", unique=5)
        assert new_var is not None
        if code.endswith("v"):
            assert expansion == new_var.name


def test_pre_wrapped_parameter_keeps_braces() -> None:
    """A parameter already in ``${...}`` form is suffixed, not re-wrapped."""
    expansion, new_var = expand_parameter("${MY_VAR}", "cl", "date", unique=7)
    assert new_var is not None
    assert new_var.name == "${MY_VAR}_7"
    assert expansion == "${MY_VAR}_7"


def test_value_reference_detects_wrapped_values() -> None:
    assert value_reference("${X}") == "${X}"
    assert value_reference("X") == "${X}"
    assert value_reference("${${X}}") == "${${X}}"
    assert variable_reference("$X") == "$X"
    assert variable_reference("X_1") == "${X_1}"


@pytest.mark.parametrize(
    ("raw", "escaped"),
    [
        ("hello world with spaces", "hello\\ world\\ with\\ spaces"),
        ("", "''"),
        ("a/b.c-d,e:f+g@h_i", "a/b.c-d,e:f+g@h_i"),
        ("it's $HOME", "it\\'s\\ \\$HOME"),
        ("two\nlines", "two'\n'lines"),
    ],
)
def test_shell_escape(raw: str, escaped: str) -> None:
    assert shell_escape(raw) == escaped


def test_new_variable_describes_itself() -> None:
    _expansion, new_var = expand_parameter("PARAM", "ce", "ls -la", unique="")
    assert new_var is not None
    text = str(new_var)
    assert "PARAM" in text
    assert "ls -la" in text
    assert "ce" in text
    assert new_var.assignment == "PARAM_=$(ls -la)"


def test_expand_parameters_batch() -> None:
    expansions, new_variables = expand_parameters(
        {
            "COMMAND": ("ce", "ls -la"),
            "TITLE": ("ll", "My Document"),
            "VARIABLE": ("ev", "hello world"),
        },
        unique="",
    )
    assert expansions == {
        "COMMAND": "COMMAND_",
        "TITLE": "My Document",
        "VARIABLE": "VARIABLE_",
    }
    assert [var.name for var in new_variables] == ["COMMAND_", "VARIABLE_"]
    assert [var.value for var in new_variables] == ["ls -la", "hello world"]


def test_expander_ticks_counter_only_for_codes() -> None:
    expander = ParameterExpander(UniqueCounter(start=10))
    assert expander.expand_string("P", None, "v") == "v"
    assert expander.expand_string("P", "ce", "date") == "P_10"
    assert expander.expand_string("P", "ce", "date") == "P_11"
    assert expander.expand_string("P", "ce", "date", unique="x") == "P_x"
    assert expander.expand_string("P", "ce", "date") == "P_12"


def test_expander_batch_uses_distinct_suffixes() -> None:
    expander = ParameterExpander(UniqueCounter())
    _expansions, new_variables = expander.expand_all(
        {"A": ("cv", "date"), "B": ("ll", "text"), "C": ("lv", "a b")}
    )
    assert [var.name for var in new_variables] == ["A_1", "C_3"]


def test_counter_is_unique_across_threads() -> None:
    counter = UniqueCounter()
    seen: list[int] = []
    lock = threading.Lock()

    def _draw() -> None:
        values = [counter.next() for _ in range(200)]
        with lock:
            seen.extend(values)

    threads = [threading.Thread(target=_draw) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert sorted(seen) == list(range(1, 1601))
