"""Behaviour tests for assembling scripts from YAML block documents.

These pytest-bdd scenarios load a block document from disk, resolve the
requested block, and assert on the assembled script. The feature file
``fruit_summary.feature`` covers the literal-data plus YAML-filter call
pattern and cycle reporting.

Usage
-----
Run ``pytest tests/bdd/test_fruit_summary.py -v`` after installing the test
extra (``pip install -e .[test]``). No external tools are invoked; ``yq`` only
appears in the generated text.
"""

from __future__ import annotations

import typing as typ
from pathlib import Path

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from mdblocks.assembler import CodeAssembler
from mdblocks.document import load_block_document
from mdblocks.resolver import BlockResolver, CyclicDependencyError

FEATURE_FILE = Path(__file__).resolve().parents[2] / "features" / "fruit_summary.feature"
scenarios(FEATURE_FILE)


@pytest.fixture
def scenario_state() -> dict[str, object]:
    """Return a mutable dict used to share scenario state across BDD steps."""
    return {}


@given("a block document describing the fruit summary")
def given_fruit_document(tmp_path: Path, scenario_state: dict[str, object]) -> None:
    """Write the fruit document to disk."""
    path = tmp_path / "fruit.yaml"
    path.write_text(
        """
blocks:
  - name: "[summarize_fruits]"
    type: yaml
    body: "[.fruit.name,.fruit.price]"
  - name: (make_fruit_file)
    type: yaml
    stdout: fruit.yml
    body: |
      fruit:
        name: apple
        color: green
        price: 1.234
  - name: show_fruit_yml
    reqs: [(make_fruit_file)]
    call: "%(summarize_fruits <fruit.yml >$fruit_summary)"
    stdout: $fruit_summary
    body:
      - 'echo "fruit_summary: ${fruit_summary:-MISSING}"'
        """.strip()
        + "\n",
        encoding="utf-8",
    )
    scenario_state["document"] = path


@given("a block document where two blocks require each other")
def given_cyclic_document(tmp_path: Path, scenario_state: dict[str, object]) -> None:
    """Write a document whose blocks form a two-node cycle."""
    path = tmp_path / "cycle.yaml"
    path.write_text(
        "blocks:\n"
        "  - name: ping\n    reqs: [pong]\n    body: [echo ping]\n"
        "  - name: pong\n    reqs: [ping]\n    body: [echo pong]\n",
        encoding="utf-8",
    )
    scenario_state["document"] = path


@when(parsers.parse('I assemble the "{block}" block'))
def when_assemble(block: str, scenario_state: dict[str, object]) -> None:
    """Assemble ``block``, recording either the code or the raised error."""
    path = typ.cast("Path", scenario_state["document"])
    assembler = CodeAssembler(BlockResolver(load_block_document(path)))
    try:
        scenario_state["code"] = assembler.collect_required_code(block).code
    except CyclicDependencyError as exc:
        scenario_state["error"] = exc


@then("the script writes the fruit file before filtering it")
def then_heredoc_first(scenario_state: dict[str, object]) -> None:
    """The here-document must precede the yq invocation."""
    code = typ.cast("list[str]", scenario_state["code"])
    assert code[:6] == [
        "cat > 'fruit.yml' <<\"EOF\"",
        "fruit:",
        "  name: apple",
        "  color: green",
        "  price: 1.234",
        "EOF",
    ], f"expected the fruit here-document first, got {code!r}"


@then("the fruit summary is captured into a variable")
def then_captured(scenario_state: dict[str, object]) -> None:
    """The call block becomes a single export of the yq output."""
    code = typ.cast("list[str]", scenario_state["code"])
    assert code[6:] == [
        "export fruit_summary=$(yq e '[.fruit.name,.fruit.price]' 'fruit.yml')"
    ], f"expected a single captured yq invocation, got {code[6:]!r}"


@then(parsers.parse('assembly fails with a cycle through "{first}" and "{second}"'))
def then_cycle(first: str, second: str, scenario_state: dict[str, object]) -> None:
    """The cycle error must name the blocks on the loop."""
    error = typ.cast("CyclicDependencyError", scenario_state.get("error"))
    assert error is not None, "expected a CyclicDependencyError"
    assert error.path == [first, second, first], (
        f"expected cycle path {[first, second, first]!r}, got {error.path!r}"
    )
