"""Cyclopts CLI entrypoint for assembling scripts from block documents.

The ``mdblocks`` console script reads block records from a YAML document,
resolves the blocks a named block depends on, and prints (or writes) the
assembled shell script. ``mdblocks deps`` shows the resolution order and
``mdblocks expand`` previews a single parameter expansion.

Examples
--------
Assemble a block into a script file:

>>> from mdblocks.cli import app
>>> app(
...     ["assemble", "blocks.yaml", "show_fruit_yml", "--output", "run.sh"]
... )  # doctest: +SKIP

Preview how a command parameter is staged through a variable:

>>> app(["expand", "PARAM", "ce", "ls -la", "--unique", "1"])  # doctest: +SKIP
PARAM_1
PARAM_1=$(ls -la)
"""

from __future__ import annotations

import logging
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter

from ._constants import DEFAULT_CONFIG, ENV_PREFIX, LOG_FORMAT
from .assembler import CodeAssembler
from .config import AssemblyConfig, load_assembly_config
from .document import load_block_document
from .expansion import ParameterExpander
from .resolver import BlockResolver

app = App(name="mdblocks", config=cyclopts.config.Env(ENV_PREFIX, command=False))  # type: ignore[unknown-argument]

logger = logging.getLogger(__name__)


def _display_path(path: Path) -> str:
    """Show ``path`` relative to the working directory when it lies beneath it."""
    resolved = path.resolve()
    cwd = Path.cwd().resolve()
    return str(resolved.relative_to(cwd)) if resolved.is_relative_to(cwd) else str(path)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT
    )


def _load_config(path: Path | None) -> AssemblyConfig:
    """Load ``path``, or the default config file when present, else defaults."""
    if path is not None:
        return load_assembly_config(path)
    if DEFAULT_CONFIG.exists():
        return load_assembly_config(DEFAULT_CONFIG)
    return AssemblyConfig()


@app.command(help="Assemble the script for a block and everything it requires.")
def assemble(
    document: typ.Annotated[Path, Parameter(help="YAML block document")],
    block: typ.Annotated[str, Parameter(help="Name of the block to run")],
    *,
    config: typ.Annotated[
        Path | None, Parameter(help="Path to assembly config", env_var="MDBLOCKS_CONFIG")
    ] = None,
    output: typ.Annotated[
        Path | None, Parameter(help="Write the script here instead of stdout")
    ] = None,
    verbose: bool = False,
) -> None:
    """Resolve ``block`` within ``document`` and emit the assembled script.

    Parameters
    ----------
    document : Path
        YAML file holding the document's block records.
    block : str
        Block to assemble; its requirements and call targets come first.
    config : Path or None, optional
        Assembly configuration; defaults to ``mdblocks.yaml`` when present.
    output : Path or None, optional
        Destination file. The script is printed when omitted.
    verbose : bool, optional
        Enable debug logging.

    Raises
    ------
    ResolutionError
        If the block graph has missing references, cycles, or bad calls.
    AssemblyError
        If a resolved block cannot be rendered.
    """
    _configure_logging(verbose)
    resolver = BlockResolver(load_block_document(document))
    assembler = CodeAssembler(resolver, config=_load_config(config))
    result = assembler.collect_required_code(block)
    script = assembler.render_script(result.code)
    if output is None:
        print(script, end="")
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(script, encoding="utf-8")
    output.chmod(0o755)
    logger.info("assembled %s from %d block(s)", block, len(result.block_names))
    print(f"wrote {_display_path(output)}")


@app.command(help="List the blocks a block resolves to, dependencies first.")
def deps(
    document: typ.Annotated[Path, Parameter(help="YAML block document")],
    block: typ.Annotated[str, Parameter(help="Name of the block to resolve")],
    *,
    verbose: bool = False,
) -> None:
    """Print one resolved block name per line."""
    _configure_logging(verbose)
    resolver = BlockResolver(load_block_document(document))
    for resolved in resolver.resolve(block):
        print(resolved.name)


@app.command(help="Show how a parameter expands for an invocation code.")
def expand(
    param: str,
    code: str,
    value: str,
    *,
    unique: typ.Annotated[
        str | None, Parameter(help="Fixed suffix for generated variable names")
    ] = None,
    verbose: bool = False,
) -> None:
    """Print the expansion, then the new variable's assignment if one is made."""
    _configure_logging(verbose)
    expansion, new_var = ParameterExpander().expand(param, code, value, unique=unique)
    print(expansion)
    if new_var is not None:
        print(new_var.assignment)


def main() -> None:
    """Invoke the Cyclopts application that powers the ``mdblocks`` command.

    Examples
    --------
    >>> main()  # doctest: +SKIP
    """
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
