"""Assemble shell scripts from named, inter-dependent Markdown code blocks.

The package resolves the blocks a named block requires or calls, renders them
in dependency order, and expands typed parameters into shell-safe text. The
``mdblocks`` console script drives it from YAML block documents.

Exports
-------
- ``app``: Cyclopts application entry for subcommands.
- ``main``: Convenience function that invokes the Cyclopts app.

Examples
--------
>>> from mdblocks import main
>>> main()  # doctest: +SKIP
>>> from mdblocks import app
>>> app(["deps", "blocks.yaml", "four"])  # doctest: +SKIP
one
two
three
four
"""

from __future__ import annotations

from .cli import app, main

__all__ = ["app", "main"]
