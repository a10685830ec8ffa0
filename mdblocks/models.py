"""Typed records describing the code blocks of a single document.

Blocks arrive already parsed from Markdown; this module only captures their
shape. A block name carries meaning through its syntax: ``name`` is an
executable block, ``[name]`` exports variables (or holds a YAML filter) and
``(name)`` holds literal data written out through a here-document.

Example
-------
>>> from mdblocks.models import Block, Redirect
>>> block = Block(name="(make_fruit_file)", body=["fruit:"], stdout=Redirect("fruit.yml"))
>>> block.bare_name, block.form.value
('make_fruit_file', 'literal')
"""

from __future__ import annotations

import dataclasses as dc
import enum
import re

REDIRECT_NAME_PATTERN = re.compile(r"^[\-.\w]+$")


class BlockType(enum.StrEnum):
    """Language of a block body."""

    BASH = "bash"
    VARS = "vars"
    YAML = "yaml"


class NameForm(enum.StrEnum):
    """Role implied by the punctuation around a block name."""

    EXECUTABLE = "executable"
    EXPORT = "export"
    LITERAL = "literal"


@dc.dataclass(frozen=True, slots=True)
class Redirect:
    """Source or destination of a block's data.

    Attributes
    ----------
    name : str
        Shell variable name or file path.
    variable : bool
        ``True`` when ``name`` refers to a shell variable (``$name`` syntax).
    """

    name: str
    variable: bool = False

    @classmethod
    def parse(cls, text: str) -> Redirect:
        """Build a redirect from ``$name`` (variable) or ``name`` (file) text.

        Raises
        ------
        ValueError
            If the name is empty or contains characters outside ``[-.\\w]``.
        """
        variable = text.startswith("$")
        name = text[1:] if variable else text
        if not REDIRECT_NAME_PATTERN.match(name):
            msg = f"Invalid redirect target {text!r}."
            raise ValueError(msg)
        return cls(name=name, variable=variable)

    def format(self) -> str:
        """Return the ``$name`` / ``name`` spelling used in call expressions."""
        return f"${self.name}" if self.variable else self.name


@dc.dataclass(slots=True)
class Block:
    """One named code block extracted from a Markdown document.

    Attributes
    ----------
    name : str
        Identifier unique within the document, including any ``[]``/``()``.
    body : list[str]
        Source lines of the block.
    type : BlockType
        Body language.
    title : str
        Display name; defaults to ``name``.
    reqs : list[str]
        Names of blocks that must run first, in order of first mention.
    call : str or None
        Raw call expression such as ``%(summarize <in.yml >$out)``.
    stdout : Redirect or None
        Where the block's output (or literal body) is directed.
    headings : list[str]
        Enclosing heading titles, outermost first.
    disabled, hidden : bool
        Presentation flags carried through untouched.
    """

    name: str
    body: list[str] = dc.field(default_factory=list)
    type: BlockType = BlockType.BASH
    title: str = ""
    reqs: list[str] = dc.field(default_factory=list)
    call: str | None = None
    stdout: Redirect | None = None
    headings: list[str] = dc.field(default_factory=list)
    disabled: bool = False
    hidden: bool = False

    def __post_init__(self) -> None:
        """Apply the title fallback and drop repeated requirements."""
        self.type = BlockType(self.type)
        self.title = self.title or self.name
        self.reqs = list(dict.fromkeys(self.reqs))

    @property
    def form(self) -> NameForm:
        """Return the role implied by the name's enclosing punctuation."""
        if self.name.startswith("[") and self.name.endswith("]"):
            return NameForm.EXPORT
        if self.name.startswith("(") and self.name.endswith(")"):
            return NameForm.LITERAL
        return NameForm.EXECUTABLE

    @property
    def bare_name(self) -> str:
        """Return the name without ``[]`` or ``()`` decoration."""
        if self.form is NameForm.EXECUTABLE:
            return self.name
        return self.name[1:-1]


__all__ = ["Block", "BlockType", "NameForm", "Redirect"]
