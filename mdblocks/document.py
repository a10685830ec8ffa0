"""Load block records serialized as YAML.

Scanning Markdown is the job of an upstream front-end; this module reads the
records it produces. A document is a mapping with a ``blocks`` list, each
entry carrying the fields of :class:`~mdblocks.models.Block`::

    blocks:
      - name: (make_fruit_file)
        type: yaml
        stdout: fruit.yml
        body: |
          fruit:
            name: apple
      - name: show_fruit_yml
        call: "%(summarize_fruits <fruit.yml >$fruit_summary)"

``body`` may be a list of lines or a block scalar; ``stdout`` uses the
``$name`` / ``name`` spelling of call redirects.
"""

from __future__ import annotations

import typing as typ

from ruamel.yaml import YAML

from .models import Block, BlockType, Redirect

if typ.TYPE_CHECKING:
    from pathlib import Path

KNOWN_FIELDS = frozenset(
    {
        "name",
        "title",
        "type",
        "body",
        "reqs",
        "call",
        "stdout",
        "headings",
        "disabled",
        "hidden",
    }
)


class DocumentError(ValueError):
    """Raised when a block document is malformed."""


def _string_list(value: object, *, field: str, index: int) -> list[str]:
    """Normalize a scalar or sequence field into a list of strings."""
    match value:
        case None:
            return []
        case str():
            return [value]
        case list():
            return [str(item) for item in value]
        case _:
            msg = f"Block #{index}: '{field}' must be a string or a list."
            raise DocumentError(msg)


def _body_lines(value: object, *, index: int) -> list[str]:
    if isinstance(value, str):
        return value.rstrip("\n").split("\n") if value else []
    return _string_list(value, field="body", index=index)


def _build_block(payload: typ.Mapping[str, typ.Any], index: int) -> Block:
    """Validate one ``blocks`` entry and convert it into a :class:`Block`."""
    unknown = sorted(set(payload) - KNOWN_FIELDS)
    if unknown:
        msg = f"Block #{index}: unknown field(s) {', '.join(unknown)}."
        raise DocumentError(msg)

    name = str(payload.get("name") or "").strip()
    if not name:
        msg = f"Block #{index}: 'name' is required."
        raise DocumentError(msg)

    try:
        block_type = BlockType(payload.get("type") or BlockType.BASH)
    except ValueError:
        msg = f"Block {name!r}: unsupported type {payload.get('type')!r}."
        raise DocumentError(msg) from None

    stdout_raw = payload.get("stdout")
    try:
        stdout = Redirect.parse(str(stdout_raw)) if stdout_raw else None
    except ValueError as exc:
        msg = f"Block {name!r}: {exc}"
        raise DocumentError(msg) from exc

    call = payload.get("call")
    return Block(
        name=name,
        title=str(payload.get("title") or ""),
        type=block_type,
        body=_body_lines(payload.get("body"), index=index),
        reqs=_string_list(payload.get("reqs"), field="reqs", index=index),
        call=str(call) if call else None,
        stdout=stdout,
        headings=_string_list(payload.get("headings"), field="headings", index=index),
        disabled=bool(payload.get("disabled", False)),
        hidden=bool(payload.get("hidden", False)),
    )


def load_block_document(path: Path) -> list[Block]:
    """Load the block records stored in the YAML document at ``path``.

    Raises
    ------
    FileNotFoundError
        If ``path`` does not exist.
    DocumentError
        If the document or one of its entries is malformed.
    """
    if not path.exists():
        msg = f"Block document '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):
        msg = "Top-level YAML structure must be a mapping."
        raise DocumentError(msg)

    entries = loaded.get("blocks")
    if entries is None:
        entries = []
    if not isinstance(entries, list):
        msg = "'blocks' must be a list."
        raise DocumentError(msg)

    blocks: list[Block] = []
    for index, payload in enumerate(entries, start=1):
        if not isinstance(payload, dict):
            msg = f"Block #{index} must be a mapping."
            raise DocumentError(msg)
        blocks.append(_build_block(payload, index))
    return blocks


__all__ = ["DocumentError", "load_block_document"]
