"""Resolve the blocks a named block depends on, dependencies first.

:class:`BlockResolver` indexes the blocks of one document and walks the graph
formed by each block's ``reqs`` and the target of its call expression. The
walk is depth-first: a block is appended only after everything it needs, and
each block appears once, at the position of its first completed resolution.

Example
-------
>>> from mdblocks.models import Block
>>> from mdblocks.resolver import BlockResolver
>>> resolver = BlockResolver(
...     [Block("one", ["a"]), Block("two", ["b"], reqs=["one"])]
... )
>>> [block.name for block in resolver.resolve("two")]
['one', 'two']
"""

from __future__ import annotations

import logging
import typing as typ

from .calls import CallBinding, CallSyntaxError, parse_call

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .models import Block

logger = logging.getLogger(__name__)


class ResolutionError(RuntimeError):
    """Raised when a block's dependencies cannot be resolved."""


class DuplicateBlockError(ResolutionError):
    """Raised when two blocks in one document share a name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Block name {name!r} is defined more than once.")


class UnresolvedReferenceError(ResolutionError):
    """Raised when a required or called block does not exist."""

    def __init__(self, name: str, referrer: str | None = None) -> None:
        self.name = name
        self.referrer = referrer
        if referrer is None:
            msg = f"Named code block {name!r} not found."
        else:
            msg = f"Named code block {name!r} required by {referrer!r} not found."
        super().__init__(msg)


class CyclicDependencyError(ResolutionError):
    """Raised when a block transitively requires itself."""

    def __init__(self, path: cabc.Sequence[str]) -> None:
        self.path = list(path)
        super().__init__(f"Cyclic block dependency: {' -> '.join(self.path)}.")


class MalformedCallError(ResolutionError):
    """Raised when a block on the resolution path has an invalid call."""

    def __init__(self, block: str, raw: str, reason: str) -> None:
        self.block = block
        self.raw = raw
        super().__init__(f"Block {block!r} has a malformed call {raw!r}: {reason}.")


class BlockResolver:
    """Dependency resolution over the blocks of a single document.

    Parameters
    ----------
    blocks : Iterable[Block]
        Every block of the document. Names must be unique.

    Raises
    ------
    DuplicateBlockError
        If two blocks share a name.
    """

    def __init__(self, blocks: cabc.Iterable[Block]) -> None:
        self.blocks: list[Block] = list(blocks)
        self._by_name: dict[str, Block] = {}
        for block in self.blocks:
            if block.name in self._by_name:
                raise DuplicateBlockError(block.name)
            self._by_name[block.name] = block

    def find(self, name: str) -> Block | None:
        """Return the block called ``name``, ``[name]`` or ``(name)``, if any."""
        for candidate in (name, f"[{name}]", f"({name})"):
            block = self._by_name.get(candidate)
            if block is not None:
                return block
        return None

    def get(self, name: str, *, referrer: str | None = None) -> Block:
        """Return the block for ``name`` or raise :class:`UnresolvedReferenceError`."""
        block = self.find(name)
        if block is None:
            raise UnresolvedReferenceError(name, referrer)
        return block

    def binding_for(self, block: Block) -> CallBinding | None:
        """Return the parsed call of ``block``, if it has one.

        Raises
        ------
        MalformedCallError
            If the call expression does not parse.
        """
        try:
            return parse_call(block.call)
        except CallSyntaxError as exc:
            raise MalformedCallError(block.name, exc.raw, exc.reason) from exc

    def direct_requirements(self, block: Block) -> list[str]:
        """Return the names ``block`` needs: its ``reqs`` then its call target."""
        names = list(block.reqs)
        binding = self.binding_for(block)
        if binding is not None and binding.target_name not in names:
            names.append(binding.target_name)
        return names

    def resolve(self, start_name: str) -> list[Block]:
        """Return ``start_name`` and its transitive requirements, dependencies first.

        Raises
        ------
        UnresolvedReferenceError
            If ``start_name`` or any referenced block is missing.
        CyclicDependencyError
            If a block transitively requires itself.
        MalformedCallError
            If a block on the path has an unparsable call expression.
        """
        ordered: list[Block] = []
        self._visit(self.get(start_name), [], set(), ordered)
        logger.debug(
            "resolved %s to %s", start_name, [block.name for block in ordered]
        )
        return ordered

    def _visit(
        self,
        block: Block,
        visiting: list[str],
        visited: set[str],
        ordered: list[Block],
    ) -> None:
        if block.name in visited:
            return
        if block.name in visiting:
            start = visiting.index(block.name)
            raise CyclicDependencyError([*visiting[start:], block.name])

        visiting.append(block.name)
        for name in self.direct_requirements(block):
            self._visit(self.get(name, referrer=block.name), visiting, visited, ordered)
        visiting.pop()

        visited.add(block.name)
        ordered.append(block)

    def recursively_required_names(self, reqs: cabc.Iterable[str] | None) -> list[str]:
        """Return the transitive closure of ``reqs``, nearest requirements first.

        Only explicit ``reqs`` are followed; call targets are not.

        >>> from mdblocks.models import Block
        >>> resolver = BlockResolver(
        ...     [Block("one"), Block("two", reqs=["one"]), Block("three", reqs=["two"])]
        ... )
        >>> resolver.recursively_required_names(["three"])
        ['three', 'two', 'one']
        """
        memo: list[str] = []
        remaining = list(reqs or [])
        while remaining:
            following: list[str] = []
            for name in remaining:
                if name in memo:
                    continue
                memo.append(name)
                following.extend(self.get(name).reqs)
            remaining = following
        return memo

    def dependency_map(self, start_name: str) -> dict[str, list[str]]:
        """Map every block reachable from ``start_name`` to its direct requirements."""
        return {
            block.name: self.direct_requirements(block)
            for block in self.resolve(start_name)
        }


def resolve_blocks(blocks: cabc.Iterable[Block], start_name: str) -> list[Block]:
    """Resolve ``start_name`` within ``blocks``; see :meth:`BlockResolver.resolve`."""
    return BlockResolver(blocks).resolve(start_name)


__all__ = [
    "BlockResolver",
    "CyclicDependencyError",
    "DuplicateBlockError",
    "MalformedCallError",
    "ResolutionError",
    "UnresolvedReferenceError",
    "resolve_blocks",
]
