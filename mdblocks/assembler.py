"""Turn resolved blocks into the lines of a shell script.

:class:`CodeAssembler` walks blocks in the order produced by
:class:`~mdblocks.resolver.BlockResolver` and renders each according to its
role:

* plain blocks contribute their body, optionally between label comments;
* call blocks contribute a single invocation of their target, with input and
  output redirected as the call expression describes;
* call targets that are YAML filters are inlined into a ``yq`` command, other
  targets become shell functions;
* literal-data blocks become here-documents written to a file or captured
  into a variable;
* ``vars`` blocks become ``export`` lines.

Example
-------
>>> from mdblocks.assembler import CodeAssembler
>>> from mdblocks.models import Block
>>> from mdblocks.resolver import BlockResolver
>>> resolver = BlockResolver([Block("one", ["a"]), Block("two", ["b"], reqs=["one"])])
>>> CodeAssembler(resolver).collect_required_code("two").code
['a', 'b']
"""

from __future__ import annotations

import dataclasses as dc
import logging
import re
import typing as typ

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .config import AssemblyConfig
from .expansion import (
    InputKind,
    InvocationCode,
    OutputKind,
    ParameterExpander,
    shell_escape,
)
from .models import Block, BlockType, NameForm, Redirect

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .calls import CallBinding
    from .resolver import BlockResolver

logger = logging.getLogger(__name__)

SHELL_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class AssemblyError(RuntimeError):
    """Raised when a resolved block cannot be rendered as shell text."""


@dc.dataclass(slots=True)
class AssemblyResult:
    """Script lines for a block together with how they were derived.

    Attributes
    ----------
    block_names : list[str]
        Names of the resolved blocks, in emission order.
    code : list[str]
        Assembled shell lines.
    dependencies : dict[str, list[str]]
        Direct requirements of every resolved block.
    """

    block_names: list[str]
    code: list[str]
    dependencies: dict[str, list[str]]


def _single_quote(text: str) -> str:
    """Quote ``text`` for the shell using single quotes."""
    return "'" + text.replace("'", "'\\''") + "'"


def _assignment_value(invocation: str, expansion: str) -> str:
    """Render ``expansion`` as the single-word right-hand side of an assignment.

    Command output runs in a quoted substitution; literal text is escaped so
    it stays inert; expressions and variable references are double-quoted so
    the shell still expands them. Unrecognized codes are treated as literal.
    """
    code = InvocationCode.parse(invocation)
    if code is None:
        return shell_escape(expansion)
    if code.output_kind is OutputKind.COMMAND:
        return f'"$({expansion})"'
    literal = code.input_kind is InputKind.LITERAL
    if literal and code.output_kind is not OutputKind.VARIABLE:
        return shell_escape(expansion)
    return f'"{expansion}"'


def _scalar_text(block: Block, name: str, value: object) -> str:
    """Return the shell spelling of a ``vars`` value loaded from YAML."""
    match value:
        case None:
            return ""
        case bool():
            return "true" if value else "false"
        case dict() | list():
            msg = f"Block {block.name!r} gives {name!r} a non-scalar value."
            raise AssemblyError(msg)
        case _:
            return str(value)


class CodeAssembler:
    """Render resolved blocks into shell source lines.

    Parameters
    ----------
    resolver : BlockResolver
        Resolver for the document the blocks belong to; used to look up call
        targets and to resolve start blocks.
    config : AssemblyConfig, optional
        Rendering options; defaults are used when omitted.
    expander : ParameterExpander, optional
        Expander for call arguments. Share one between assemblers writing to
        the same script so generated variable names stay unique.
    """

    def __init__(
        self,
        resolver: BlockResolver,
        *,
        config: AssemblyConfig | None = None,
        expander: ParameterExpander | None = None,
    ) -> None:
        self.resolver = resolver
        self.config = config or AssemblyConfig()
        self.expander = expander or ParameterExpander()
        self._yaml = YAML(typ="safe", pure=True)

    def collect_required_code(self, start_name: str) -> AssemblyResult:
        """Resolve ``start_name`` and assemble everything it needs.

        Raises
        ------
        ResolutionError
            If the dependency graph cannot be resolved.
        AssemblyError
            If a resolved block cannot be rendered.
        """
        ordered = self.resolver.resolve(start_name)
        return AssemblyResult(
            block_names=[block.name for block in ordered],
            code=self.assemble(ordered),
            dependencies={
                block.name: self.resolver.direct_requirements(block)
                for block in ordered
            },
        )

    def assemble(self, ordered_blocks: cabc.Sequence[Block]) -> list[str]:
        """Return the script lines for ``ordered_blocks``, in the given order."""
        bindings = {
            block.name: binding
            for block in ordered_blocks
            if (binding := self.resolver.binding_for(block)) is not None
        }
        targets = {
            self.resolver.get(binding.target_name, referrer=name).name
            for name, binding in bindings.items()
        }
        required = {
            self.resolver.get(req, referrer=block.name).name
            for block in ordered_blocks
            for req in block.reqs
        }

        lines: list[str] = []
        for block in ordered_blocks:
            if block.name in targets:
                definition = self._target_lines(block, bindings.get(block.name))
                lines.extend(definition)
                if definition and block.name in required:
                    # Dependents reaching it through reqs expect it to run here.
                    lines.append(block.bare_name)
            elif block.name in bindings:
                lines.extend(self._call_lines(block, bindings[block.name]))
            elif block.stdout is not None or block.form is NameForm.LITERAL:
                lines.extend(self._heredoc_lines(block))
            elif block.type is BlockType.VARS:
                lines.extend(self._vars_lines(block))
            elif block.type is BlockType.YAML:
                logger.debug("skipping uncalled YAML block %s", block.name)
            else:
                lines.extend(self._labelled_body(block))
        return lines

    def render_script(self, lines: cabc.Iterable[str]) -> str:
        """Join ``lines`` into script text, prefixed with the configured shebang."""
        header = [self.config.shebang] if self.config.shebang else []
        return "\n".join([*header, *lines]) + "\n"

    def _labelled_body(self, block: Block) -> list[str]:
        label_name = re.sub(r"\s+", "_", block.name)
        above = self.config.label_format_above
        below = self.config.label_format_below
        return [
            *([above.format(block_name=label_name)] if above else []),
            *block.body,
            *([below.format(block_name=label_name)] if below else []),
        ]

    def _heredoc_lines(self, block: Block) -> list[str]:
        delimiter = self.config.heredoc_delimiter
        if delimiter in block.body:
            msg = (
                f"Block {block.name!r} contains the here-document delimiter "
                f"{delimiter!r} on a line of its own."
            )
            raise AssemblyError(msg)

        target = block.stdout or Redirect(block.bare_name)
        if target.variable:
            return [
                f'export {target.name}=$(cat <<"{delimiter}"',
                *block.body,
                delimiter,
                ")",
            ]
        return [
            f'cat > {_single_quote(target.name)} <<"{delimiter}"',
            *block.body,
            delimiter,
        ]

    def _vars_lines(self, block: Block) -> list[str]:
        try:
            data = self._yaml.load("\n".join(block.body)) or {}
        except YAMLError as exc:
            msg = f"Block {block.name!r} is not valid YAML: {exc}"
            raise AssemblyError(msg) from exc
        if not isinstance(data, dict):
            msg = f"Block {block.name!r} must hold a mapping of variable names."
            raise AssemblyError(msg)

        lines: list[str] = []
        for key, value in data.items():
            name = str(key)
            if not SHELL_NAME_PATTERN.match(name):
                msg = f"Block {block.name!r} defines invalid variable name {name!r}."
                raise AssemblyError(msg)
            text = _scalar_text(block, name, value)
            lines.append(f"export {name}={shell_escape(text)}")
        return lines

    def _target_lines(self, block: Block, binding: CallBinding | None) -> list[str]:
        if block.type is BlockType.YAML and binding is None:
            # Inlined into the caller's yq command.
            return []
        if not SHELL_NAME_PATTERN.match(block.bare_name):
            msg = f"Called block {block.name!r} is not a valid shell function name."
            raise AssemblyError(msg)
        body = block.body if binding is None else self._call_lines(block, binding)
        # Bash rejects a function with an empty body.
        return [f"{block.bare_name}() {{", *(body or [":"]), "}"]

    def _call_lines(self, block: Block, binding: CallBinding) -> list[str]:
        target = self.resolver.get(binding.target_name, referrer=block.name)
        lines: list[str] = []
        assignments: list[str] = []
        for argument in binding.arguments:
            expansion, new_var = self.expander.expand(
                argument.name, argument.invocation, argument.value
            )
            if new_var is not None:
                lines.append(new_var.assignment)
            assignments.append(
                f"{argument.name}={_assignment_value(argument.invocation, expansion)}"
            )

        command = self._command_for(target, binding, " ".join(assignments))
        capture = binding.output_capture
        if capture is None:
            lines.append(command)
        elif capture.variable:
            lines.append(f"export {capture.name}=$({command})")
        else:
            lines.append(f"{command} > {_single_quote(capture.name)}")
        return lines

    def _command_for(self, target: Block, binding: CallBinding, env: str) -> str:
        """Build the invocation of ``target``; ``env`` prefixes the consuming command."""
        source = binding.input_redirect
        prefix = f"{env} " if env else ""
        if target.type is BlockType.YAML and self.resolver.binding_for(target) is None:
            yq = f"{prefix}{self.config.yq_command}"
            expression = _single_quote("\n".join(target.body))
            if source is None:
                return f"{yq} e {expression}"
            if source.variable:
                return f'echo "${source.name}" | {yq} {expression}'
            return f"{yq} e {expression} {_single_quote(source.name)}"

        command = f"{prefix}{target.bare_name}"
        if source is None:
            return command
        if source.variable:
            return f'printf %s "${source.name}" | {command}'
        return f"{command} < {_single_quote(source.name)}"


__all__ = ["AssemblyError", "AssemblyResult", "CodeAssembler"]
