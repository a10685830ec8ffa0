r"""Expand typed parameters into shell text.

A parameter is described by an invocation code of one or two letters. The
first letter names what the value *is* (``c`` command, ``e`` expression,
``l``/``q`` literal, ``v`` variable name) and the second what the caller
*needs* (the same alphabet, defaulting to ``q``). Some combinations stage the
value through a freshly named shell variable, reported as a
:class:`NewVariable` alongside the expansion text.

Unknown codes are not errors: the value is returned unchanged.

Examples
--------
>>> from mdblocks.expansion import expand_parameter
>>> expand_parameter("PARAM", "ce", "ls -la", unique="")
('PARAM_', NewVariable(name='PARAM_', value='ls -la', assignment_code='$(ls -la)', invocation='ce', param='PARAM'))
>>> expand_parameter("PARAM", "vl", "MY_VAR", unique=1)[0]
'${MY_VAR}'
"""

from __future__ import annotations

import dataclasses as dc
import enum
import itertools
import logging
import re
import threading
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = logging.getLogger(__name__)

_SHELL_UNSAFE = re.compile(r"[^A-Za-z0-9_\-.,:+/@\n]")


class InputKind(enum.Enum):
    """What the raw parameter value contains."""

    COMMAND = "C"
    EXPRESSION = "E"
    LITERAL = "L"
    VARIABLE = "V"


class OutputKind(enum.Enum):
    """What shape the expansion must take where it is used."""

    COMMAND = "C"
    EXPRESSION = "E"
    LITERAL = "L"
    VARIABLE = "V"


# ``Q`` is an older spelling of ``L`` in either position.
_LETTER_ALIASES = {"Q": "L"}


@dc.dataclass(frozen=True, slots=True)
class NewVariable:
    """Shell variable synthesized while expanding a parameter.

    Attributes
    ----------
    name : str
        Uniquified variable name, ``<param>_<unique>``.
    value : str
        Raw parameter value the variable was created from.
    assignment_code : str
        Right-hand side of the assignment, e.g. ``$(ls -la)``.
    invocation : str
        Invocation code that requested the variable.
    param : str
        Name of the originating parameter.
    """

    name: str
    value: str
    assignment_code: str
    invocation: str
    param: str

    @property
    def assignment(self) -> str:
        """Return the ``name=code`` line that declares the variable."""
        return f"{self.name}={self.assignment_code}"

    def __str__(self) -> str:
        return f"Variable: {self.name} = {self.value} (via {self.invocation})"


@dc.dataclass(frozen=True, slots=True)
class InvocationCode:
    """Decoded ``(input, output)`` pair of an invocation code."""

    input_kind: InputKind
    output_kind: OutputKind

    @classmethod
    def parse(cls, code: str | None) -> InvocationCode | None:
        """Decode ``code`` or return ``None`` when it is empty or unknown.

        Letters are case-insensitive; a single letter implies literal output.
        Characters after the second are ignored.
        """
        if not code:
            return None
        letters = [_LETTER_ALIASES.get(ch, ch) for ch in code[:2].upper()]
        if len(letters) == 1:
            letters.append(OutputKind.LITERAL.value)
        try:
            return cls(InputKind(letters[0]), OutputKind(letters[1]))
        except ValueError:
            return None


class UniqueCounter:
    """Monotonic counter used to suffix generated variable names.

    Safe to share between threads; each :meth:`next` call returns a value no
    other caller has seen.
    """

    def __init__(self, start: int = 1) -> None:
        self._values = itertools.count(start)
        self._lock = threading.Lock()

    def next(self) -> int:
        """Return the next value."""
        with self._lock:
            return next(self._values)


def is_wrapped(text: str) -> bool:
    """Return whether ``text`` is already in ``${...}`` form."""
    return text.startswith("${") and text.endswith("}")


def variable_reference(name: str) -> str:
    """Return a reference to variable ``name``; ``$``-prefixed names pass through."""
    return name if name.startswith("$") else f"${{{name}}}"


def value_reference(value: str) -> str:
    """Wrap ``value`` as ``${value}`` unless it is already wrapped."""
    return value if is_wrapped(value) else f"${{{value}}}"


def shell_escape(value: str) -> str:
    r"""Escape ``value`` for use as a single shell word.

    Every character outside ``[A-Za-z0-9_\-.,:+/@]`` is backslash-escaped and
    newlines are emitted as ``'\n'``; the empty string becomes ``''``.

    >>> shell_escape("hello world")
    'hello\\ world'
    """
    if not value:
        return "''"
    return _SHELL_UNSAFE.sub(r"\\\g<0>", value).replace("\n", "'\n'")


def _printf(value: str) -> str:
    return f'printf %s "{value}"'


def _substitute(value: str) -> str:
    return f"$({value})"


def _verbatim(value: str) -> str:
    return value


@dc.dataclass(frozen=True, slots=True)
class _Rule:
    """One cell of the transformation table.

    Exactly one of ``render`` or ``assign`` is set. ``render`` produces the
    expansion directly; ``assign`` produces the assignment code of a new
    variable whose name (or a reference to it, when ``reference`` is set)
    becomes the expansion.
    """

    render: cabc.Callable[[str], str] | None = None
    assign: cabc.Callable[[str], str] | None = None
    reference: bool = False


_C, _E, _L, _V = (
    InputKind.COMMAND,
    InputKind.EXPRESSION,
    InputKind.LITERAL,
    InputKind.VARIABLE,
)
_OC, _OE, _OL, _OV = (
    OutputKind.COMMAND,
    OutputKind.EXPRESSION,
    OutputKind.LITERAL,
    OutputKind.VARIABLE,
)

_RULES: dict[tuple[InputKind, OutputKind], _Rule] = {
    (_C, _OC): _Rule(render=_verbatim),
    (_C, _OE): _Rule(assign=_substitute),
    (_C, _OL): _Rule(assign=_substitute, reference=True),
    (_C, _OV): _Rule(assign=_substitute),
    (_E, _OC): _Rule(render=_printf),
    (_E, _OE): _Rule(render=_verbatim),
    (_E, _OL): _Rule(render=lambda value: _substitute(_printf(value))),
    (_E, _OV): _Rule(assign=_printf),
    (_L, _OC): _Rule(render=_printf),
    (_L, _OE): _Rule(render=_verbatim),
    (_L, _OL): _Rule(render=_verbatim),
    (_L, _OV): _Rule(assign=shell_escape),
    (_V, _OC): _Rule(render=lambda value: _printf(value_reference(value))),
    (_V, _OE): _Rule(render=value_reference),
    (_V, _OL): _Rule(render=value_reference),
    (_V, _OV): _Rule(render=_verbatim),
}


def expand_parameter(
    param: str,
    invocation: str | None,
    value: str,
    *,
    unique: object,
) -> tuple[str, NewVariable | None]:
    """Expand ``value`` according to ``invocation``.

    Parameters
    ----------
    param : str
        Parameter name; used as the stem of any new variable. A name already
        in ``${...}`` form is kept intact, so the suffix follows the brace.
    invocation : str or None
        One- or two-letter invocation code.
    value : str
        Raw parameter value.
    unique : object
        Suffix appended to new variable names. Pass ``""`` for bare
        ``<param>_`` names in deterministic output.

    Returns
    -------
    tuple[str, NewVariable | None]
        Expansion text and the variable created to stage the value, if any.
        Empty or unrecognized codes return ``(value, None)``.
    """
    if not invocation:
        return value, None
    code = InvocationCode.parse(invocation)
    if code is None:
        logger.warning(
            "unrecognized invocation code %r for %s; value left unchanged",
            invocation,
            param,
        )
        return value, None

    rule = _RULES[code.input_kind, code.output_kind]
    if rule.assign is None:
        return typ.cast("cabc.Callable[[str], str]", rule.render)(value), None

    new_var = NewVariable(
        name=f"{param}_{unique}",
        value=value,
        assignment_code=rule.assign(value),
        invocation=invocation,
        param=param,
    )
    logger.debug("staged %s through %s", param, new_var.name)
    expansion = variable_reference(new_var.name) if rule.reference else new_var.name
    return expansion, new_var


def expand_parameters(
    parameters: cabc.Mapping[str, tuple[str | None, str]],
    *,
    unique: object,
) -> tuple[dict[str, str], list[NewVariable]]:
    """Expand every ``name -> (invocation, value)`` entry independently.

    Returns the expansion per parameter and the created variables in mapping
    order.
    """
    expansions: dict[str, str] = {}
    new_variables: list[NewVariable] = []
    for param, (invocation, value) in parameters.items():
        expansion, new_var = expand_parameter(param, invocation, value, unique=unique)
        expansions[param] = expansion
        if new_var is not None:
            new_variables.append(new_var)
    return expansions, new_variables


class ParameterExpander:
    """Expand parameters, drawing name suffixes from an owned counter.

    Parameters
    ----------
    counter : UniqueCounter, optional
        Source of uniqueness suffixes; a fresh counter is created when
        omitted. Share one counter between expanders that emit into the same
        script.
    """

    def __init__(self, counter: UniqueCounter | None = None) -> None:
        self.counter = counter or UniqueCounter()

    def expand(
        self,
        param: str,
        invocation: str | None,
        value: str,
        *,
        unique: object = None,
    ) -> tuple[str, NewVariable | None]:
        """Expand one parameter; ticks the counter unless ``unique`` is given."""
        if not invocation:
            return value, None
        if unique is None:
            unique = self.counter.next()
        return expand_parameter(param, invocation, value, unique=unique)

    def expand_string(
        self,
        param: str,
        invocation: str | None,
        value: str,
        *,
        unique: object = None,
    ) -> str:
        """Return only the expansion text."""
        expansion, _new_var = self.expand(param, invocation, value, unique=unique)
        return expansion

    def expand_all(
        self,
        parameters: cabc.Mapping[str, tuple[str | None, str]],
        *,
        unique: object = None,
    ) -> tuple[dict[str, str], list[NewVariable]]:
        """Batch form of :meth:`expand`."""
        expansions: dict[str, str] = {}
        new_variables: list[NewVariable] = []
        for param, (invocation, value) in parameters.items():
            expansion, new_var = self.expand(param, invocation, value, unique=unique)
            expansions[param] = expansion
            if new_var is not None:
                new_variables.append(new_var)
        return expansions, new_variables


__all__ = [
    "InputKind",
    "InvocationCode",
    "NewVariable",
    "OutputKind",
    "ParameterExpander",
    "UniqueCounter",
    "expand_parameter",
    "expand_parameters",
    "is_wrapped",
    "shell_escape",
    "value_reference",
    "variable_reference",
]
