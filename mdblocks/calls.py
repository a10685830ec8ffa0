r"""Parse call expressions that let one block invoke another.

A call expression names the target block and optionally redirects its input
and output::

    %(summarize_fruits <fruit.yml >$fruit_summary)

``<name`` reads a file and ``<$name`` a shell variable; ``>name`` and
``>$name`` do the same for the output. Arguments written ``NAME:code=value``
(or ``NAME=value``) bind parameters that are expanded when the call is
assembled. Every other word belongs to the target name.

Example
-------
>>> from mdblocks.calls import parse_call
>>> binding = parse_call("%(summarize_fruits <fruit.yml >$fruit_summary)")
>>> binding.target_name, binding.input_redirect.name, binding.output_capture.variable
('summarize_fruits', 'fruit.yml', True)
"""

from __future__ import annotations

import dataclasses as dc
import re
import shlex

from .models import Redirect

ARGUMENT_PATTERN = re.compile(
    r"^(?P<name>[A-Za-z_]\w*)(?::(?P<code>[A-Za-z]{1,2}))?=(?P<value>.*)$", re.DOTALL
)
DEFAULT_ARGUMENT_CODE = "ll"


class CallSyntaxError(ValueError):
    """Raised when a call expression cannot be parsed."""

    def __init__(self, raw: str, reason: str) -> None:
        self.raw = raw
        self.reason = reason
        super().__init__(f"Malformed call expression {raw!r}: {reason}.")


@dc.dataclass(frozen=True, slots=True)
class CallArgument:
    """Parameter bound by a call, expanded with its invocation code."""

    name: str
    invocation: str
    value: str

    def format(self) -> str:
        """Return the ``NAME:code=value`` spelling, quoted for the call grammar."""
        return f"{self.name}:{self.invocation}={shlex.quote(self.value)}"


@dc.dataclass(frozen=True, slots=True)
class CallBinding:
    """Parsed call expression.

    Attributes
    ----------
    target_name : str
        Block being invoked.
    input_redirect : Redirect or None
        File or variable fed to the target's standard input.
    output_capture : Redirect or None
        File or variable receiving the target's standard output.
    arguments : tuple[CallArgument, ...]
        Parameter bindings in the order written.
    """

    target_name: str
    input_redirect: Redirect | None = None
    output_capture: Redirect | None = None
    arguments: tuple[CallArgument, ...] = ()

    def format(self) -> str:
        """Return the canonical ``%(...)`` form of this binding."""
        words = [self.target_name]
        words.extend(argument.format() for argument in self.arguments)
        if self.input_redirect:
            words.append(f"<{self.input_redirect.format()}")
        if self.output_capture:
            words.append(f">{self.output_capture.format()}")
        return f"%({' '.join(words)})"


def _strip_parentheses(raw: str) -> str:
    text = raw.strip()
    if text.startswith("%"):
        text = text[1:]
    if not (text.startswith("(") and text.endswith(")")):
        raise CallSyntaxError(raw, "expected the form (target ...)")
    inner = text[1:-1]
    if "(" in inner or ")" in inner:
        raise CallSyntaxError(raw, "unbalanced parentheses")
    return inner


def _parse_redirect(raw: str, word: str) -> Redirect:
    try:
        return Redirect.parse(word[1:])
    except ValueError:
        raise CallSyntaxError(raw, f"invalid redirect {word!r}") from None


def parse_call(raw: str | None) -> CallBinding | None:
    """Parse ``raw`` into a :class:`CallBinding`.

    Parameters
    ----------
    raw : str or None
        Call expression, with or without the leading ``%``.

    Returns
    -------
    CallBinding or None
        ``None`` when ``raw`` is empty.

    Raises
    ------
    CallSyntaxError
        On unbalanced parentheses or quotes, a missing target, repeated
        redirects, or invalid redirect names.
    """
    if raw is None or not raw.strip():
        return None

    inner = _strip_parentheses(raw)
    try:
        words = shlex.split(inner, posix=True)
    except ValueError as exc:
        raise CallSyntaxError(raw, str(exc).lower()) from exc

    target_words: list[str] = []
    arguments: list[CallArgument] = []
    input_redirect: Redirect | None = None
    output_capture: Redirect | None = None
    for word in words:
        if word.startswith("<"):
            if input_redirect is not None:
                raise CallSyntaxError(raw, "only one input redirect is supported")
            input_redirect = _parse_redirect(raw, word)
        elif word.startswith(">"):
            if output_capture is not None:
                raise CallSyntaxError(raw, "only one output redirect is supported")
            output_capture = _parse_redirect(raw, word)
        elif match := ARGUMENT_PATTERN.match(word):
            arguments.append(
                CallArgument(
                    name=match["name"],
                    invocation=match["code"] or DEFAULT_ARGUMENT_CODE,
                    value=match["value"],
                )
            )
        else:
            target_words.append(word)

    if not target_words:
        raise CallSyntaxError(raw, "missing target block name")
    return CallBinding(
        target_name=" ".join(target_words),
        input_redirect=input_redirect,
        output_capture=output_capture,
        arguments=tuple(arguments),
    )


__all__ = ["CallArgument", "CallBinding", "CallSyntaxError", "parse_call"]
