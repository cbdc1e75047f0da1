"""
Line rendering for log calls.

Every call renders to one primary line::

    SEVERITY prefix: file:line message [k1=v1 k2=v2]

followed by the lines of the error block, if any, each carrying the same
``SEVERITY prefix: file:line`` header so line-oriented collectors can still
attribute them.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any, Iterable, Mapping, NamedTuple

from .errors import iter_chain, safe_str

if TYPE_CHECKING:
    from .errors import ChainError, ExceptionChain, Frame

    Chain = ChainError | ExceptionChain


class CallSite(NamedTuple):
    file: str
    line: int

    def __str__(self) -> str:
        return f"{os.path.basename(self.file)}:{self.line}"


UNKNOWN_CALL_SITE = CallSite("???", 0)


def message_text(args: Iterable[Any]) -> str:
    """Plain form: arguments as literal text, space-joined."""
    return " ".join(safe_str(a) for a in args)


def format_location(frame: Frame) -> str:
    return f"{frame.function} ({os.path.basename(frame.file)}:{frame.line})"


# =============================================================================
# Error chain rendering
# =============================================================================


def error_fields(chain: Chain) -> dict[str, str]:
    """Context entries describing the top error of a chain."""
    fields = dict(chain.fields)
    fields["error"] = chain.template
    fields["error_text"] = chain.message
    fields["error_type"] = chain.type_tag
    if chain.location is not None:
        fields["error_location"] = format_location(chain.location)
    return fields


def error_context(chain: Chain) -> dict[str, str]:
    """
    Context carried by an error chain.

    Operation context captured by each error is applied deepest cause first,
    so the top error's own context wins, then its fields on top.
    """
    links = list(iter_chain(chain))
    result: dict[str, str] = {}
    for link in reversed(links):
        result.update(link.context)
    result.update(error_fields(chain))
    return result


def error_block(chain: Chain) -> list[str]:
    """Stack frames of each error in the chain, with ``Caused by:`` separators."""
    lines: list[str] = []
    for i, link in enumerate(iter_chain(chain)):
        if i > 0:
            lines.append(f"Caused by: {link.message}")
        lines.extend(f"  at {format_location(frame)}" for frame in link.stack)
    return lines


# =============================================================================
# Line Formatter
# =============================================================================


class LineFormatter:
    """Renders a log call into its final text."""

    PREFIX_SEPARATOR = ": "
    FIELD_SEPARATOR = " "

    @staticmethod
    def render_context(context: Mapping[str, Any]) -> str:
        """``[k1=v1 k2=v2]`` with keys ascending, or empty for no context."""
        if not context:
            return ""
        pairs = " ".join(f"{k}={context[k]}" for k in sorted(context))
        return f"[{pairs}]"

    @classmethod
    def header(cls, severity: Any, prefix: str, call_site: CallSite) -> str:
        return f"{str(severity)} {prefix}{cls.PREFIX_SEPARATOR}{call_site} "

    @classmethod
    def format(
        cls,
        severity: Any,
        prefix: str,
        call_site: CallSite,
        message: str,
        context: Mapping[str, Any] | None = None,
        block: Iterable[str] = (),
    ) -> str:
        """Format one log call; every line ends with a newline."""
        header = cls.header(severity, prefix, call_site)
        primary = header + message
        rendered_context = cls.render_context(context or {})
        if rendered_context:
            primary = f"{primary}{cls.FIELD_SEPARATOR}{rendered_context}"

        lines = [primary]
        lines.extend(header + line for line in block)
        return "".join(f"{line}\n" for line in lines)
