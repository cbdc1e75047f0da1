"""
Line formatter and error chain rendering tests.
"""

from __future__ import annotations

from opslog import ops
from opslog.errors import ChainError, Frame, as_chain, format_template
from opslog.formatters import (
    CallSite,
    LineFormatter,
    error_block,
    error_context,
    error_fields,
    format_location,
    message_text,
)
from opslog.severity import Severity

SITE = CallSite("/srv/app/handlers.py", 42)


class TestLineFormatter:
    """LineFormatter.format"""

    def test_primary_line_without_context(self) -> None:
        """No context means no bracket segment"""
        text = LineFormatter.format(Severity.DEBUG, "myprefix", SITE, "Hello world")
        assert text == "DEBUG myprefix: handlers.py:42 Hello world\n"

    def test_context_keys_are_sorted(self) -> None:
        """Bracket keys appear in ascending order regardless of insertion order"""
        context = {"root_op": "r", "b": "2", "op": "o", "a": "1"}
        text = LineFormatter.format(Severity.ERROR, "p", SITE, "msg", context)
        assert text == "ERROR p: handlers.py:42 msg [a=1 b=2 op=o root_op=r]\n"

    def test_empty_context_is_omitted(self) -> None:
        """An empty mapping renders nothing"""
        assert LineFormatter.render_context({}) == ""

    def test_block_lines_repeat_the_header(self) -> None:
        """Every block line carries the severity, prefix and call site"""
        text = LineFormatter.format(Severity.FATAL, "p", SITE, "msg", {}, ["  at f (x.py:1)", "Caused by: y"])
        assert text.splitlines() == [
            "FATAL p: handlers.py:42 msg",
            "FATAL p: handlers.py:42   at f (x.py:1)",
            "FATAL p: handlers.py:42 Caused by: y",
        ]
        assert text.endswith("y\n")


class TestMessageText:
    """Plain and formatted message construction"""

    def test_plain_joins_with_spaces(self) -> None:
        assert message_text(("a", 1, True)) == "a 1 True"

    def test_template_without_args_is_literal(self) -> None:
        """A lone template is not interpolated, so % signs survive"""
        assert format_template("100% done", ()) == "100% done"

    def test_template_substitution(self) -> None:
        assert format_template("Hello %s", (True,)) == "Hello True"

    def test_bad_template_is_left_unresolved(self) -> None:
        assert format_template("%d items", ("many",)) == "%d items"
        assert format_template("%s %s", (1,)) == "%s %s"

    def test_unprintable_argument_uses_object_repr(self) -> None:
        """A failing __str__ never escapes message construction"""

        class Unprintable:
            def __str__(self):
                raise RuntimeError("no str")

        value = Unprintable()
        assert message_text(("x", value)) == f"x {object.__repr__(value)}"
        assert format_template("%s", (value,)) == "%s"


class TestErrorRendering:
    """Error fields and blocks"""

    def test_fields(self) -> None:
        """error, error_text, error_type and error_location describe the top error"""
        err = ChainError("Hello %s", "world")
        fields = error_fields(err)
        assert fields["error"] == "Hello %s"
        assert fields["error_text"] == "Hello world"
        assert fields["error_type"] == "opslog.errors.ChainError"
        assert fields["error_location"] == format_location(err.location)
        assert fields["error_location"].endswith(f"(test_formatters.py:{err.location.line})")

    def test_location_format(self) -> None:
        frame = Frame("pkg.mod.func", "/a/b/mod.py", 7)
        assert format_location(frame) == "pkg.mod.func (mod.py:7)"

    def test_block_lists_frames_then_causes(self) -> None:
        """Frames of each error follow its Caused by line, innermost first"""
        inner = ChainError("inner")
        outer = ChainError("outer: %s", inner)
        block = error_block(outer)

        assert block[0] == f"  at {format_location(outer.stack[0])}"
        assert len([line for line in block if line.startswith("  at ")]) == len(outer.stack) + len(inner.stack)
        caused = block.index("Caused by: inner")
        assert caused == len(outer.stack)
        assert block[caused + 1 :] == [f"  at {format_location(f)}" for f in inner.stack]

    def test_error_without_frames_or_cause_has_no_block(self) -> None:
        """An error with nothing to unwind only contributes fields"""
        err = ChainError("bare")
        err._stack = []
        assert error_block(err) == []
        assert "error_location" not in error_fields(err)

    def test_context_of_chain_prefers_top_error(self) -> None:
        """Captured contexts merge deepest cause first"""
        with ops.begin("deep").set("k", "deep").set("only_deep", "x"):
            inner = ChainError("inner")
        with ops.begin("top").set("k", "top"):
            outer = ChainError("outer: %s", inner)

        context = error_context(outer)
        assert context["k"] == "top"
        assert context["only_deep"] == "x"
        assert context["op"] == "top"
        assert context["error_text"] == "outer: inner"

    def test_unraised_cause_renders_message_only(self) -> None:
        """A never-raised cause still gets its Caused by line, without frames"""
        outer = ChainError("outer: %s", ValueError("plain"))
        block = error_block(outer)
        assert block[-1] == "Caused by: plain"

    def test_as_chain_capability(self) -> None:
        """Only ChainErrors and raised exceptions expose a chain"""
        assert as_chain("text") is None
        assert as_chain(ValueError("never raised")) is None
        try:
            raise ValueError("raised")
        except ValueError as exc:
            chain = as_chain(exc)
        assert chain is not None
        assert chain.type_tag == "builtins.ValueError"
        assert chain.stack[0].file.endswith("test_formatters.py")
