"""Tests for the tag scanner.

Offsets in the expectations are counted by hand against the literal
documents in each test.
"""

from __future__ import annotations

import pytest

from escape_content.scanner import (
    CloseTag,
    OpenTag,
    ParseError,
    TagScanner,
    locate,
    parse_attributes,
    scan,
)


class TestElementEvents:
    """Open and close events with offsets."""

    def test_simple_element(self) -> None:
        assert scan("<p>x</p>") == [
            OpenTag("p", {}, 0, 3),
            CloseTag("p", {}, 4, 8),
        ]

    def test_close_references_open(self) -> None:
        events = scan("<p>x</p>")
        assert events[1].opened is events[0]

    def test_inner_element_closed_by_ancestor(self) -> None:
        """An unclosed child ends where its parent's end tag starts."""
        events = scan("<div><p>x</div>")
        assert events == [
            OpenTag("div", {}, 0, 5),
            OpenTag("p", {}, 5, 8),
            CloseTag("p", {}, 9, 9, implicit=True),
            CloseTag("div", {}, 9, 15),
        ]

    def test_unclosed_at_end_of_input(self) -> None:
        events = scan("<div><p>x")
        assert events[2:] == [
            CloseTag("p", {}, 9, 9, implicit=True),
            CloseTag("div", {}, 9, 9, implicit=True),
        ]

    def test_case_insensitive_end_tag(self) -> None:
        events = scan("<DIV>x</div>")
        assert events[1] == CloseTag("DIV", {}, 6, 12)

    def test_stray_end_tag_ignored(self) -> None:
        assert scan("</p>x") == []

    def test_text_only(self) -> None:
        """A '<' that cannot start a tag is ordinary text."""
        assert scan("a < b") == []


class TestSelfClosing:
    """Self-closing syntax and void elements."""

    def test_void_and_self_closing(self) -> None:
        events = scan('<img src="a.png"><br/>')
        assert events == [
            OpenTag("img", {"src": "a.png"}, 0, 17, self_closing=True),
            CloseTag("img", {"src": "a.png"}, 17, 17, implicit=True),
            OpenTag("br", {}, 17, 22, self_closing=True),
            CloseTag("br", {}, 22, 22, implicit=True),
        ]

    def test_component_self_closing(self) -> None:
        events = scan("<Counter start={1} />")
        assert events[0].self_closing
        assert events[0].attributes == {"start": "{1}"}
        assert events[1].implicit

    def test_capitalised_names_are_not_void(self) -> None:
        """Only lowercase HTML names are void; components may have content."""
        events = scan("<Img>x</Img>")
        assert not events[0].self_closing
        assert events[1] == CloseTag("Img", {}, 6, 12)


class TestRawText:
    """Script and style bodies are not markup."""

    def test_script_body_not_scanned(self) -> None:
        events = scan('<script lang="ts">if (a<b) {}</script>')
        assert events == [
            OpenTag("script", {"lang": "ts"}, 0, 18),
            CloseTag("script", {"lang": "ts"}, 29, 38),
        ]

    def test_style_body_not_scanned(self) -> None:
        events = scan("<style>a > b { color: red; }</style><p></p>")
        assert [e.name for e in events] == ["style", "style", "p", "p"]

    def test_markup_in_script_strings(self) -> None:
        """A comment opened inside a script body does not hide later tags."""
        events = scan('<script>let s = "<!--";</script><p>x</p><!-- c -->')
        assert [e.name for e in events] == ["script", "script", "p", "p"]
        assert events[2].start == 32

    def test_unclosed_script_runs_to_end(self) -> None:
        events = scan("<script>let a = 1;")
        assert events[1] == CloseTag("script", {}, 18, 18, implicit=True)

    def test_comments_skipped(self) -> None:
        events = scan("<!-- <p> --><b></b>")
        assert [e.name for e in events] == ["b", "b"]


class TestAttributes:
    """Attribute parsing."""

    def test_value_forms(self) -> None:
        attributes = parse_attributes(' a="1" b=\'2\' c={x + 1} d e=f a="dup"')
        assert attributes == {"a": "1", "b": "2", "c": "{x + 1}", "d": "d", "e": "f"}

    def test_order_preserved(self) -> None:
        assert list(parse_attributes(" z=1 a=2 m=3")) == ["z", "a", "m"]

    def test_directive_with_arrow_function(self) -> None:
        events = scan("<button on:click={() => count += 1}>+</button>")
        assert events[0].attributes == {"on:click": "{() => count += 1}"}
        assert events[1].start == 37

    def test_nested_braces_in_expression(self) -> None:
        events = scan("<button on:click={() => { count += 1 }}>+</button>")
        assert events[0] == OpenTag(
            "button", {"on:click": "{() => { count += 1 }}"}, 0, 40
        )
        assert events[1] == CloseTag(
            "button", {"on:click": "{() => { count += 1 }}"}, 41, 50
        )

    def test_braces_inside_strings_not_counted(self) -> None:
        attributes = parse_attributes(" title={fmt(\"}\", '{')} x=1")
        assert attributes == {"title": "{fmt(\"}\", '{')}", "x": "1"}

    def test_shorthand_and_spread(self) -> None:
        events = scan("<Input {value} {...rest} />")
        assert events[0].attributes == {"{value}": "{value}", "{...rest}": "{...rest}"}
        assert events[0].self_closing

    def test_not_an_attribute_list(self) -> None:
        with pytest.raises(ValueError):
            parse_attributes(" =x")


class TestLessThanAsText:
    """A '<' that does not begin a well-formed tag is text."""

    def test_comparison_in_block_expression(self) -> None:
        events = scan("{#if a<b}<p>x</p>{/if}")
        assert events == [OpenTag("p", {}, 9, 12), CloseTag("p", {}, 13, 17)]

    def test_comparison_in_code(self) -> None:
        events = scan("<pre>for (i=0;i<n;i++) {}</pre>")
        assert events == [OpenTag("pre", {}, 0, 5), CloseTag("pre", {}, 25, 31)]

    def test_malformed_end_tag(self) -> None:
        assert scan("a </ p> b") == []


class TestParseErrors:
    """Malformed markup raises ParseError with a position."""

    def test_unterminated_comment(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            scan("<!-- oops")
        assert exc_info.value.offset == 0
        assert (exc_info.value.line, exc_info.value.column) == (1, 1)

    def test_tag_running_to_end_of_input(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            scan("a<b")
        assert exc_info.value.offset == 1

    def test_unterminated_expression(self) -> None:
        with pytest.raises(ParseError, match="unterminated expression"):
            scan("<p on:click={() => {}>x</p>")

    def test_unterminated_attribute_quote(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            scan('<p>x</p>\n<div class="a')
        assert exc_info.value.offset == 9
        assert exc_info.value.line == 2

    def test_error_message_format(self) -> None:
        assert str(ParseError("Bad", 5, 2, 3, "A.svelte")) == "Bad (A.svelte:2:3)"
        assert str(ParseError("Bad", 5)) == "Bad (offset 5)"


class TestScannerLifecycle:
    """TagScanner instances are single use."""

    def test_second_scan_rejected(self) -> None:
        scanner = TagScanner("<p></p>")
        assert len(list(scanner.events())) == 2
        with pytest.raises(RuntimeError):
            list(scanner.events())

    def test_independent_scanners(self) -> None:
        """Separate scanners never share element state."""
        first = TagScanner("<div>")
        second = TagScanner("<p></p>")
        assert [e.name for e in second.events()] == ["p", "p"]
        assert [e.name for e in first.events()] == ["div", "div"]


class TestLocate:
    def test_line_and_column(self) -> None:
        assert locate("ab\ncd", 0) == (1, 1)
        assert locate("ab\ncd", 4) == (2, 2)
