"""Tests for marker and inline-data parsing."""

import pytest

from livedoc.core.config import CommentStyle
from livedoc.markers.parser import parse_attributes, parse_inline_data_markers, parse_markers, split_frontmatter
from livedoc.markers.styles import DEFAULT_COMMENT_STYLES

HTML = DEFAULT_COMMENT_STYLES["html"]


@pytest.mark.parametrize(
    ("style_name", "document"),
    [
        ("html", '<!--@livedoc:users id="42"-->\nold\n<!--@livedoc:end-->'),
        ("block", '/* @livedoc:users id="42" */\nold\n/* @livedoc:end */'),
        ("line", '// @livedoc:users id="42"\nold\n// @livedoc:end'),
        ("hash", '# @livedoc:users id="42"\nold\n# @livedoc:end'),
        ("sql", '-- @livedoc:users id="42"\nold\n-- @livedoc:end'),
    ],
)
def test_parse_markers_in_every_style(style_name: str, document: str) -> None:
    text = f"intro\n{document}\noutro\n"
    markers = parse_markers(text, DEFAULT_COMMENT_STYLES[style_name])
    assert len(markers) == 1
    marker = markers[0]
    assert marker.template_name == "users"
    assert marker.params == {"id": "42"}
    assert marker.existing_content == "\nold\n"
    assert text[marker.start_index : marker.end_index] == document
    assert marker.start_index < marker.end_index
    assert marker.start_line == 2
    assert marker.end_line == 4


def test_marker_delimiter_lines_are_verbatim() -> None:
    text = "<!-- @livedoc:stats  kind='a' -->body<!--  @livedoc:end  -->"
    marker = parse_markers(text, HTML)[0]
    assert marker.start_marker_line == "<!-- @livedoc:stats  kind='a' -->"
    assert marker.end_marker_line == "<!--  @livedoc:end  -->"
    assert marker.existing_content == "body"
    assert marker.params == {"kind": "a"}


def test_unterminated_marker_is_dropped() -> None:
    text = "<!--@livedoc:orphan-->\nno end here\n"
    assert parse_markers(text, HTML) == []


def test_start_pairs_with_nearest_end() -> None:
    text = (
        "<!--@livedoc:outer-->\n"
        "<!--@livedoc:inner-->\nx\n<!--@livedoc:end-->\n"
        "tail\n<!--@livedoc:end-->\n"
    )
    first, second = parse_markers(text, HTML)
    assert first.template_name == "outer"
    assert second.template_name == "inner"
    # both close on the first end marker
    assert first.end_index == second.end_index
    assert "tail" not in first.existing_content


def test_end_is_not_a_marker_name() -> None:
    assert parse_markers("<!--@livedoc:end-->", HTML) == []


def test_other_namespace_ignored() -> None:
    text = "<!--@other:users-->\nx\n<!--@other:end-->"
    assert parse_markers(text, HTML) == []
    assert len(parse_markers(text, HTML, namespace="other")) == 1


def test_line_style_marker_does_not_span_lines() -> None:
    style = CommentStyle(start="#")
    text = "# @livedoc:toc\n# @livedoc:end\n"
    marker = parse_markers(text, style)[0]
    assert marker.start_marker_line == "# @livedoc:toc"
    assert marker.params == {}
    assert marker.existing_content == "\n"


def test_parse_attributes_mixed_quotes() -> None:
    assert parse_attributes('a="1" b=\'two\' junk c="x y"') == {"a": "1", "b": "two", "c": "x y"}
    assert parse_attributes("") == {}


def test_parse_inline_data_markers() -> None:
    text = (
        "# Title\n"
        '<!--@livedoc-data:project format="json"-->\n'
        '{"name": "demo"}\n'
        "<!--@livedoc-data:end-->\n"
        "<!--@livedoc-data:project.author-->\n"
        "name: Ada\n"
        "<!--@livedoc-data:end-->\n"
    )
    first, second = parse_inline_data_markers(text, HTML)
    assert first.name == "project"
    assert first.format == "json"
    assert first.raw_content == '\n{"name": "demo"}\n'
    assert (first.start_line, first.end_line) == (2, 4)
    assert first.byte_size == len('\n{"name": "demo"}\n')
    assert second.name == "project.author"
    assert second.root_name == "project"
    assert second.format == "yaml"
    assert (second.start_line, second.end_line) == (5, 7)


def test_inline_data_line_style() -> None:
    style = DEFAULT_COMMENT_STYLES["hash"]
    text = '# @livedoc-data:rows format="csv"\na,b\n1,2\n# @livedoc-data:end\n'
    (declaration,) = parse_inline_data_markers(text, style)
    assert declaration.format == "csv"
    assert declaration.raw_content == "\na,b\n1,2\n"


def test_inline_data_not_parsed_as_marker() -> None:
    text = "<!--@livedoc-data:x-->\na: 1\n<!--@livedoc-data:end-->"
    assert parse_markers(text, HTML) == []


def test_split_frontmatter() -> None:
    text = "---\ntitle: Hello\ntags: [a, b]\n---\nBody\n"
    parsed = split_frontmatter(text)
    assert parsed.data == {"title": "Hello", "tags": ["a", "b"]}
    assert parsed.body == "Body\n"
    assert parsed.raw + parsed.body == text
    assert parsed.line_offset == 4


def test_split_frontmatter_after_byte_order_mark() -> None:
    text = "\ufeff---\ntitle: x\n---\nbody\n"
    parsed = split_frontmatter(text)
    assert parsed.data == {"title": "x"}
    assert parsed.body == "body\n"
    assert parsed.raw.startswith("\ufeff---")
    assert parsed.raw + parsed.body == text
    assert parsed.line_offset == 3


def test_split_frontmatter_absent_or_invalid() -> None:
    assert split_frontmatter("No frontmatter\n").body == "No frontmatter\n"
    broken = "---\n: [unclosed\n---\nBody\n"
    parsed = split_frontmatter(broken)
    assert parsed.data == {}
    assert parsed.body == broken
