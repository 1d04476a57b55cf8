"""Marker parsing.

Locates ``{start}@<namespace>:<name> attrs{end} ... {start}@<namespace>:end{end}``
regions and ``@<namespace>-data:<dotted.name>`` declarations. A start marker is
always paired with the nearest following end marker of the same family; start
markers with no end marker are dropped.
"""

from __future__ import annotations

import re
from functools import lru_cache

import yaml

from livedoc.core.config import CommentStyle
from livedoc.markers.types import InlineDataDeclaration, Marker, ParsedFrontmatter
from livedoc.utils.text import line_number_at

DEFAULT_NAMESPACE = "livedoc"
DEFAULT_INLINE_FORMAT = "yaml"

_BOM = "\ufeff"

_ATTR_RE = re.compile(r"""(\w+)=["']([^"'\n]*)["']""")
_FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\n(?P<matter>.*?)(?:\n)?^---[ \t]*(?:\n|\Z)",
    re.DOTALL | re.MULTILINE,
)


def parse_attributes(attr_string: str) -> dict[str, str]:
    """Tokenize ``key="value"`` / ``key='value'`` pairs; anything else is ignored."""
    return {key: value for key, value in _ATTR_RE.findall(attr_string)}


def split_frontmatter(text: str) -> ParsedFrontmatter:
    """Split a leading YAML frontmatter block from the document body.

    ``raw`` keeps the block verbatim (delimiters and any byte-order mark
    included) so it can be re-prepended unchanged. Malformed or non-mapping
    frontmatter is treated as body text.
    """
    bom = _BOM if text.startswith(_BOM) else ""
    rest = text[len(bom) :]
    match = _FRONTMATTER_RE.match(rest)
    if match is None:
        return ParsedFrontmatter(data={}, body=text, raw="")
    try:
        data = yaml.safe_load(match.group("matter")) or {}
    except yaml.YAMLError:
        return ParsedFrontmatter(data={}, body=text, raw="")
    if not isinstance(data, dict):
        return ParsedFrontmatter(data={}, body=text, raw="")
    return ParsedFrontmatter(data=data, body=rest[match.end() :], raw=bom + match.group(0))


@lru_cache(maxsize=64)
def _marker_patterns(start: str, end: str, namespace: str) -> tuple[re.Pattern[str], re.Pattern[str]]:
    s = re.escape(start)
    ns = re.escape(namespace)
    if end:
        e = re.escape(end)
        start_re = re.compile(rf"{s}\s*@{ns}:(?!end\b)(\w+)\s*(.*?)\s*{e}", re.DOTALL)
        end_re = re.compile(rf"{s}\s*@{ns}:end\s*{e}")
    else:
        start_re = re.compile(rf"{s}[ \t]*@{ns}:(?!end\b)(\w+)[ \t]*(.*?)[ \t]*$", re.MULTILINE)
        end_re = re.compile(rf"{s}[ \t]*@{ns}:end[ \t]*$", re.MULTILINE)
    return start_re, end_re


@lru_cache(maxsize=64)
def _data_patterns(start: str, end: str, namespace: str) -> tuple[re.Pattern[str], re.Pattern[str]]:
    s = re.escape(start)
    ns = re.escape(namespace)
    if end:
        e = re.escape(end)
        start_re = re.compile(
            rf"{s}\s*@{ns}-data:(?!end\s*{e})([\w.]+)(?:[ \t]+([^\n]*?))?\s*{e}"
        )
        end_re = re.compile(rf"{s}\s*@{ns}-data:end\s*{e}")
    else:
        start_re = re.compile(
            rf"{s}[ \t]*@{ns}-data:(?!end[ \t]*$)([\w.]+)(?:[ \t]+(.*))?$",
            re.MULTILINE,
        )
        end_re = re.compile(rf"{s}[ \t]*@{ns}-data:end[ \t]*$", re.MULTILINE)
    return start_re, end_re


def parse_markers(
    content: str,
    comment_style: CommentStyle,
    namespace: str = DEFAULT_NAMESPACE,
) -> list[Marker]:
    """Return every terminated marker in ``content`` in document order."""
    start_re, end_re = _marker_patterns(comment_style.start, comment_style.end, namespace)
    markers: list[Marker] = []
    for match in start_re.finditer(content):
        after_start = match.end()
        end_match = end_re.search(content, after_start)
        if end_match is None:
            continue
        markers.append(
            Marker(
                template_name=match.group(1),
                params=parse_attributes(match.group(2) or ""),
                existing_content=content[after_start : end_match.start()],
                start_index=match.start(),
                end_index=end_match.end(),
                start_marker_line=match.group(0),
                end_marker_line=end_match.group(0),
                start_line=line_number_at(content, match.start()),
                end_line=line_number_at(content, end_match.start()),
            )
        )
    return markers


def parse_inline_data_markers(
    content: str,
    comment_style: CommentStyle,
    namespace: str = DEFAULT_NAMESPACE,
) -> list[InlineDataDeclaration]:
    """Return every terminated inline-data declaration in ``content``.

    Line numbers are 1-based and relative to ``content``.
    """
    start_re, end_re = _data_patterns(comment_style.start, comment_style.end, namespace)
    declarations: list[InlineDataDeclaration] = []
    for match in start_re.finditer(content):
        name = match.group(1)
        if not name or name == "end":
            continue
        attrs = parse_attributes((match.group(2) or "").strip())
        after_start = match.end()
        end_match = end_re.search(content, after_start)
        if end_match is None:
            continue
        raw_content = content[after_start : end_match.start()]
        declarations.append(
            InlineDataDeclaration(
                name=name,
                format=attrs.get("format", DEFAULT_INLINE_FORMAT),
                raw_content=raw_content,
                start_line=line_number_at(content, match.start()),
                end_line=line_number_at(content, end_match.end()),
                byte_size=len(raw_content.encode("utf-8")),
            )
        )
    return declarations


__all__ = [
    "DEFAULT_NAMESPACE",
    "parse_attributes",
    "parse_inline_data_markers",
    "parse_markers",
    "split_frontmatter",
]
