"""Tests for the rewrite engine."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from livedoc.core.errors import UnknownStyleError
from livedoc.embeds.registry import EmbedResult, define_embed
from livedoc.inline.datasource import InlineDatasource
from livedoc.markers.styles import DEFAULT_COMMENT_STYLES
from livedoc.pipeline.processor import BuildPipeline, build, render_region

HTML = DEFAULT_COMMENT_STYLES["html"]


@define_embed
def greeting(ctx):
    return {"content": f"Hello, {ctx.params.get('name', 'world')}!"}


@define_embed
async def keep(ctx):
    return EmbedResult(content=None)


@define_embed
def boom(ctx):
    raise RuntimeError("render exploded")


@define_embed
async def team(ctx):
    rows = await ctx.datasources["team"].get_all()
    return ctx.markdown.list([row["name"] for row in rows])


EMBEDS = {"greeting": greeting, "keep": keep, "boom": boom, "team": team}


class StaticDatasource:
    type = "static"

    def __init__(self, rows):
        self.rows = rows
        self.closed = False

    async def query(self, sql, params=None):
        return self.rows

    async def get_all(self):
        return self.rows

    async def close(self):
        self.closed = True


def _process(make_settings, content: str, path: Path | None = None, datasources=None, **overrides):
    settings = make_settings(**overrides)
    pipeline = BuildPipeline(settings, EMBEDS, datasources)
    target = path or settings.root_dir / "docs" / "page.md"
    return asyncio.run(pipeline.process_file(target, content, HTML, dry_run=True)), pipeline


def test_process_file_reports_update(make_settings) -> None:
    text = 'A <!--@livedoc:greeting inline="true"-->old<!--@livedoc:end--> B'
    result, _ = _process(make_settings, text)
    assert result.success and result.changed
    assert result.markers_updated == 1


def test_block_marker_gets_newline_wrapped(make_settings, workspace: Path) -> None:
    doc = workspace / "docs" / "page.md"
    doc.write_text('# Title\n<!--@livedoc:greeting name="Ada"-->\nstale\n<!--@livedoc:end-->\nfooter\n')
    settings = make_settings()
    outcome = asyncio.run(build(settings, EMBEDS))
    assert outcome.ok
    assert doc.read_text() == '# Title\n<!--@livedoc:greeting name="Ada"-->\nHello, Ada!\n<!--@livedoc:end-->\nfooter\n'
    assert outcome.stats.markers_updated == 1
    assert outcome.stats.changed_files == 1


def test_inline_marker_has_no_surrounding_newlines(make_settings, workspace: Path) -> None:
    doc = workspace / "docs" / "page.md"
    doc.write_text('Version: <!--@livedoc:greeting inline="true"-->?<!--@livedoc:end-->.\n')
    asyncio.run(build(make_settings(), EMBEDS))
    assert doc.read_text() == 'Version: <!--@livedoc:greeting inline="true"-->Hello, world!<!--@livedoc:end-->.\n'


def test_rebuild_is_idempotent(make_settings, workspace: Path) -> None:
    doc = workspace / "docs" / "page.md"
    doc.write_text("<!--@livedoc:greeting-->\n<!--@livedoc:end-->\n")
    settings = make_settings()
    first = asyncio.run(build(settings, EMBEDS))
    after_first = doc.read_text()
    second = asyncio.run(build(settings, EMBEDS))
    assert first.stats.changed_files == 1
    assert second.stats.changed_files == 0
    assert second.stats.markers_updated == 1
    assert doc.read_text() == after_first


def test_none_content_keeps_region(make_settings) -> None:
    text = "<!--@livedoc:keep-->\nmanual\n<!--@livedoc:end-->\n"
    result, _ = _process(make_settings, text)
    assert result.success
    assert result.changed is False
    assert result.markers_updated == 0


def test_unknown_embed_skipped_with_warning(make_settings, caplog: pytest.LogCaptureFixture) -> None:
    text = "intro\n<!--@livedoc:nope-->\nx\n<!--@livedoc:end-->\n"
    with caplog.at_level("WARNING"):
        result, _ = _process(make_settings, text)
    assert result.success
    assert result.changed is False
    assert 'Unknown embed "nope"' in caplog.text
    assert "line 2" in caplog.text


def test_no_markers_fast_path(make_settings) -> None:
    result, _ = _process(make_settings, "Just prose.\n")
    assert result.success
    assert result.markers_updated == 0
    assert result.changed is False


def test_frontmatter_variables_and_preservation(make_settings, workspace: Path) -> None:
    doc = workspace / "docs" / "page.md"
    original = '---\nauthor: Grace\n---\n<!--@livedoc:greeting name="${author}"-->\n<!--@livedoc:end-->\n'
    doc.write_text(original)
    asyncio.run(build(make_settings(), EMBEDS))
    assert doc.read_text() == '---\nauthor: Grace\n---\n<!--@livedoc:greeting name="${author}"-->\nHello, Grace!\n<!--@livedoc:end-->\n'


def test_frontmatter_behind_byte_order_mark(make_settings, workspace: Path) -> None:
    doc = workspace / "docs" / "page.md"
    doc.write_bytes(
        "\ufeff---\nauthor: Grace\n---\n<!--@livedoc:greeting name=\"${author}\"-->\n<!--@livedoc:end-->\n".encode()
    )
    asyncio.run(build(make_settings(), EMBEDS))
    written = doc.read_bytes()
    assert written.startswith(b"\xef\xbb\xbf---\nauthor: Grace\n---\n")
    assert b"\nHello, Grace!\n" in written


def test_inline_datasource_feeds_render_and_variables(make_settings, workspace: Path) -> None:
    doc = workspace / "docs" / "page.md"
    doc.write_text(
        '<!--@livedoc-data:team format="csv"-->\nname,role\nAda,Lead\nBob,Dev\n<!--@livedoc-data:end-->\n'
        '<!--@livedoc:team-->\n<!--@livedoc:end-->\n'
        '<!--@livedoc:greeting name="${team[1].name}" inline="true"--><!--@livedoc:end-->\n'
    )
    outcome = asyncio.run(build(make_settings(), EMBEDS))
    assert outcome.ok
    text = doc.read_text()
    assert "<!--@livedoc:team-->\n- Ada\n- Bob\n<!--@livedoc:end-->" in text
    assert '-->Hello, Bob!<!--' in text
    assert "name,role\nAda,Lead" in text


def test_conflict_policy_warn_prefers_inline(
    make_settings, workspace: Path, caplog: pytest.LogCaptureFixture
) -> None:
    doc = workspace / "docs" / "page.md"
    doc.write_text(
        '<!--@livedoc-data:team format="csv"-->\nname\nInline\n<!--@livedoc-data:end-->\n'
        "<!--@livedoc:team-->\n<!--@livedoc:end-->\n"
    )
    external = {"team": StaticDatasource([{"name": "External"}])}
    with caplog.at_level("WARNING"):
        outcome = asyncio.run(build(make_settings(), EMBEDS, external))
    assert outcome.ok
    text = doc.read_text()
    assert "<!--@livedoc:team-->\n- Inline\n<!--@livedoc:end-->" in text
    assert "External" not in text
    assert "overrides external datasource" in caplog.text


def test_conflict_policy_error_leaves_file_untouched(make_settings, workspace: Path) -> None:
    doc = workspace / "docs" / "page.md"
    original = (
        '<!--@livedoc-data:team format="csv"-->\nname\nInline\n<!--@livedoc-data:end-->\n'
        "<!--@livedoc:team-->\nstale\n<!--@livedoc:end-->\n"
    ).encode()
    doc.write_bytes(original)
    external = {"team": StaticDatasource([{"name": "External"}])}
    settings = make_settings(inline_datasource={"conflict_policy": "error"})
    outcome = asyncio.run(build(settings, EMBEDS, external))
    assert outcome.ok is False
    assert outcome.stats.failed_files == 1
    assert "conflicts with external datasource" in outcome.failures[0].error_message
    assert doc.read_bytes() == original


def test_conflict_policy_prefer_external(make_settings, workspace: Path) -> None:
    doc = workspace / "docs" / "page.md"
    doc.write_text(
        '<!--@livedoc-data:team format="csv"-->\nname\nInline\n<!--@livedoc-data:end-->\n'
        "<!--@livedoc:team-->\n<!--@livedoc:end-->\n"
    )
    external = {"team": StaticDatasource([{"name": "External"}])}
    settings = make_settings(inline_datasource={"conflict_policy": "prefer_external"})
    asyncio.run(build(settings, EMBEDS, external))
    assert "<!--@livedoc:team-->\n- External\n<!--@livedoc:end-->" in doc.read_text()
    assert external["team"].closed is False


def test_inline_validation_error_fails_only_that_document(make_settings, workspace: Path) -> None:
    bad = workspace / "docs" / "a_bad.md"
    good = workspace / "docs" / "b_good.md"
    bad.write_text('<!--@livedoc-data:big-->\nvalue: "' + "x" * 64 + '"\n<!--@livedoc-data:end-->\n')
    good.write_text("<!--@livedoc:greeting-->\n<!--@livedoc:end-->\n")
    settings = make_settings(inline_datasource={"max_bytes": 16})
    outcome = asyncio.run(build(settings, EMBEDS))
    assert outcome.ok is False
    assert outcome.stats.total_files == 2
    assert outcome.stats.failed_files == 1
    assert outcome.failures[0].path == bad
    assert "exceeds max size" in outcome.failures[0].error_message
    assert "Hello, world!" in good.read_text()


def test_render_error_recorded_and_batch_continues(make_settings, workspace: Path) -> None:
    (workspace / "docs" / "a.md").write_text("<!--@livedoc:boom-->\n<!--@livedoc:end-->\n")
    (workspace / "docs" / "b.md").write_text("<!--@livedoc:greeting-->\n<!--@livedoc:end-->\n")
    outcome = asyncio.run(build(make_settings(), EMBEDS))
    assert outcome.stats.success_files == 1
    assert outcome.stats.failed_files == 1
    assert outcome.failures[0].error_message == "render exploded"
    assert "Hello, world!" in (workspace / "docs" / "b.md").read_text()


def test_dry_run_writes_nothing(make_settings, workspace: Path) -> None:
    doc = workspace / "docs" / "page.md"
    original = "<!--@livedoc:greeting-->\n<!--@livedoc:end-->\n"
    doc.write_text(original)
    outcome = asyncio.run(build(make_settings(), EMBEDS, dry_run=True))
    assert outcome.stats.changed_files == 1
    assert doc.read_text() == original


def test_crlf_output(make_settings, workspace: Path) -> None:
    doc = workspace / "docs" / "page.md"
    doc.write_text("<!--@livedoc:greeting-->\n<!--@livedoc:end-->\n")
    asyncio.run(build(make_settings(output={"line_ending": "crlf"}), EMBEDS))
    assert doc.read_bytes() == b"<!--@livedoc:greeting-->\r\nHello, world!\r\n<!--@livedoc:end-->\r\n"


def test_specific_files_and_single_visit(make_settings, workspace: Path) -> None:
    first = workspace / "docs" / "one.md"
    second = workspace / "docs" / "two.md"
    for doc in (first, second):
        doc.write_text("<!--@livedoc:greeting-->\n<!--@livedoc:end-->\n")
    settings = make_settings(
        targets=[
            {"pattern": "docs/**/*.md", "comment_style": "html"},
            {"pattern": "docs/*.{md,txt}", "comment_style": "html"},
        ]
    )
    outcome = asyncio.run(build(settings, EMBEDS, specific_files=[str(second)]))
    assert outcome.stats.total_files == 1
    assert "Hello" not in first.read_text()
    assert "Hello" in second.read_text()


def test_excluded_files_skipped(make_settings, workspace: Path) -> None:
    (workspace / "docs" / "drafts").mkdir()
    draft = workspace / "docs" / "drafts" / "wip.md"
    draft.write_text("<!--@livedoc:greeting-->\n<!--@livedoc:end-->\n")
    settings = make_settings(targets=[{"pattern": "docs/**/*.md", "exclude": ["docs/drafts/**"]}])
    outcome = asyncio.run(build(settings, EMBEDS))
    assert outcome.stats.total_files == 0


def test_unknown_target_style_is_fatal(make_settings, workspace: Path) -> None:
    (workspace / "docs" / "page.md").write_text("text\n")
    settings = make_settings(targets=[{"pattern": "docs/*.md", "comment_style": "rst"}])
    with pytest.raises(UnknownStyleError):
        asyncio.run(build(settings, EMBEDS))


def test_inline_disabled_leaves_declarations_alone(make_settings) -> None:
    text = '<!--@livedoc-data:team format="csv"-->\nname\nAda\n<!--@livedoc-data:end-->\n<!--@livedoc:team--><!--@livedoc:end-->'
    result, _ = _process(make_settings, text, inline_datasource={"enabled": False})
    assert result.success is False
    assert "team" in result.error_message


def test_render_region_helper() -> None:
    from livedoc.markers.parser import parse_markers

    marker = parse_markers("<!--@livedoc:x-->old<!--@livedoc:end-->", HTML)[0]
    assert render_region(marker, "new") == "<!--@livedoc:x-->\nnew\n<!--@livedoc:end-->"


def test_existing_content_reaches_embed(make_settings) -> None:
    seen = {}

    @define_embed
    def spy(ctx):
        seen["existing"] = ctx.existing_content
        seen["file_path"] = ctx.file_path
        return None

    settings = make_settings()
    pipeline = BuildPipeline(settings, {"spy": spy})
    path = settings.root_dir / "docs" / "page.md"
    asyncio.run(pipeline.process_file(path, "<!--@livedoc:spy-->\nkeep me\n<!--@livedoc:end-->", HTML))
    assert seen == {"existing": "\nkeep me\n", "file_path": str(path)}


def test_inline_datasource_type_in_context(make_settings) -> None:
    captured = {}

    @define_embed
    def grab(ctx):
        captured["ds"] = ctx.datasources["meta"]
        return "ok"

    settings = make_settings()
    pipeline = BuildPipeline(settings, {"grab": grab})
    text = "<!--@livedoc-data:meta-->\na: 1\n<!--@livedoc-data:end-->\n<!--@livedoc:grab--><!--@livedoc:end-->"
    asyncio.run(pipeline.process_file(settings.root_dir / "docs" / "p.md", text, HTML, dry_run=True))
    assert isinstance(captured["ds"], InlineDatasource)
    assert captured["ds"].data == {"a": 1}
