"""
Unit tests for rendering and Markdown export.
"""

from datetime import datetime
from typing import Optional

import pytest

from chatdesk.core.export import (
    EXPORT_CANCELLED,
    NOTHING_TO_EXPORT,
    StorageFileSaver,
    build_export_markdown,
    export_filename,
    export_session,
)
from chatdesk.core.rendering import (
    flatten_messages,
    highlight,
    render_markdown,
    render_message,
    render_user_text,
)
from chatdesk.core.search import MatchSpan, TextNode, find_matches
from chatdesk.models.session import Message, Session, StopReason


class RecordingSaver:
    def __init__(self, path: Optional[str] = "/tmp/out.md", error: Optional[Exception] = None):
        self.path = path
        self.error = error
        self.saved = []

    async def save(self, suggested_name, content):
        if self.error is not None:
            raise self.error
        self.saved.append((suggested_name, content))
        return self.path


def make_session(*messages) -> Session:
    return Session(session_id="1700000000000", title="Hello Claude", messages=list(messages))


class TestRenderMarkdown:
    """Tests for assistant Markdown rendering."""

    def test_basic_markdown(self):
        html = render_markdown("**bold** and `code`")
        assert "<strong>bold</strong>" in html
        assert "<code>code</code>" in html

    def test_raw_html_is_escaped(self):
        html = render_markdown("<script>alert(1)</script>")
        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_fenced_code_language_class(self):
        html = render_markdown("```python\nprint('x')\n```")
        assert 'class="hljs language-python"' in html

    def test_tables_enabled(self):
        html = render_markdown("| a | b |\n|---|---|\n| 1 | 2 |")
        assert "<table>" in html

    def test_line_breaks(self):
        assert "<br" in render_markdown("one\ntwo")


class TestRenderUserText:
    """User messages are shown as typed."""

    def test_escaped_with_breaks(self):
        assert render_user_text("<b>hi</b>\nthere") == "&lt;b&gt;hi&lt;/b&gt;<br>\nthere"

    def test_markdown_not_interpreted(self):
        assert render_message(Message.user("**not bold**")) == "**not bold**"

    def test_assistant_uses_markdown(self):
        rendered = render_message(Message.assistant("**bold**", StopReason.NORMAL))
        assert "<strong>bold</strong>" in rendered


class TestFlatten:
    """Tests for the text nodes search runs over."""

    def test_node_ids_and_headers(self):
        nodes = flatten_messages([
            Message.user("What is **x**?"),
            Message.assistant("It is `x` in\n\n```\ncode x\n```", StopReason.NORMAL),
        ])
        assert nodes[0] == TextNode("m0.header", "You")
        assert nodes[1] == TextNode("m0.0", "What is **x**?")
        assert nodes[2] == TextNode("m1.header", "Claude")
        assert [n.text for n in nodes[3:]] == ["It is ", "x", " in", "code x\n"]
        assert [n.node_id for n in nodes[3:]] == ["m1.0", "m1.1", "m1.2", "m1.3"]

    def test_markup_not_searchable(self):
        nodes = flatten_messages([Message.assistant("**strong** text", StopReason.NORMAL)])
        assert find_matches(nodes, "**") == []
        assert len(find_matches(nodes, "strong")) == 1

    def test_empty_messages(self):
        assert flatten_messages([]) == []


class TestHighlight:
    """Tests for match highlighting."""

    def test_marks_and_current(self):
        node = TextNode("m0.0", "a <b> a")
        spans = find_matches([node], "a")
        spans[1].current = True
        assert highlight(node, spans) == (
            '<mark class="search-highlight">a</mark> &lt;b&gt; '
            '<mark class="search-highlight current">a</mark>'
        )

    def test_spans_of_other_nodes_ignored(self):
        node = TextNode("m0.0", "text")
        assert highlight(node, [MatchSpan("m1.0", 0, 4, "text")]) == "text"


class TestExportMarkdown:
    """Tests for the exported document."""

    def test_document_layout(self):
        markdown = build_export_markdown(
            "Hello Claude",
            [Message.user("Hi"), Message.assistant("Hello!", StopReason.NORMAL)],
            exported_at=datetime(2024, 3, 1, 12, 30, 5),
        )
        assert markdown == (
            "# Hello Claude\n\n"
            "Exported on 2024-03-01 12:30:05\n\n"
            "## You\n\nHi\n\n"
            "## Assistant\n\nHello!\n\n"
        )

    def test_filename_is_safe(self):
        session = Session(session_id="42", title="What is ../etc/passwd?", messages=[])
        name = export_filename(session)
        assert "/" not in name
        assert name.endswith("-42.md")

    def test_filename_fallback(self):
        assert export_filename(Session(session_id="42", title="???")) == "claude-chat-export.md"


class TestExportSession:
    """Tests for export_session outcomes."""

    @pytest.mark.asyncio
    async def test_success(self):
        saver = RecordingSaver()
        result = await export_session(make_session(Message.user("Hi")), saver)
        assert result.success is True
        assert result.path == "/tmp/out.md"
        assert saver.saved[0][1].startswith("# Hello Claude")

    @pytest.mark.asyncio
    async def test_empty_session(self):
        saver = RecordingSaver()
        result = await export_session(make_session(), saver)
        assert result.success is False
        assert result.error == NOTHING_TO_EXPORT
        assert saver.saved == []

    @pytest.mark.asyncio
    async def test_cancelled(self):
        result = await export_session(make_session(Message.user("Hi")), RecordingSaver(path=None))
        assert result.success is False
        assert result.cancelled is True
        assert result.error == EXPORT_CANCELLED

    @pytest.mark.asyncio
    async def test_write_failure_reported(self):
        saver = RecordingSaver(error=OSError("disk full"))
        result = await export_session(make_session(Message.user("Hi")), saver)
        assert result.success is False
        assert result.error == "disk full"

    @pytest.mark.asyncio
    async def test_storage_saver_writes_file(self, storage):
        saver = StorageFileSaver(storage, "exports")
        result = await export_session(make_session(Message.user("Hi")), saver)
        assert result.success is True
        assert result.path.endswith("Hello-Claude-1700000000000.md")
        content = await storage.load("exports/Hello-Claude-1700000000000.md")
        assert content.decode("utf-8").startswith("# Hello Claude")
