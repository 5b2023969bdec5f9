"""
Rendering - Markdown to safe HTML, and the flattened text view used by search.
"""

import html
from typing import Iterable, List

from markdown_it import MarkdownIt

from ..models.session import Message, Role, Session
from .search import MatchSpan, TextNode

HEADERS = {Role.USER: "You", Role.ASSISTANT: "Claude"}

# Token types whose content is shown verbatim inside a block.
_BLOCK_TEXT_TOKENS = ("fence", "code_block")
_INLINE_TEXT_TOKENS = ("text", "code_inline")


class MarkdownRenderer:
    """
    markdown-it with raw HTML disabled, so any markup in the source text is
    escaped instead of rendered.
    """

    def __init__(self) -> None:
        self.md = (
            MarkdownIt("commonmark", {"breaks": True, "html": False, "langPrefix": "hljs language-"})
            .enable("table")
            .enable("strikethrough")
        )

    def to_html(self, text: str) -> str:
        return self.md.render(text or "")

    def text_runs(self, text: str) -> List[str]:
        """Visible text of the rendered document, one entry per text node."""
        runs = []
        for token in self.md.parse(text or ""):
            if token.type in _BLOCK_TEXT_TOKENS:
                runs.append(token.content)
            elif token.type == "inline" and token.children:
                runs.extend(
                    child.content for child in token.children
                    if child.type in _INLINE_TEXT_TOKENS and child.content
                )
        return runs


markdown_renderer = MarkdownRenderer()


def render_markdown(text: str) -> str:
    return markdown_renderer.to_html(text)


def render_user_text(text: str) -> str:
    """User messages are shown as typed: escaped, line breaks kept."""
    return html.escape(text or "").replace("\n", "<br>\n")


def render_message(message: Message) -> str:
    if message.role == Role.ASSISTANT:
        return render_markdown(message.content)
    return render_user_text(message.content)


def flatten_session(session: Session) -> List[TextNode]:
    """
    Text nodes of a rendered session in display order.

    Each message contributes its header node ("m{i}.header") followed by its
    visible text ("m{i}.0", "m{i}.1", ...).
    """
    return flatten_messages(session.messages)


def flatten_messages(messages: Iterable[Message]) -> List[TextNode]:
    nodes = []
    for i, message in enumerate(messages):
        nodes.append(TextNode(f"m{i}.header", HEADERS[message.role]))
        if message.role == Role.ASSISTANT:
            runs = markdown_renderer.text_runs(message.content)
        else:
            runs = [message.content] if message.content else []
        nodes.extend(TextNode(f"m{i}.{n}", run) for n, run in enumerate(runs))
    return nodes


def highlight(node: TextNode, spans: Iterable[MatchSpan]) -> str:
    """
    Escaped text of node with its matches wrapped in <mark> elements.
    The current match additionally carries the "current" class.
    """
    own = sorted((s for s in spans if s.node_id == node.node_id), key=lambda s: s.start)
    parts = []
    cursor = 0
    for span in own:
        css = "search-highlight current" if span.current else "search-highlight"
        parts.append(html.escape(node.text[cursor:span.start]))
        parts.append(f'<mark class="{css}">{html.escape(node.text[span.start:span.end])}</mark>')
        cursor = span.end
    parts.append(html.escape(node.text[cursor:]))
    return "".join(parts)
