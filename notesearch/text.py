"""Plain-text preparation of note bodies for the embedding model."""

import html
import re

from notesearch.constants import EMBEDDING_MAX_LENGTH

_SCRIPT_STYLE_RE = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_LIST_ITEM_RE = re.compile(r"<li\b[^>]*>", re.IGNORECASE)
_BLOCK_TAG_RE = re.compile(r"</?(?:div|p|br|h[1-6]|li|tr|blockquote|pre)\b[^>]*>", re.IGNORECASE)
_ANY_TAG_RE = re.compile(r"<[^>]+>")

BULLET = "• "


def strip_markup(markup: str) -> str:
    if not markup:
        return ""

    text = _SCRIPT_STYLE_RE.sub("", markup)
    text = _LIST_ITEM_RE.sub("\n" + BULLET, text)
    text = _BLOCK_TAG_RE.sub("\n", text)
    text = _ANY_TAG_RE.sub("", text)
    text = html.unescape(text).replace("\xa0", " ")

    lines = (line.strip() for line in text.split("\n"))
    return "\n".join(line for line in lines if line).strip()


def prepare_for_embedding(
    title: str,
    body_markup: str,
    tag_names: list[str] | None = None,
    max_length: int = EMBEDDING_MAX_LENGTH,
) -> str:
    """Compose the canonical embedding input for a note.

    Layout is ``title``, a blank line, an optional ``Tags: a, b`` line followed
    by a blank line, then the plain-text body. The result is hard-truncated to
    ``max_length`` characters.
    """
    body = strip_markup(body_markup)

    if tag_names:
        combined = f"{title}\n\nTags: {', '.join(tag_names)}\n\n{body}"
    else:
        combined = f"{title}\n\n{body}"

    return combined[:max_length]
