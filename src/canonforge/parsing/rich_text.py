"""Conversion between canonical plain text and host rich text.

Canonical text is lightly marked up: blank lines separate paragraphs, lines
starting with ``-``, ``*`` or ``•`` are bullets, and inline ``**bold**``,
``*italic*``, `` `code` `` and bracketed action glyphs such as
``[two-actions]`` are allowed. The host stores the same content as HTML.

Both directions preserve the inline tokens so that text survives a
synthesize/normalize round trip unchanged up to whitespace.

Example:
    >>> to_rich_text("Make a **Strike**. [one-action]")
    '<p>Make a <strong>Strike</strong>. <span class="action-glyph">1</span></p>'
"""

from __future__ import annotations

import html
import re


# =============================================================================
# Tokens
# =============================================================================

GLYPHS: dict[str, str] = {
    "one-action": "1",
    "two-actions": "2",
    "three-actions": "3",
    "reaction": "r",
    "free-action": "f",
    "free": "f",
}
"""Action-cost tokens and the glyph character the host renders for each."""

_TOKEN_FOR_GLYPH: dict[str, str] = {
    "1": "one-action",
    "2": "two-actions",
    "3": "three-actions",
    "r": "reaction",
    "f": "free-action",
}

_GLYPH_TOKEN = re.compile(
    r"\[(one-action|two-actions|three-actions|reaction|free-action|free)\]",
    re.IGNORECASE,
)
_BOLD = re.compile(r"\*\*(.+?)\*\*")
_ITALIC = re.compile(r"(^|[^*])\*(?!\s)([^*]+?)\*")
_CODE = re.compile(r"`([^`]+?)`")
_BULLET = re.compile(r"^[-*•]\s+(.+)$")
_LOOKS_LIKE_HTML = re.compile(
    r"<\s*/?\s*(p|br|ul|ol|li|strong|em|b|i|code|span|div|h[1-6]|hr|table)\b[^>]*>",
    re.IGNORECASE,
)

_GLYPH_SPAN = re.compile(
    r"<span[^>]*class=\"[^\"]*(?:action-glyph|pf2-icon)[^\"]*\"[^>]*>\s*(.*?)\s*</span>",
    re.IGNORECASE | re.DOTALL,
)
_STRONG_TAG = re.compile(r"<(strong|b)\b[^>]*>(.*?)</\1\s*>", re.IGNORECASE | re.DOTALL)
_EM_TAG = re.compile(r"<(em|i)\b[^>]*>(.*?)</\1\s*>", re.IGNORECASE | re.DOTALL)
_CODE_TAG = re.compile(r"<code\b[^>]*>(.*?)</code\s*>", re.IGNORECASE | re.DOTALL)
_BR_TAG = re.compile(r"<\s*br\s*/?\s*>", re.IGNORECASE)
_LI_OPEN = re.compile(r"<\s*li\b[^>]*>", re.IGNORECASE)
_LI_CLOSE = re.compile(r"<\s*/\s*li\s*>", re.IGNORECASE)
_BLOCK_TAG = re.compile(r"<\s*/?\s*(p|ul|ol|div|h[1-6])\b[^>]*>", re.IGNORECASE)
_ANY_TAG = re.compile(r"</?[A-Za-z][A-Za-z0-9-]*\b[^<>]*>")


# =============================================================================
# Canonical -> Host
# =============================================================================


def _glyph(match: re.Match[str]) -> str:
    token = match.group(1).lower()
    return f'<span class="action-glyph">{GLYPHS[token]}</span>'


def _emphasis(text: str) -> str:
    text = _BOLD.sub(r"<strong>\1</strong>", text)
    text = _ITALIC.sub(r"\1<em>\2</em>", text)
    return _CODE.sub(r"<code>\1</code>", text)


def _inline(text: str) -> str:
    return _emphasis(_GLYPH_TOKEN.sub(_glyph, text))


def looks_like_html(text: str) -> bool:
    """Return True when ``text`` already contains block or inline HTML tags."""
    return bool(_LOOKS_LIKE_HTML.search(text))


def to_rich_text(text: str | None) -> str:
    """Render canonical plain text as host HTML.

    Args:
        text: Canonical text. ``None`` and blank strings are allowed.

    Returns:
        HTML with one ``<p>`` per paragraph and one ``<ul>`` per run of bullet
        lines, or an empty string for empty input. Text that is already HTML
        only has its markdown emphasis converted.
    """
    value = (text or "").strip()
    if not value:
        return ""
    if looks_like_html(value):
        return _emphasis(value)

    blocks: list[str] = []
    paragraph: list[str] = []
    bullets: list[str] = []

    def flush_paragraph() -> None:
        if paragraph:
            blocks.append("<p>" + "<br />".join(_inline(line) for line in paragraph) + "</p>")
            paragraph.clear()

    def flush_bullets() -> None:
        if bullets:
            blocks.append("<ul>" + "".join(f"<li>{_inline(item)}</li>" for item in bullets) + "</ul>")
            bullets.clear()

    for raw_line in value.splitlines():
        line = raw_line.strip()
        if not line:
            flush_paragraph()
            flush_bullets()
            continue
        bullet = _BULLET.match(line)
        if bullet:
            flush_paragraph()
            bullets.append(bullet.group(1).strip())
            continue
        flush_bullets()
        paragraph.append(line)

    flush_paragraph()
    flush_bullets()
    return "".join(blocks)


# =============================================================================
# Host -> Canonical
# =============================================================================


def _glyph_token(match: re.Match[str]) -> str:
    glyph = match.group(1).strip().lower()
    token = _TOKEN_FOR_GLYPH.get(glyph)
    return f"[{token}]" if token else glyph


def _compact(text: str) -> str:
    lines: list[str] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if line:
            lines.append(line)
        elif lines and lines[-1]:
            lines.append("")
    while lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines)


def html_to_text(value: object) -> str:
    """Convert host HTML back into canonical plain text.

    HTML entities are decoded first, so entity-escaped markup is treated as
    markup. Emphasis, code and glyph spans then become their markdown tokens
    again, list items become ``• `` lines and every other tag is dropped. A
    bare ``<`` that does not open a tag is kept as text. Runs of blank
    lines collapse to a single paragraph break.

    Args:
        value: Host HTML. Non-string input yields an empty string.

    Returns:
        The reconstructed plain text.
    """
    if not isinstance(value, str) or not value.strip():
        return ""

    text = html.unescape(value).replace("\u00a0", " ")
    text = _GLYPH_SPAN.sub(_glyph_token, text)
    text = _STRONG_TAG.sub(r"**\2**", text)
    text = _EM_TAG.sub(r"*\2*", text)
    text = _CODE_TAG.sub(r"`\1`", text)
    text = _BR_TAG.sub("\n", text)
    text = _LI_OPEN.sub("\n• ", text)
    text = _LI_CLOSE.sub("", text)
    text = _BLOCK_TAG.sub("\n\n", text)
    text = _ANY_TAG.sub("", text)
    return _compact(text)


def normalize_whitespace(text: str | None) -> str:
    """Collapse all whitespace runs to single spaces; used to compare text."""
    return " ".join((text or "").split())


__all__ = [
    "GLYPHS",
    "looks_like_html",
    "to_rich_text",
    "html_to_text",
    "normalize_whitespace",
]
