"""
Markdown sanitizer for OneiroMetrics.

Reduces callout content to readable plain text before word counting. Only the
inline syntax that appears in journal notes is handled; this is not a
markdown renderer.
"""

import re
from typing import Iterable, List, Optional

from ..models import ContentIsolation


_FENCED_CODE_RE = re.compile(r"^(```|~~~).*?^\1[^\n]*$", re.MULTILINE | re.DOTALL)
_INLINE_CODE_RE = re.compile(r"`([^`\n]*)`")
_COMMENT_RE = re.compile(r"%%.*?%%|<!--.*?-->", re.DOTALL)
_BLOCK_ID_RE = re.compile(r"(?:^|\s)\^[A-Za-z0-9][A-Za-z0-9-]*\s*$", re.MULTILINE)

_EMBED_RE = re.compile(r"!\[\[([^\]|]*)(?:\|([^\]]*))?\]\]")
_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\([^)]*\)")
_WIKILINK_RE = re.compile(r"\[\[([^\]|]*)(?:\|([^\]]*))?\]\]")
_LINK_RE = re.compile(r"\[([^\]]*)\]\([^)]*\)")

_HEADING_RE = re.compile(r"^#{1,6}\s+", re.MULTILINE)
_QUOTE_MARKER_RE = re.compile(r"^[ \t]*(?:>[ \t]*)+", re.MULTILINE)

_BOLD_RE = re.compile(r"(\*\*|__)(?=\S)(.+?)(?<=\S)\1")
_ITALIC_STAR_RE = re.compile(r"\*(?=\S)(.+?)(?<=\S)\*")
_ITALIC_UNDERSCORE_RE = re.compile(r"(?<!\w)_(?=\S)(.+?)(?<=\S)_(?!\w)")
_STRIKE_RE = re.compile(r"~~(.+?)~~")
_HIGHLIGHT_RE = re.compile(r"==(.+?)==")

_SPACES_RE = re.compile(r"[ \t]+")


def _link_text(match) -> str:
    alias = match.group(2)
    return alias if alias else match.group(1)


class ContentSanitizer:
    """
    Strips markdown syntax from entry content according to ContentIsolation.
    """

    def __init__(self, isolation: Optional[ContentIsolation] = None):
        self.isolation = isolation or ContentIsolation()
        self._custom_patterns = [
            re.compile(pattern, re.MULTILINE)
            for pattern in self.isolation.custom_ignore_patterns
        ]

    def sanitize(self, lines: Iterable[Optional[str]]) -> str:
        """
        Sanitize content lines.

        Args:
            lines: Raw content lines in document order; None entries are skipped

        Returns:
            Plain text with one line per non-empty source line
        """
        text = "\n".join(line for line in lines if line is not None)
        if not text.strip():
            return ""

        isolation = self.isolation

        if isolation.ignore_code_blocks:
            text = _FENCED_CODE_RE.sub("", text)
        if isolation.ignore_comments:
            text = _COMMENT_RE.sub("", text)
        for pattern in self._custom_patterns:
            text = pattern.sub("", text)

        text = _QUOTE_MARKER_RE.sub("", text)
        text = _BLOCK_ID_RE.sub("", text)

        if isolation.ignore_images:
            text = _EMBED_RE.sub("", text)
            text = _IMAGE_RE.sub("", text)
        else:
            text = _EMBED_RE.sub(_link_text, text)
            text = _IMAGE_RE.sub(r"\1", text)

        if isolation.ignore_links:
            text = _WIKILINK_RE.sub("", text)
            text = _LINK_RE.sub("", text)
        else:
            text = _WIKILINK_RE.sub(_link_text, text)
            text = _LINK_RE.sub(r"\1", text)

        if isolation.ignore_headings:
            text = "\n".join(
                line for line in text.split("\n") if not _HEADING_RE.match(line)
            )
        else:
            text = _HEADING_RE.sub("", text)

        if isolation.ignore_formatting:
            text = self.strip_formatting(text)

        return self._collapse(text)

    @staticmethod
    def strip_formatting(text: str) -> str:
        """Remove emphasis, strikethrough, highlight and inline code markers."""
        text = _INLINE_CODE_RE.sub(r"\1", text)
        text = _BOLD_RE.sub(r"\2", text)
        text = _ITALIC_STAR_RE.sub(r"\1", text)
        text = _ITALIC_UNDERSCORE_RE.sub(r"\1", text)
        text = _STRIKE_RE.sub(r"\1", text)
        text = _HIGHLIGHT_RE.sub(r"\1", text)
        return text

    @staticmethod
    def _collapse(text: str) -> str:
        lines: List[str] = []
        for line in text.split("\n"):
            line = _SPACES_RE.sub(" ", line).strip()
            if line:
                lines.append(line)
        return "\n".join(lines)
