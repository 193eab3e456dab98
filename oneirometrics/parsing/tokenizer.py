"""
Callout tokenizer for OneiroMetrics.

This module performs the purely lexical pass over a note: every line is
classified as a callout opener, a metrics line, plain text or a blank line,
and tagged with its block-quote depth. Nothing here is fatal; lines that do
not fit any grammar degrade to plain text.
"""

import re
from typing import Iterable, List, Optional, Tuple

from ..models import Token, TokenKind


# Leading block-quote markers, allowing spaces or tabs before and between them
_QUOTE_PREFIX_RE = re.compile(r"^[ \t]*((?:>[ \t]*)+)")

# [!type], [!type|meta], optional fold marker, optional title
_CALLOUT_OPEN_RE = re.compile(
    r"^\[!(?P<type>\w[\w-]*)(?:\|(?P<meta>[^\]]*))?\](?P<fold>[+-])?(?P<title>.*)$"
)

# Obsidian block reference at the end of a line: "... ^abc123"
_BLOCK_ID_RE = re.compile(r"(?:^|\s)\^(?P<id>[A-Za-z0-9][A-Za-z0-9-]*)\s*$")

TAB_WIDTH = 4


def normalise_text(text: str) -> str:
    """Normalise line endings, drop NUL bytes and expand tabs."""
    if not text:
        return ""
    cleaned = text.replace("\x00", "").replace("\r\n", "\n").replace("\r", "\n")
    return "\n".join(line.expandtabs(TAB_WIDTH) for line in cleaned.split("\n"))


def split_quote_prefix(line: str) -> Tuple[int, str]:
    """
    Split a line into its block-quote depth and the remaining text.

    Returns:
        Tuple of (number of '>' markers, text after the markers)
    """
    match = _QUOTE_PREFIX_RE.match(line)
    if not match:
        return 0, line
    return match.group(1).count(">"), line[match.end():]


def split_block_id(text: str) -> Tuple[str, Optional[str]]:
    """Remove a trailing ^block-id from text and return it separately."""
    match = _BLOCK_ID_RE.search(text)
    if not match:
        return text, None
    return text[:match.start()].rstrip(), match.group("id")


def looks_like_metrics(text: str) -> bool:
    """True when the text holds at least one 'Name: value' pair."""
    for piece in text.split(","):
        name, sep, _ = piece.partition(":")
        if sep and name.strip():
            return True
    return False


class CalloutTokenizer:
    """
    Classifies note lines into tokens.

    The tokenizer keeps a small stack of open callouts only to know which
    callout encloses a line, so that Name: value lines are recognised as
    metrics solely inside a configured metrics callout.
    """

    def __init__(self, vocabulary: Optional[Iterable[str]] = None,
                 metrics_callouts: Optional[Iterable[str]] = None):
        """
        Initialize the tokenizer.

        Args:
            vocabulary: Recognised callout types. None recognises every type.
            metrics_callouts: Callout types whose bodies hold metrics
        """
        self.vocabulary = (
            frozenset(name.lower() for name in vocabulary)
            if vocabulary is not None else None
        )
        self.metrics_callouts = frozenset(
            name.lower() for name in (metrics_callouts or [])
        )

    def tokenize(self, text: str) -> List[Token]:
        """
        Tokenize a whole note.

        Args:
            text: Raw note text

        Returns:
            One token per line, in order
        """
        tokens: List[Token] = []
        open_callouts: List[Tuple[int, str]] = []

        normalised = normalise_text(text)
        if not normalised:
            return tokens

        for index, line in enumerate(normalised.split("\n"), start=1):
            depth, body = split_quote_prefix(line)

            while open_callouts and open_callouts[-1][0] > depth:
                open_callouts.pop()

            token = self._classify(line, depth, body, index, open_callouts)
            if token.kind == TokenKind.BLOCK_OPEN:
                open_callouts.append((depth, token.callout_type))
            tokens.append(token)

        return tokens

    def _classify(self, line: str, depth: int, body: str, line_number: int,
                  open_callouts: List[Tuple[int, str]]) -> Token:
        stripped = body.strip()

        if not stripped:
            return Token(kind=TokenKind.BLANK_LINE, depth=depth, text="",
                         raw_text=line, line_number=line_number)

        if depth > 0:
            match = _CALLOUT_OPEN_RE.match(stripped)
            if match:
                callout_type = match.group("type").lower()
                title, block_id = split_block_id(match.group("title").strip())
                meta = match.group("meta")
                return Token(
                    kind=TokenKind.BLOCK_OPEN,
                    depth=depth,
                    callout_type=callout_type,
                    callout_title=title,
                    callout_meta=meta.strip() if meta is not None else None,
                    block_id=block_id,
                    recognized=self._is_recognized(callout_type),
                    text=stripped,
                    raw_text=line,
                    line_number=line_number,
                )

        enclosing = open_callouts[-1][1] if open_callouts else None
        if enclosing in self.metrics_callouts and looks_like_metrics(stripped):
            return Token(kind=TokenKind.METRICS_LINE, depth=depth, text=stripped,
                         raw_text=line, line_number=line_number)

        return Token(kind=TokenKind.PLAIN_TEXT, depth=depth, text=stripped,
                     raw_text=line, line_number=line_number)

    def _is_recognized(self, callout_type: str) -> bool:
        if self.vocabulary is None:
            return True
        return callout_type in self.vocabulary
