"""
Callout data models for OneiroMetrics.

This module defines the lexical tokens produced from raw note text and the
tree of nested callout blocks assembled from them.
"""

from enum import Enum
from typing import List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field


UNTYPED_CALLOUT = "untyped"


class TokenKind(str, Enum):
    """Classification of a single note line."""

    BLOCK_OPEN = "BlockOpen"
    METRICS_LINE = "MetricsLine"
    PLAIN_TEXT = "PlainText"
    BLANK_LINE = "BlankLine"


class Token(BaseModel):
    """
    One classified line of note text.

    Tokens are created once per line by the tokenizer and discarded after the
    structure tree has been built.
    """

    model_config = ConfigDict(frozen=True)

    kind: TokenKind = Field(
        ...,
        description="How the line was classified"
    )

    depth: int = Field(
        0,
        ge=0,
        description="Number of block-quote markers at the start of the line"
    )

    callout_type: Optional[str] = Field(
        None,
        description="Lower-cased callout type for BlockOpen tokens"
    )

    callout_title: Optional[str] = Field(
        None,
        description="Title text following the callout marker (may be empty)"
    )

    callout_meta: Optional[str] = Field(
        None,
        description="Metadata after a pipe in the marker, e.g. '20250513' in [!journal-entry|20250513]"
    )

    block_id: Optional[str] = Field(
        None,
        description="Obsidian block identifier (^id) found on a callout-open line"
    )

    recognized: bool = Field(
        True,
        description="Whether the callout type belongs to the configured vocabulary"
    )

    text: str = Field(
        "",
        description="The line with its block-quote markers removed"
    )

    raw_text: str = Field(
        ...,
        description="The original line as it appeared in the note"
    )

    line_number: int = Field(
        ...,
        ge=1,
        description="1-based line number within the note"
    )


class CalloutNode(BaseModel):
    """
    A node in the structure tree.

    Parents own their children; there are no back-references. ``depth`` is the
    logical nesting level (top-level nodes have depth 1) and every direct child
    sits exactly one level below its parent, even when the source text jumped
    several quote levels at once.
    """

    callout_type: str = Field(
        ...,
        description="Lower-cased callout type, or 'untyped' for orphan content"
    )

    title: Optional[str] = Field(
        None,
        description="Title text from the callout-open line"
    )

    depth: int = Field(
        1,
        ge=1,
        description="Logical nesting level"
    )

    quote_depth: int = Field(
        0,
        ge=0,
        description="Number of block-quote markers on the callout-open line"
    )

    recognized: bool = Field(
        True,
        description="Whether the callout type belongs to the configured vocabulary"
    )

    callout_meta: Optional[str] = Field(
        None,
        description="Metadata after a pipe in the callout marker"
    )

    block_id: Optional[str] = Field(
        None,
        description="Obsidian block identifier found on the callout-open line"
    )

    children: List['CalloutNode'] = Field(
        default_factory=list,
        description="Directly nested callouts in document order"
    )

    content_lines: List[str] = Field(
        default_factory=list,
        description="Plain and blank lines belonging to this callout"
    )

    metrics_raw: Optional[str] = Field(
        None,
        description="Newline-joined metrics lines found inside this callout"
    )

    metrics_line_numbers: List[int] = Field(
        default_factory=list,
        description="Line numbers of the lines joined into metrics_raw"
    )

    source_line_range: Tuple[int, int] = Field(
        (0, 0),
        description="First and last line numbers covered by this callout"
    )

    @property
    def is_untyped(self) -> bool:
        return self.callout_type == UNTYPED_CALLOUT

    @property
    def start_line(self) -> int:
        return self.source_line_range[0]

    def walk(self):
        """Yield this node and all descendants in document order."""
        # Explicit stack: a continuous quote can nest thousands of callouts
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


# Enable forward references for self-referencing model
CalloutNode.model_rebuild()
