"""
Note model for OneiroMetrics.

A note is the unit handed from an importer to the parsing pipeline.
"""

from pydantic import BaseModel, ConfigDict, Field


class Note(BaseModel):
    """Raw text of one journal note and where it came from."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(
        ...,
        description="Source identifier, usually the note path relative to the vault"
    )

    text: str = Field(
        "",
        description="Raw markdown text of the note"
    )
