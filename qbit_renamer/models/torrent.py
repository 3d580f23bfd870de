"""
Pydantic models for rename suggestions and batch rename outcomes.

Torrent records themselves stay plain dictionaries: they are passed through
from the daemon with only the optional `properties` and `files` keys added.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class MediaType(str, Enum):
    """Kinds of media FileBot can match against."""

    TV = "tv"
    MOVIE = "movie"


class RenameSuggestion(BaseModel):
    """A proposed (old path, new path) mapping produced by FileBot in test mode."""

    old_path: str = Field(..., alias="oldPath")
    new_path: str = Field(..., alias="newPath")

    class Config:
        populate_by_name = True


class RenameResult(BaseModel):
    """Outcome of applying a single rename pair."""

    success: bool
    old_path: str = Field(..., alias="oldPath")
    new_path: str = Field(..., alias="newPath")
    error: Optional[str] = None

    class Config:
        populate_by_name = True


class BatchResult(BaseModel):
    """
    Aggregated outcome of a rename batch.

    `success` is the business-level flag: it is true only when every entry
    was applied. A batch with failures is still a normal, reportable result.
    """

    success: bool
    message: str
    results: list[RenameResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return len(self.results) - self.succeeded

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class SuggestionReport(BaseModel):
    """Parsed suggestions together with the raw FileBot output."""

    suggestions: list[RenameSuggestion] = Field(default_factory=list)
    output: str = ""

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
