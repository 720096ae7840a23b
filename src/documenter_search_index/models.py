"""Data models for the Documenter search index."""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, StrictStr


class Category(str, Enum):
    """Kind of documentation unit an index entry describes."""

    SECTION = "section"
    PAGE = "page"
    METHOD = "method"
    FUNCTION = "function"


class IndexEntry(BaseModel):
    """Represents one record of the search index.

    Unknown fields written by newer Documenter versions are ignored.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    location: StrictStr
    page: StrictStr
    title: StrictStr
    text: StrictStr
    category: Category


class SearchIndexPayload(BaseModel):
    """Decoded ``search_index.js`` structure."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    docs: list[IndexEntry]


@dataclass
class SearchResult:
    """Represents a search result."""

    location: str
    page: str
    title: str
    category: Category
    snippet: str
    score: float
