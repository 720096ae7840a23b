"""Typed loader and search store for the ActuaryUtilities.jl documentation search index."""

from documenter_search_index.models import Category, IndexEntry, SearchResult
from documenter_search_index.parser import IndexParser, MalformedIndexError, load

__all__ = ["Category", "IndexEntry", "IndexParser", "MalformedIndexError", "SearchResult", "load"]
