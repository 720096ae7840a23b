"""Parser for Documenter ``search_index.js`` files."""

import json
import logging
import re
from importlib import resources
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from pydantic_core import ErrorDetails

from documenter_search_index.models import IndexEntry, SearchIndexPayload

logger = logging.getLogger(__name__)


class MalformedIndexError(ValueError):
    """Raised when a search index payload does not have the expected shape."""


class IndexParser:
    """Parses and validates Documenter search index payloads."""

    EMBEDDED_PACKAGE = "documenter_search_index"
    EMBEDDED_RESOURCE = "data/search_index.js"

    # Documenter writes `var documenterSearchIndex = {...}`
    _ASSIGNMENT_PREFIX = re.compile(r"^\s*(?:var|let|const)\s+[A-Za-z_$][\w$]*\s*=\s*")

    def load(self, payload: Any) -> tuple[IndexEntry, ...]:
        """Validate a decoded payload and build the entry sequence.

        Args:
            payload: Decoded index structure with a ``docs`` list of records.

        Returns:
            Tuple of IndexEntry instances in payload order.

        Raises:
            MalformedIndexError: If the payload does not match the record shape.
        """
        try:
            index = SearchIndexPayload.model_validate(payload)
        except ValidationError as exc:
            raise MalformedIndexError(self._describe_error(exc.errors()[0])) from exc
        return tuple(index.docs)

    def parse_source(self, source: str) -> tuple[IndexEntry, ...]:
        """Parse the text of a ``search_index.js`` file.

        The JavaScript assignment wrapper is optional, so a bare JSON
        document is accepted as well.

        Args:
            source: File contents.

        Returns:
            Tuple of IndexEntry instances.

        Raises:
            MalformedIndexError: If the source is not valid JSON or has the wrong shape.
        """
        body = self._ASSIGNMENT_PREFIX.sub("", source, count=1).strip().rstrip(";")
        try:
            payload = json.loads(body)
        except json.JSONDecodeError as exc:
            msg = f"search index is not valid JSON: {exc}"
            raise MalformedIndexError(msg) from exc
        return self.load(payload)

    def parse_file(self, file_path: Path) -> tuple[IndexEntry, ...]:
        """Read and parse a ``search_index.js`` file.

        Args:
            file_path: Path to the index file.

        Returns:
            Tuple of IndexEntry instances.

        Raises:
            MalformedIndexError: If the file is not UTF-8 or is malformed.
        """
        try:
            source = file_path.read_text(encoding="utf-8-sig")
        except UnicodeDecodeError as exc:
            msg = f"search index is not valid UTF-8: {file_path}"
            raise MalformedIndexError(msg) from exc
        entries = self.parse_source(source)
        logger.debug("Parsed %d entries from %s", len(entries), file_path)
        return entries

    def parse_embedded(self) -> tuple[IndexEntry, ...]:
        """Parse the search index shipped with this package."""
        resource = resources.files(self.EMBEDDED_PACKAGE).joinpath(self.EMBEDDED_RESOURCE)
        return self.parse_source(resource.read_text(encoding="utf-8-sig"))

    @staticmethod
    def _describe_error(error: ErrorDetails) -> str:
        """Turn the first validation error into a message naming the record.

        Args:
            error: Error details from ``ValidationError.errors()``.

        Returns:
            Message such as ``docs[4]: missing required field 'location'``.
        """
        loc = error["loc"]
        kind = error["type"]
        got = type(error["input"]).__name__

        if not loc:
            return f"index payload must be an object, got {got}"
        if len(loc) == 1:
            if kind == "missing":
                return "index payload has no 'docs' field"
            return f"'docs' must be a list, got {got}"

        prefix = f"docs[{loc[1]}]"
        if len(loc) == 2:
            return f"{prefix}: record must be an object, got {got}"

        field = loc[2]
        if kind == "missing":
            return f"{prefix}: missing required field '{field}'"
        if kind == "enum":
            return f"{prefix}: unknown category {error['input']!r}"
        return f"{prefix}: field '{field}' must be a string, got {got}"


def load(payload: Any = None) -> tuple[IndexEntry, ...]:
    """Load the document index.

    Args:
        payload: Decoded index structure. Defaults to the embedded index.

    Returns:
        Immutable ordered sequence of IndexEntry instances.

    Raises:
        MalformedIndexError: If the payload does not match the record shape.
    """
    parser = IndexParser()
    if payload is None:
        return parser.parse_embedded()
    return parser.load(payload)
