"""Indexer for ActuaryUtilities.jl search indexes built by Documenter."""

import logging
import subprocess
import tempfile
from collections.abc import Sequence
from pathlib import Path

from documenter_search_index.database import EntryDatabase
from documenter_search_index.models import IndexEntry
from documenter_search_index.parser import IndexParser

logger = logging.getLogger(__name__)


class SearchIndexIndexer:
    """Loads Documenter search indexes into an EntryDatabase."""

    DOCUMENTER_REPO = "https://github.com/JuliaActuary/ActuaryUtilities.jl.git"
    DOCS_BRANCH = "gh-pages"
    DEFAULT_VERSION = "dev"
    INDEX_FILENAME = "search_index.js"

    def __init__(self, database: EntryDatabase) -> None:
        """Initialise indexer with database instance.

        Args:
            database: EntryDatabase instance for storing entries.
        """
        self.database = database
        self.parser = IndexParser()

    def index_embedded(self) -> int:
        """Index the search index shipped with this package.

        Returns:
            Number of entries indexed.
        """
        logger.info("Indexing embedded search index")
        return self._store(self.parser.parse_embedded())

    def index_from_path(self, docs_path: Path, version: str | None = None) -> int:
        """Index a local ``search_index.js`` file or Documenter build directory.

        Args:
            docs_path: Index file, or build directory containing one.
            version: Version subdirectory to look in when ``docs_path`` is a directory.

        Returns:
            Number of entries indexed.
        """
        index_file = self._find_index_file(docs_path, version)
        logger.info("Indexing %s", index_file)
        return self._store(self.parser.parse_file(index_file))

    def index_from_git(self, branch: str = DOCS_BRANCH, version: str = DEFAULT_VERSION, shallow: bool = True) -> int:
        """Clone the documentation branch and index one version's search index.

        Args:
            branch: Git branch holding the Documenter build.
            version: Version directory within the branch.
            shallow: Whether to do a shallow sparse clone.

        Returns:
            Number of entries indexed.
        """
        with tempfile.TemporaryDirectory() as temp_dir:
            repo_path = Path(temp_dir) / "ActuaryUtilities.jl"
            self._clone_repository(repo_path, branch, version, shallow)
            return self.index_from_path(repo_path / version)

    def rebuild_index(self, branch: str = DOCS_BRANCH, version: str = DEFAULT_VERSION) -> int:
        """Rebuild the index from the documentation branch.

        The stored index is swapped only once the new one has loaded, so a
        failed clone or a malformed index leaves the old entries in place.

        Args:
            branch: Git branch to index from.
            version: Version directory within the branch.

        Returns:
            Number of entries indexed.
        """
        logger.info("Rebuilding index from %s/%s...", branch, version)
        return self.index_from_git(branch, version)

    def _clone_repository(self, target_path: Path, branch: str, version: str, shallow: bool) -> None:
        """Clone the ActuaryUtilities.jl repository.

        Args:
            target_path: Directory to clone into.
            branch: Git branch to clone.
            version: Version directory to check out when sparse.
            shallow: Whether to do a shallow clone.
        """
        cmd = ["git", "clone"]
        if shallow:
            cmd.extend(["--depth", "1", "--filter=blob:none", "--sparse"])
        cmd.extend(["--branch", branch, self.DOCUMENTER_REPO, str(target_path)])

        logger.info("Cloning ActuaryUtilities.jl %s branch...", branch)
        subprocess.run(cmd, check=True, capture_output=True)  # noqa: S603

        if shallow:
            logger.info("Setting up sparse checkout for %s...", version)
            subprocess.run(  # noqa: S603
                ["git", "-C", str(target_path), "sparse-checkout", "set", version],  # noqa: S607
                check=True,
                capture_output=True,
            )

        logger.info("Repository cloned successfully")

    def _find_index_file(self, docs_path: Path, version: str | None) -> Path:
        """Locate the search index file.

        Args:
            docs_path: Index file or build directory.
            version: Optional version subdirectory.

        Returns:
            Path to ``search_index.js``.

        Raises:
            ValueError: If the path does not exist or holds no index.
        """
        if not docs_path.exists():
            msg = f"Documentation path does not exist: {docs_path}"
            raise ValueError(msg)

        if docs_path.is_file():
            return docs_path

        candidates = [docs_path / self.INDEX_FILENAME]
        if version:
            candidates.insert(0, docs_path / version / self.INDEX_FILENAME)

        for candidate in candidates:
            if candidate.is_file():
                return candidate

        msg = f"No {self.INDEX_FILENAME} found in {docs_path}"
        raise ValueError(msg)

    def _store(self, entries: Sequence[IndexEntry]) -> int:
        count = self.database.replace_entries(entries)
        logger.info("Successfully indexed %d entries", count)
        return count
