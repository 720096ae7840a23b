"""Tests for search index indexer."""

import json
import shutil
import subprocess
from pathlib import Path
from typing import Any
from unittest.mock import Mock, patch

import pytest

from documenter_search_index.database import EntryDatabase
from documenter_search_index.indexer import SearchIndexIndexer
from documenter_search_index.parser import MalformedIndexError

EMBEDDED_INDEX = Path(__file__).resolve().parent.parent / "src" / "documenter_search_index" / "data" / "search_index.js"


@pytest.fixture
def db(tmp_path: Path) -> EntryDatabase:
    """Create a temporary database.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        EntryDatabase instance.
    """
    db_path = tmp_path / "test.db"
    return EntryDatabase(db_path)


@pytest.fixture
def indexer(db: EntryDatabase) -> SearchIndexIndexer:
    """Create an indexer instance.

    Args:
        db: EntryDatabase fixture.

    Returns:
        SearchIndexIndexer instance.
    """
    return SearchIndexIndexer(db)


def write_index(path: Path, titles: list[str]) -> Path:
    docs = [
        {"location": f"#{title}", "page": "Home", "title": title, "text": f"{title} docs", "category": "function"}
        for title in titles
    ]
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"var documenterSearchIndex = {json.dumps({'docs': docs})}\n", encoding="utf-8")
    return path


def test_index_embedded(indexer: SearchIndexIndexer) -> None:
    """Test indexing the packaged search index."""
    count = indexer.index_embedded()

    assert count == 15
    assert indexer.database.get_entry_count() == 15


def test_index_from_file(indexer: SearchIndexIndexer, tmp_path: Path) -> None:
    """Test indexing a search_index.js file directly."""
    index_file = write_index(tmp_path / "search_index.js", ["pv", "irr"])

    count = indexer.index_from_path(index_file)

    assert count == 2
    assert [entry.title for entry in indexer.database.get_all_entries()] == ["pv", "irr"]


def test_index_from_build_directory(indexer: SearchIndexIndexer, tmp_path: Path) -> None:
    """Test indexing a Documenter build directory."""
    build_dir = tmp_path / "build"
    write_index(build_dir / "search_index.js", ["duration"])

    assert indexer.index_from_path(build_dir) == 1


def test_index_from_version_directory(indexer: SearchIndexIndexer, tmp_path: Path) -> None:
    """Test selecting a version within a gh-pages checkout."""
    site_dir = tmp_path / "site"
    write_index(site_dir / "v0.3.0" / "search_index.js", ["pv"])
    (site_dir / "v0.4.0").mkdir()
    shutil.copy(EMBEDDED_INDEX, site_dir / "v0.4.0" / "search_index.js")

    assert indexer.index_from_path(site_dir, version="v0.4.0") == 15
    assert indexer.index_from_path(site_dir, version="v0.3.0") == 1


def test_index_from_path_nonexistent(indexer: SearchIndexIndexer, tmp_path: Path) -> None:
    """Test indexing from a nonexistent path raises error."""
    with pytest.raises(ValueError, match="Documentation path does not exist"):
        indexer.index_from_path(tmp_path / "nonexistent")


def test_index_from_directory_without_index(indexer: SearchIndexIndexer, tmp_path: Path) -> None:
    """Test that a directory with no search_index.js raises error."""
    empty_dir = tmp_path / "build"
    empty_dir.mkdir()

    with pytest.raises(ValueError, match="No search_index.js found"):
        indexer.index_from_path(empty_dir)


def test_malformed_index_leaves_database_untouched(indexer: SearchIndexIndexer, tmp_path: Path) -> None:
    """Test that a malformed index is rejected before anything is written."""
    indexer.index_embedded()
    bad_file = tmp_path / "search_index.js"
    bad_file.write_text('var documenterSearchIndex = {"docs": [{"title": "orphan"}]}\n', encoding="utf-8")

    with pytest.raises(MalformedIndexError):
        indexer.index_from_path(bad_file)

    assert indexer.database.get_entry_count() == 15


def test_reindex_replaces_entries(indexer: SearchIndexIndexer, tmp_path: Path) -> None:
    """Test that indexing again replaces the previous index wholesale."""
    indexer.index_embedded()
    index_file = write_index(tmp_path / "search_index.js", ["pv"])

    indexer.index_from_path(index_file)

    assert indexer.database.get_entry_count() == 1


def fake_clone(version: str, titles: list[str]) -> Any:
    def run(cmd: list[str], **kwargs: Any) -> Mock:
        if "clone" in cmd:
            write_index(Path(cmd[-1]) / version / "search_index.js", titles)
        return Mock(returncode=0)

    return run


def test_index_from_git(indexer: SearchIndexIndexer) -> None:
    """Test indexing from a cloned gh-pages branch."""
    with patch("subprocess.run", side_effect=fake_clone("dev", ["pv", "irr", "duration"])) as mock_run:
        count = indexer.index_from_git()

    assert count == 3
    assert mock_run.call_count == 2
    assert indexer.database.get_entry_count() == 3


def test_rebuild_index_replaces_existing(indexer: SearchIndexIndexer) -> None:
    """Test that rebuild_index swaps in the freshly cloned index."""
    indexer.index_embedded()
    assert indexer.database.get_entry_count() == 15

    with patch("subprocess.run", side_effect=fake_clone("v0.4.0", ["pv"])):
        count = indexer.rebuild_index(version="v0.4.0")

    assert count == 1
    assert [entry.title for entry in indexer.database.get_all_entries()] == ["pv"]


def test_rebuild_index_keeps_entries_when_clone_fails(indexer: SearchIndexIndexer) -> None:
    """Test that a failed clone leaves the stored index in place."""
    indexer.index_embedded()

    with (
        patch("subprocess.run", side_effect=subprocess.CalledProcessError(128, ["git", "clone"])),
        pytest.raises(subprocess.CalledProcessError),
    ):
        indexer.rebuild_index()

    assert indexer.database.get_entry_count() == 15


def test_rebuild_index_keeps_entries_when_index_is_malformed(indexer: SearchIndexIndexer) -> None:
    """Test that a malformed remote index leaves the stored index in place."""
    indexer.index_embedded()

    def run(cmd: list[str], **kwargs: Any) -> Mock:
        if "clone" in cmd:
            index_file = Path(cmd[-1]) / "dev" / "search_index.js"
            index_file.parent.mkdir(parents=True)
            index_file.write_text('{"docs": [{"title": "x"}]}', encoding="utf-8")
        return Mock(returncode=0)

    with patch("subprocess.run", side_effect=run), pytest.raises(MalformedIndexError):
        indexer.rebuild_index()

    assert indexer.database.get_entry_count() == 15
    assert indexer.database.get_all_entries()[0].title == "ActuaryUtilities.jl"


@patch("subprocess.run")
def test_clone_repository(mock_run: Mock, indexer: SearchIndexIndexer, tmp_path: Path) -> None:
    """Test that clone_repository runs correct git commands."""
    target_path = tmp_path / "ActuaryUtilities.jl"

    indexer._clone_repository(target_path, "gh-pages", "v0.4.0", shallow=True)

    # Verify git clone was called
    assert mock_run.call_count == 2
    clone_call = mock_run.call_args_list[0]
    assert "git" in clone_call[0][0]
    assert "clone" in clone_call[0][0]
    assert "--branch" in clone_call[0][0]
    assert "gh-pages" in clone_call[0][0]
    assert SearchIndexIndexer.DOCUMENTER_REPO in clone_call[0][0]

    # Verify sparse checkout was configured
    sparse_call = mock_run.call_args_list[1]
    assert "sparse-checkout" in sparse_call[0][0]
    assert "v0.4.0" in sparse_call[0][0]


@patch("subprocess.run")
def test_clone_repository_without_sparse(mock_run: Mock, indexer: SearchIndexIndexer, tmp_path: Path) -> None:
    """Test clone without sparse checkout."""
    target_path = tmp_path / "ActuaryUtilities.jl"

    indexer._clone_repository(target_path, "gh-pages", "dev", shallow=False)

    # Should only have one call (git clone, no sparse checkout)
    assert mock_run.call_count == 1
    assert "clone" in mock_run.call_args[0][0]
    assert "--sparse" not in mock_run.call_args[0][0]
