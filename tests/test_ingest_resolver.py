from __future__ import annotations

import os
from pathlib import Path

import pytest

from mediabundle.ingest.error_handling import InvalidSearchRootsError
from mediabundle.ingest.resolver import SearchRootSet, iter_candidate_paths, resolve_reference
from mediabundle.types import MediaReference, SyntaxKind


def _ref(path: str) -> MediaReference:
    return MediaReference(raw_match_text=f'src="{path}"', referenced_path=path, syntax_kind=SyntaxKind.IMG_SRC)


def test_search_root_set_validation(tmp_path: Path) -> None:
    with pytest.raises(InvalidSearchRootsError):
        SearchRootSet.from_paths([])
    with pytest.raises(InvalidSearchRootsError):
        SearchRootSet.from_paths(None)
    with pytest.raises(InvalidSearchRootsError):
        SearchRootSet.from_paths(str(tmp_path))  # a bare string is not a sequence of roots
    with pytest.raises(InvalidSearchRootsError):
        SearchRootSet.from_paths(["relative/dir"])
    with pytest.raises(InvalidSearchRootsError):
        SearchRootSet.from_paths([tmp_path / "missing"])
    # also a ValueError for callers that only catch the builtin
    with pytest.raises(ValueError):
        SearchRootSet.from_paths([])

    roots = SearchRootSet.from_paths([tmp_path, tmp_path])
    assert roots.roots == (tmp_path,)


def test_candidate_order_is_root_then_parent_then_subdirectories(tmp_path: Path) -> None:
    a = tmp_path / "a"
    b = tmp_path / "b"
    (a / "zeta").mkdir(parents=True)
    (a / "alpha").mkdir()
    b.mkdir()
    roots = SearchRootSet.from_paths([a, b])

    candidates = list(iter_candidate_paths("img/x.png", roots))
    assert candidates == [
        a / "img/x.png",
        b / "img/x.png",
        tmp_path / "img/x.png",  # shared parent probed once
        a / "alpha" / "img/x.png",
        a / "zeta" / "img/x.png",
    ]


def test_resolve_direct_hit_and_first_root_wins(tmp_path: Path) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"
    first.mkdir()
    second.mkdir()
    (first / "cover.png").write_bytes(b"first")
    (second / "cover.png").write_bytes(b"second!")

    asset = resolve_reference(_ref("cover.png"), SearchRootSet.from_paths([first, second]))
    assert asset is not None
    assert asset.absolute_path == (first / "cover.png").resolve()
    assert asset.size_bytes == 5
    assert asset.declared_extension == ".png"
    assert asset.search_root == first


def test_resolve_in_nested_archive_folder(extract_dir: Path) -> None:
    nested = extract_dir / "My Report"
    (nested / "images").mkdir(parents=True)
    (nested / "images" / "fig 1.png").write_bytes(b"data")

    asset = resolve_reference(_ref("images/fig%201.png"), SearchRootSet.from_paths([extract_dir]))
    assert asset is not None
    assert asset.absolute_path == (nested / "images" / "fig 1.png").resolve()


def test_resolve_via_parent_only_when_contained(tmp_path: Path) -> None:
    parent = tmp_path / "reports"
    child = parent / "book"
    child.mkdir(parents=True)
    (parent / "logo.png").write_bytes(b"logo")

    # parent is not a configured root: the file exists but is outside the set
    assert resolve_reference(_ref("logo.png"), SearchRootSet.from_paths([child])) is None

    # once the parent is itself a configured root the same file resolves
    asset = resolve_reference(_ref("logo.png"), SearchRootSet.from_paths([child, parent]))
    assert asset is not None
    assert asset.search_root == parent


def test_path_traversal_is_rejected_even_if_file_exists(tmp_path: Path) -> None:
    root = tmp_path / "root" / "deep"
    root.mkdir(parents=True)
    secret = tmp_path / "secret.png"
    secret.write_bytes(b"secret")

    roots = SearchRootSet.from_paths([root])
    assert resolve_reference(_ref("../../secret.png"), roots) is None
    assert resolve_reference(_ref(str(secret)), roots) is None


@pytest.mark.skipif(os.name == "nt", reason="Symlinks need privileges on Windows")
def test_symlink_escape_is_rejected(tmp_path: Path) -> None:
    root = tmp_path / "root"
    root.mkdir()
    outside = tmp_path / "outside.png"
    outside.write_bytes(b"outside")
    (root / "innocent.png").symlink_to(outside)

    assert resolve_reference(_ref("innocent.png"), SearchRootSet.from_paths([root])) is None


@pytest.mark.skipif(os.name == "nt", reason="Symlinks need privileges on Windows")
def test_symlink_inside_root_is_allowed(tmp_path: Path) -> None:
    root = tmp_path / "root"
    (root / "real").mkdir(parents=True)
    (root / "real" / "pic.png").write_bytes(b"pic")
    (root / "alias.png").symlink_to(root / "real" / "pic.png")

    asset = resolve_reference(_ref("alias.png"), SearchRootSet.from_paths([root]))
    assert asset is not None
    assert asset.absolute_path == (root / "real" / "pic.png").resolve()


def test_directories_are_not_resolved_as_files(extract_dir: Path) -> None:
    (extract_dir / "folder.png").mkdir()
    assert resolve_reference(_ref("folder.png"), SearchRootSet.from_paths([extract_dir])) is None


def test_missing_reference_logs_distinction(extract_dir: Path, caplog: pytest.LogCaptureFixture) -> None:
    import logging

    with caplog.at_level(logging.DEBUG, logger="mediabundle.ingest.resolver"):
        assert resolve_reference(_ref("nope.png"), SearchRootSet.from_paths([extract_dir])) is None
    assert "not found" in caplog.text
