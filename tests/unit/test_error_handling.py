"""Tests for the bundling error taxonomy and ErrorManager."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from mediabundle.ingest.error_handling import (
    BundleError,
    ErrorContext,
    ErrorManager,
    InvalidSearchRootsError,
    RelocationFailedError,
    UnreadableAssetError,
    UnresolvedReferenceError,
    UnsupportedAssetTypeError,
)


class TestCustomExceptions:
    """Test custom exception classes."""

    def test_unresolved_reference_error(self) -> None:
        error = UnresolvedReferenceError("img/a.png")
        assert error.reference_path == "img/a.png"
        assert str(error) == "Could not resolve reference 'img/a.png' in any search root"
        assert isinstance(error, BundleError)

    def test_unreadable_asset_error_basic(self) -> None:
        path = Path("/srv/extract/a.png")
        error = UnreadableAssetError(path)
        assert error.path == path
        assert error.cause is None
        assert str(error) == "Failed to read asset /srv/extract/a.png"

    def test_unreadable_asset_error_with_reason_and_cause(self) -> None:
        cause = PermissionError("denied")
        error = UnreadableAssetError(Path("/x/a.png"), cause=cause, reason="too big")
        assert error.cause is cause
        assert str(error) == "Failed to read asset /x/a.png (too big): denied"

    def test_relocation_failed_error(self) -> None:
        error = RelocationFailedError(Path("/a/clip.mp4"), Path("/s/clip.mp4"), cause=OSError("disk full"))
        assert error.source == Path("/a/clip.mp4")
        assert error.destination == Path("/s/clip.mp4")
        assert str(error) == "Failed to relocate /a/clip.mp4 to /s/clip.mp4: disk full"
        assert str(RelocationFailedError(Path("/a/clip.mp4"))) == "Failed to relocate /a/clip.mp4"

    def test_unsupported_asset_type_error(self) -> None:
        assert "'.pdf'" in str(UnsupportedAssetTypeError("doc.pdf", ".pdf"))
        assert "'<none>'" in str(UnsupportedAssetTypeError("README", ""))

    def test_invalid_search_roots_is_value_error(self) -> None:
        error = InvalidSearchRootsError("bad", root="rel")
        assert error.root == "rel"
        assert isinstance(error, ValueError)
        assert isinstance(error, BundleError)
        with pytest.raises(ValueError, match="bad"):
            raise error


class TestErrorContext:
    """Test the ErrorContext dataclass."""

    def test_empty_context_has_no_extra(self) -> None:
        assert ErrorContext().to_extra() == {}

    def test_to_extra_stringifies_paths(self) -> None:
        context = ErrorContext(
            source_module="bundle", reference_path="a.png", asset_path=Path("/x/a.png"), owner_id="book-1"
        )
        assert context.to_extra() == {
            "source_module": "bundle",
            "reference_path": "a.png",
            "asset_path": "/x/a.png",
            "owner_id": "book-1",
        }


class TestErrorManager:
    """Test the ErrorManager class."""

    def test_initialization_with_default_context(self) -> None:
        manager = ErrorManager()
        assert isinstance(manager.context, ErrorContext)
        assert manager.context.source_module is None

    def test_warn_basic(self, caplog: pytest.LogCaptureFixture) -> None:
        manager = ErrorManager()

        with caplog.at_level(logging.WARNING):
            manager.warn("TEST-001", "Test warning message")

        assert "TEST-001: Test warning message" in caplog.text
        assert len(caplog.records) == 1
        record = caplog.records[0]
        assert record.levelno == logging.WARNING
        assert record.event_code == "TEST-001"

    def test_warn_with_extra_and_exception(self, caplog: pytest.LogCaptureFixture) -> None:
        manager = ErrorManager(ErrorContext(source_module="bundle", reference_path="a.png"))

        with caplog.at_level(logging.WARNING):
            manager.warn("BUNDLE-002", "Image not embedded", extra={"detail": "x"}, exception=ValueError("boom"))

        record = caplog.records[0]
        assert record.event_code == "BUNDLE-002"
        assert record.source_module == "bundle"
        assert record.reference_path == "a.png"
        assert record.detail == "x"
        assert record.exception_class == "ValueError"
        assert record.exception_message == "boom"

    def test_error_and_info(self, caplog: pytest.LogCaptureFixture) -> None:
        manager = ErrorManager()

        with caplog.at_level(logging.INFO):
            manager.error("TEST-E", "bad")
            manager.info("TEST-I", "fine")

        assert [r.levelno for r in caplog.records] == [logging.ERROR, logging.INFO]
        assert [r.event_code for r in caplog.records] == ["TEST-E", "TEST-I"]

    def test_custom_logger(self, caplog: pytest.LogCaptureFixture) -> None:
        custom = logging.getLogger("mediabundle.tests.custom")
        manager = ErrorManager(log=custom)

        with caplog.at_level(logging.WARNING, logger="mediabundle.tests.custom"):
            manager.warn("TEST-C", "routed")

        assert caplog.records[0].name == "mediabundle.tests.custom"
