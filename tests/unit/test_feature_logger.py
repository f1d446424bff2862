"""Tests for the decision logging helpers."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from mediabundle.ingest.feature_logger import log_asset_decision, log_bundle_configuration, log_error_policy
from mediabundle.ingest.resolver import SearchRootSet
from mediabundle.model.bundle_options import BundleOptions

LOGGER = "mediabundle.ingest.feature_logger"


class TestLogBundleConfiguration:
    def test_without_relocation(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        roots = SearchRootSet.from_paths([tmp_path])

        with caplog.at_level(logging.INFO, logger=LOGGER):
            log_bundle_configuration(BundleOptions(max_workers=2), roots)

        assert "Bundle configuration:" in caplog.text
        assert f"Search root 1: {tmp_path}" in caplog.text
        assert "Workers: 2" in caplog.text
        assert "Video relocation: disabled" in caplog.text
        assert "Deadline" not in caplog.text

    def test_with_relocation_and_deadline(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        roots = SearchRootSet.from_paths([tmp_path])
        options = BundleOptions(
            owner_id="book-1", storage_root=tmp_path / "s", max_embed_bytes=None, deadline_seconds=3
        )

        with caplog.at_level(logging.INFO, logger=LOGGER):
            log_bundle_configuration(options, roots)

        assert "Max embed size: unlimited" in caplog.text
        assert "book-1/media -> /uploads" in caplog.text
        assert "Deadline: 3.0s" in caplog.text


class TestDecisionLogging:
    def test_log_asset_decision(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger=LOGGER):
            log_asset_decision("a.png", "embedded", {"bytes": 10, "mime": "image/png"})
            log_asset_decision("b.png", "skipped")

        assert "a.png: embedded (bytes=10, mime=image/png)" in caplog.text
        assert "b.png: skipped" in caplog.text

    def test_log_error_policy_is_a_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger=LOGGER):
            log_error_policy("relocate", "relocation-disabled", "leave-unchanged", "clip.mp4")
            log_error_policy("bundle", "deadline-exceeded", "keep-partial")

        assert [r.levelno for r in caplog.records] == [logging.WARNING, logging.WARNING]
        assert "relocate error policy: relocation-disabled -> leave-unchanged (clip.mp4)" in caplog.text
        assert "bundle error policy: deadline-exceeded -> keep-partial" in caplog.text
