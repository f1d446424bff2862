"""Tests for deadline handling in the concurrent reference pipeline."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterator
from pathlib import Path

import pytest

import mediabundle.builder.bundle as bundle_mod
from mediabundle.builder.bundle import ReferenceOutcome, process_references
from mediabundle.ingest.resolver import SearchRootSet
from mediabundle.model.bundle_options import BundleOptions
from mediabundle.parser import scan_references
from mediabundle.types import SkipReason


@pytest.fixture
def release() -> Iterator[threading.Event]:
    event = threading.Event()
    yield event
    event.set()


@pytest.fixture
def late_outcomes() -> list[ReferenceOutcome]:
    return []


@pytest.fixture
def slow_reference(
    monkeypatch: pytest.MonkeyPatch, release: threading.Event, late_outcomes: list[ReferenceOutcome]
) -> None:
    real = bundle_mod.process_reference

    def slow(reference, roots, options, cancelled=None):  # type: ignore[no-untyped-def]
        if not reference.referenced_path.startswith("slow"):
            return real(reference, roots, options, cancelled)
        release.wait(5)
        outcome = real(reference, roots, options, cancelled)
        late_outcomes.append(outcome)
        return outcome

    monkeypatch.setattr(bundle_mod, "process_reference", slow)


class TestDeadline:
    def test_deadline_keeps_finished_work(
        self, extract_dir: Path, png_bytes: bytes, slow_reference: None, caplog: pytest.LogCaptureFixture
    ) -> None:
        (extract_dir / "fast.png").write_bytes(png_bytes)
        (extract_dir / "slow.png").write_bytes(png_bytes)
        html = '<img src="fast.png"><img src="slow.png">'

        with caplog.at_level(logging.WARNING):
            result = bundle_mod.bundle(
                html, [extract_dir], BundleOptions(max_workers=2, deadline_seconds=0.5)
            )

        assert result.embedded_count == 1
        assert result.skip_reasons == {"slow.png": SkipReason.DEADLINE_EXCEEDED}
        assert '<img src="slow.png">' in result.html
        assert "fast.png" not in result.html
        assert "deadline-exceeded -> keep-partial" in caplog.text

    def test_outcomes_follow_input_order(self, extract_dir: Path, png_bytes: bytes) -> None:
        for name in ("c.png", "a.png", "b.png"):
            (extract_dir / name).write_bytes(png_bytes)
        references = scan_references('<img src="c.png"><img src="a.png"><img src="b.png">')

        outcomes = process_references(
            references, SearchRootSet.from_paths([extract_dir]), BundleOptions(max_workers=3)
        )

        assert [o.reference.referenced_path for o in outcomes] == ["c.png", "a.png", "b.png"]
        assert all(o.embedded is not None for o in outcomes)

    def test_no_references(self, extract_dir: Path) -> None:
        assert process_references([], SearchRootSet.from_paths([extract_dir]), BundleOptions()) == []

    def test_deadline_events_reported(
        self, extract_dir: Path, slow_reference: None
    ) -> None:
        (extract_dir / "slow.gif").write_bytes(b"GIF89a")
        events: list[tuple[str, dict[str, int | str]]] = []

        bundle_mod.bundle(
            '<img src="slow.gif">',
            [extract_dir],
            BundleOptions(deadline_seconds=0.2),
            on_progress=lambda e, p: events.append((e, p)),
        )

        assert ("reference:skipped", {"path": "slow.gif", "reason": "deadline-exceeded"}) in events
        assert events[-1] == ("bundle:finalized", {"embedded": 0, "relocated": 0, "skipped": 1})

    def test_late_worker_does_not_store_video(
        self,
        extract_dir: Path,
        tmp_path: Path,
        release: threading.Event,
        late_outcomes: list[ReferenceOutcome],
        slow_reference: None,
    ) -> None:
        (extract_dir / "slow.mp4").write_bytes(b"video")
        storage = tmp_path / "storage"
        options = BundleOptions(owner_id="o", storage_root=storage, deadline_seconds=0.2)

        result = bundle_mod.bundle('<video src="slow.mp4"></video>', [extract_dir], options)
        release.set()
        for _ in range(100):
            if late_outcomes:
                break
            time.sleep(0.05)

        assert result.skip_reasons == {"slow.mp4": SkipReason.DEADLINE_EXCEEDED}
        assert [o.skip_reason for o in late_outcomes] == [SkipReason.DEADLINE_EXCEEDED]
        assert not storage.exists() or not any(storage.rglob("*.mp4"))
