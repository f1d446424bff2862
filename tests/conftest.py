import logging
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


@pytest.fixture
def isolate_logging():
    """Isolate logging configuration between tests.

    The CLI calls ``logging.basicConfig(force=True)``; without this fixture a
    handler bound to a closed CliRunner stream can leak into later tests.
    """
    original_handlers = logging.root.handlers[:]
    original_level = logging.root.level

    logging.root.handlers.clear()
    logging.root.addHandler(logging.NullHandler())

    yield

    logging.root.handlers.clear()
    logging.root.handlers.extend(original_handlers)
    logging.root.setLevel(original_level)


@pytest.fixture
def extract_dir(tmp_path: Path) -> Path:
    """A freshly 'extracted upload' directory used as the primary search root."""
    d = tmp_path / "extract"
    d.mkdir()
    return d


@pytest.fixture
def png_bytes() -> bytes:
    return b"\x89PNG\r\n\x1a\nfake-png-payload"
