"""Test fixtures for livedoc."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))


@pytest.fixture(autouse=True)
def reset_state(monkeypatch: pytest.MonkeyPatch):
    """Reset cached settings and environment between tests."""
    for key in ("LIVEDOC_CONFIG", "LIVEDOC_NAMESPACE", "LIVEDOC_EMBEDS_DIR", "LIVEDOC_ROOT_DIR", "LIVEDOC_DEBOUNCE_MS"):
        monkeypatch.delenv(key, raising=False)

    from livedoc.core.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Empty project root with a docs/ directory."""
    (tmp_path / "docs").mkdir()
    return tmp_path


@pytest.fixture
def make_settings(workspace: Path):
    from livedoc.core.config import Settings

    def factory(**overrides) -> Settings:
        data = {
            "root_dir": workspace,
            "targets": [{"pattern": "docs/**/*.md", "comment_style": "html"}],
        }
        data.update(overrides)
        return Settings(**data)

    return factory
