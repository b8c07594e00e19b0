from __future__ import annotations

from pathlib import Path
import sys


import pytest


# Ensure the repository root (parent of ./tests) is importable during pytest collection.
# This avoids ModuleNotFoundError for imports like `import docstore...` under pytest import modes
# that don't automatically prepend the cwd/rootdir to sys.path.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture
def sandbox_project(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """
    Redirect the default data directory to a temp project so tests never touch real ./data.
    """
    import docstore.paths as paths

    monkeypatch.setattr(paths, "project_root", lambda: tmp_path)
    for name in ("LEDGER_DATA_DIR", "LEDGER_CLEAN_MARKER_TTL", "LEDGER_RELOAD_DELAY", "LEDGER_SEED_ON_START"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    p = tmp_path / "data"
    p.mkdir(parents=True, exist_ok=True)
    return p


@pytest.fixture
def registry(data_dir: Path):
    from docstore.registry import StoreRegistry

    reg = StoreRegistry(data_dir)
    reg.initialize()
    return reg


@pytest.fixture
def test_settings(data_dir: Path):
    from settings import Settings

    return Settings(
        data_dir=str(data_dir),
        clean_marker_ttl_seconds=60.0,
        reload_delay_seconds=0.0,
        seed_on_start=True,
        log_level="DEBUG",
        debug_log_requests=True,
    )


@pytest.fixture
def ledger_app(test_settings):
    from app import create_app

    return create_app(test_settings)
