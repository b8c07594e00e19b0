from __future__ import annotations

from pathlib import Path


def project_root() -> Path:
    # docstore/paths.py -> docstore -> project root
    return Path(__file__).resolve().parents[1]


def data_dir(override: str | Path | None = None) -> Path:
    if override:
        return ensure_dir(Path(override).expanduser())
    return ensure_dir(project_root() / "data")


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def collections_dir(data_dir: Path) -> Path:
    return ensure_dir(data_dir / "collections")


def collection_path(data_dir: Path, name: str) -> Path:
    return collections_dir(data_dir) / f"{name}.json"


def cache_path(data_dir: Path) -> Path:
    return data_dir / "secondary_cache.json"


def flags_path(data_dir: Path) -> Path:
    return data_dir / "flags.json"
