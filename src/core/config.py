"""
설정 로드: default.yaml

구조:
    store:
      root: data/templates
      lock_timeout: 10.0
    sync:
      delete_missing: true
      logs_dir: data/logs

상대 경로는 설정 파일 위치 기준으로 해석.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

PROJECT_ROOT = Path(__file__).parent.parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "default.yaml"


def load_config(config_path: Path | None = None) -> dict[str, Any]:
    """
    설정 파일 로드.

    Args:
        config_path: 설정 파일 경로 (None이면 프로젝트 루트의 default.yaml)

    Returns:
        설정 dict (파일이 없으면 빈 dict)
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        return {}

    with open(config_path, encoding="utf-8") as f:
        data: dict[str, Any] | None = yaml.safe_load(f)

    config = data or {}
    config.setdefault("_base_dir", str(config_path.parent))
    return config


def _resolve(config: dict[str, Any], value: str) -> Path:
    path = Path(value)
    if path.is_absolute():
        return path
    base_dir = Path(config.get("_base_dir", PROJECT_ROOT))
    return base_dir / path


@dataclass
class StoreConfig:
    """파일 저장소 설정."""
    root: Path
    lock_timeout: float = 10.0

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "StoreConfig":
        store = config.get("store", {})
        return cls(
            root=_resolve(config, store.get("root", "data/templates")),
            lock_timeout=float(store.get("lock_timeout", 10.0)),
        )


@dataclass
class SyncConfig:
    """namespace 동기화 설정."""
    delete_missing: bool = True
    logs_dir: Path | None = None

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "SyncConfig":
        sync = config.get("sync", {})
        logs_dir = sync.get("logs_dir")
        return cls(
            delete_missing=bool(sync.get("delete_missing", True)),
            logs_dir=_resolve(config, logs_dir) if logs_dir else None,
        )
