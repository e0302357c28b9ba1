"""
Core layer: 설정, ID, 원자적 쓰기, 동기화 로그.

역할:
- default.yaml 로드
- 원자적 파일 쓰기 (temp → rename + fsync)
- sync log 기록
"""

from .atomic import atomic_write_json, atomic_write_text
from .config import StoreConfig, SyncConfig, load_config
from .ids import generate_run_id, sanitize_for_filename
from .logging import (
    complete_sync_log,
    create_sync_log,
    emit_event,
    list_sync_logs,
    load_sync_log,
    save_sync_log,
)

__all__ = [
    # atomic
    "atomic_write_json",
    "atomic_write_text",
    # config
    "load_config",
    "StoreConfig",
    "SyncConfig",
    # ids
    "generate_run_id",
    "sanitize_for_filename",
    # logging
    "create_sync_log",
    "emit_event",
    "complete_sync_log",
    "save_sync_log",
    "load_sync_log",
    "list_sync_logs",
]
