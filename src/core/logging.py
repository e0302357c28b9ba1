"""
Sync logging: sync log schema, events

규칙:
- 동기화 1회마다 sync_<run_id>.json 1개
- 거절(검증 실패)도 기록 → result="rejected"
- 이벤트 필수 키: action, namespace, id
"""

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from src.core.atomic import atomic_write_json
from src.core.ids import generate_run_id
from src.domain.constants import SYNC_LOG_PREFIX
from src.domain.schemas import SyncEvent, SyncLog

# =============================================================================
# Sync Log Management
# =============================================================================


def create_sync_log(namespace: str, delete_missing: bool = True) -> SyncLog:
    """
    새 SyncLog 생성.

    Args:
        namespace: 동기화 대상 namespace
        delete_missing: 누락 템플릿 삭제 여부

    Returns:
        초기화된 SyncLog
    """
    return SyncLog(
        run_id=generate_run_id(),
        namespace=namespace,
        started_at=datetime.now(UTC).isoformat(),
        delete_missing=delete_missing,
    )


def emit_event(sync_log: SyncLog, action: str, namespace: str, template_id: str) -> None:
    """변경 이벤트 기록 (created, updated, deleted)."""
    sync_log.events.append(
        SyncEvent(action=action, namespace=namespace, id=template_id)
    )


def complete_sync_log(
    sync_log: SyncLog,
    result: str,
    error_code: str | None = None,
    error_context: dict[str, Any] | None = None,
) -> None:
    """
    SyncLog 완료 처리.

    Args:
        sync_log: SyncLog 인스턴스
        result: success, rejected, failed
        error_code: 에러 코드 (실패 시)
        error_context: 에러 컨텍스트 (실패 시)
    """
    sync_log.finished_at = datetime.now(UTC).isoformat()
    sync_log.result = result

    if result != "success":
        sync_log.error_code = error_code
        sync_log.error_context = error_context


def save_sync_log(sync_log: SyncLog, logs_dir: Path) -> Path:
    """
    SyncLog를 파일로 저장.

    Returns:
        저장된 파일 경로
    """
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"{SYNC_LOG_PREFIX}{sync_log.run_id}.json"
    atomic_write_json(log_path, sync_log.to_dict())
    return log_path


def load_sync_log(log_path: Path) -> dict[str, Any]:
    """SyncLog 파일 로드."""
    data: dict[str, Any] = json.loads(log_path.read_text(encoding="utf-8"))
    return data


def list_sync_logs(logs_dir: Path) -> list[Path]:
    """
    logs/ 디렉터리의 모든 sync log 파일 목록.

    Returns:
        로그 파일 경로 목록 (최신순)
    """
    if not logs_dir.exists():
        return []

    logs = list(logs_dir.glob(f"{SYNC_LOG_PREFIX}*.json"))
    logs.sort(key=lambda p: p.stat().st_mtime, reverse=True)
    return logs
