"""
Data schemas for the template registry.

규칙:
- (namespace, id) = 저장소 안의 유일 키
- content는 코어 로직에서 해석하지 않음 (opaque)
- ValidationResult: constraints가 None이면 유효
"""

from dataclasses import dataclass, field
from typing import Any

# =============================================================================
# Template
# =============================================================================

@dataclass
class Template:
    """
    네임스페이스 단위로 관리되는 템플릿 문서.

    id/namespace 외의 필드(description, tasks, errors, inputs ...)는
    content에 그대로 보관.
    """
    namespace: str
    id: str
    content: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> tuple[str, str]:
        """저장소 키."""
        return (self.namespace, self.id)

    @property
    def description(self) -> str | None:
        value = self.content.get("description")
        return str(value) if value is not None else None

    def to_dict(self) -> dict[str, Any]:
        """문서 형태로 직렬화 (id, namespace 먼저)."""
        return {
            "id": self.id,
            "namespace": self.namespace,
            **self.content,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Template":
        content = {k: v for k, v in data.items() if k not in ("id", "namespace")}
        return cls(
            namespace=str(data["namespace"]),
            id=str(data["id"]),
            content=content,
        )


# =============================================================================
# Validation Schemas
# =============================================================================

@dataclass(frozen=True)
class ConstraintViolation:
    """
    단일 제약 조건 위반.

    path: 위반 필드 경로 (template.namespace, tasks[0].type 등)
    root: 위반한 객체 (진단용, 비교/직렬화 대상 아님)
    """
    message: str
    path: str
    invalid_value: Any = None
    root: Any = field(default=None, compare=False, hash=False, repr=False)

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "path": self.path,
            "invalid_value": self.invalid_value,
        }


@dataclass
class ValidationResult:
    """
    배치 검증의 문서별 결과.

    - 파싱 성공 시: flow_id, namespace 채움
    - 파싱/검증 실패 시: constraints에 사람이 읽을 수 있는 메시지
    """
    index: int
    flow_id: str | None = None
    namespace: str | None = None
    constraints: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.constraints is None

    def to_dict(self) -> dict[str, Any]:
        """JSON 응답용 (None 값은 생략)."""
        data: dict[str, Any] = {"index": self.index}
        if self.flow_id is not None:
            data["flow"] = self.flow_id
        if self.namespace is not None:
            data["namespace"] = self.namespace
        if self.constraints is not None:
            data["constraints"] = self.constraints
        return data


# =============================================================================
# Sync Logging Schemas
# =============================================================================

@dataclass
class SyncEvent:
    """
    동기화 중 발생한 단일 변경.

    action: created, updated, deleted
    """
    action: str
    namespace: str
    id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "namespace": self.namespace,
            "id": self.id,
        }


@dataclass
class SyncLog:
    """
    namespace 동기화 실행 로그.

    동기화 1회 = SyncLog 1개 (거절된 요청 포함).
    """
    run_id: str
    namespace: str
    started_at: str  # ISO 8601
    delete_missing: bool = True
    finished_at: str | None = None
    result: str = "pending"  # pending, success, rejected, failed

    events: list[SyncEvent] = field(default_factory=list)

    # Error (if rejected/failed)
    error_code: str | None = None
    error_context: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "namespace": self.namespace,
            "started_at": self.started_at,
            "delete_missing": self.delete_missing,
            "finished_at": self.finished_at,
            "result": self.result,
            "events": [e.to_dict() for e in self.events],
            "error_code": self.error_code,
            "error_context": self.error_context,
        }
