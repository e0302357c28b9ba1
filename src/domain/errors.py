"""
Error definitions for the template registry.

규칙:
- 조용한 실패 금지 → 명시적 에러 코드로 실패
- 검증 실패는 위반 항목 전체를 한 번에 보고 (첫 번째만 보고 금지)
- 배치 검증(validate_batch) 안에서는 문서별로 잡아서 결과에 기록
"""

from typing import Any

from src.domain.schemas import ConstraintViolation


class TemplateError(Exception):
    """
    템플릿 레지스트리 에러의 공통 베이스.

    Usage:
        raise TemplateError("TEMPLATE_NOT_FOUND", "Template 'a' not found", id="a")
    """

    def __init__(self, code: str, message: str, **context: Any) -> None:
        self.code = code
        self.message = message
        self.context = context
        super().__init__(f"[{code}] {message}")

    def to_dict(self) -> dict[str, Any]:
        """로그/JSON 직렬화용."""
        return {
            "code": self.code,
            "message": self.message,
            **self.context,
        }


class TemplateValidationError(TemplateError):
    """
    제약 조건 위반 (1개 이상).

    str(e)와 e.message는 "path: message, path: message" 형식.
    """

    def __init__(
        self,
        violations: list[ConstraintViolation],
        code: str = "VALIDATION_ERROR",
        **context: Any,
    ) -> None:
        self.violations = list(violations)
        message = ", ".join(str(v) for v in self.violations)
        super().__init__(code, message, **context)
        # Exception.__str__ 대신 위반 목록만 노출
        self.args = (message,)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "violations": [v.to_dict() for v in self.violations],
            **self.context,
        }


class NamespaceMismatchError(TemplateValidationError):
    """desired set 안에 대상 namespace와 다른 템플릿이 있음."""

    def __init__(self, violations: list[ConstraintViolation], namespace: str) -> None:
        super().__init__(
            violations,
            code=ErrorCodes.NAMESPACE_MISMATCH,
            namespace=namespace,
        )


class DuplicateIdError(TemplateValidationError):
    """desired set 안에 같은 id가 두 번 이상 등장."""

    def __init__(
        self,
        violations: list[ConstraintViolation],
        ids: list[str],
        distinct_ids: list[str],
    ) -> None:
        self.ids = ids
        self.distinct_ids = distinct_ids
        super().__init__(violations, code=ErrorCodes.DUPLICATE_TEMPLATE_ID)


class ParseError(TemplateError):
    """문서 텍스트 → Template 파싱 실패."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(ErrorCodes.PARSE_ERROR, message, **context)
        self.args = (message,)


class TemplateNotFoundError(TemplateError):
    """(namespace, id)에 해당하는 템플릿 없음."""

    def __init__(self, namespace: str, template_id: str) -> None:
        super().__init__(
            ErrorCodes.TEMPLATE_NOT_FOUND,
            f"Template '{namespace}.{template_id}' not found",
            namespace=namespace,
            id=template_id,
        )


class StoreError(TemplateError):
    """저장소 레벨 실패 (중복 생성, 손상된 파일, 락 timeout 등)."""


# =============================================================================
# Error Codes
# =============================================================================

class ErrorCodes:
    """에러 코드 상수."""

    # === Validation ===
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NAMESPACE_MISMATCH = "NAMESPACE_MISMATCH"
    DUPLICATE_TEMPLATE_ID = "DUPLICATE_TEMPLATE_ID"
    TEMPLATE_EXISTS = "TEMPLATE_EXISTS"

    # === Parse ===
    PARSE_ERROR = "PARSE_ERROR"

    # === Store ===
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
    TEMPLATE_CORRUPT = "TEMPLATE_CORRUPT"
    STORE_LOCK_TIMEOUT = "STORE_LOCK_TIMEOUT"
    INVALID_KEY = "INVALID_KEY"
