"""
템플릿 관리자: CRUD + namespace 동기화 + 배치 검증.

핵심 규칙:
- 중복 (namespace, id) 생성 시 에러 (fail-fast)
- update/delete 대상이 없으면 TemplateNotFoundError
- namespace 동기화 1회 = sync log 1개 (logs_dir 설정 시)
- 배치 검증은 예외를 던지지 않음
"""

import logging
from pathlib import Path

from src.core.logging import (
    complete_sync_log,
    create_sync_log,
    emit_event,
    save_sync_log,
)
from src.domain.errors import (
    ErrorCodes,
    TemplateError,
    TemplateNotFoundError,
    TemplateValidationError,
)
from src.domain.schemas import ConstraintViolation, SyncLog, Template, ValidationResult
from src.templates.batch import validate_batch
from src.templates.reconciler import (
    ReconcilePlan,
    ReconcileResult,
    plan_namespace,
    reconcile_namespace,
)
from src.templates.store import TemplateStore
from src.templates.validator import validate_template

logger = logging.getLogger(__name__)


class TemplateManager:
    """
    템플릿 관리자.

    저장소는 주입받음 (InMemoryTemplateStore, FileTemplateStore).
    """

    def __init__(self, store: TemplateStore, logs_dir: Path | None = None):
        """
        Args:
            store: 템플릿 저장소
            logs_dir: sync log 저장 경로 (None이면 기록 안 함)
        """
        self.store = store
        self.logs_dir = logs_dir

    # =========================================================================
    # Read
    # =========================================================================

    def get(self, namespace: str, template_id: str) -> Template | None:
        """템플릿 조회. 없으면 None."""
        return self.store.find_by_id(namespace, template_id)

    def search(
        self,
        query: str | None = None,
        namespace: str | None = None,
    ) -> list[Template]:
        """
        템플릿 검색.

        Args:
            query: id/namespace/description 부분 일치
            namespace: namespace prefix
        """
        return self.store.find(query=query, namespace=namespace)

    def list_distinct_namespaces(self) -> list[str]:
        """템플릿이 있는 namespace 목록."""
        return self.store.find_distinct_namespaces()

    # =========================================================================
    # Create / Update / Delete
    # =========================================================================

    def create(self, template: Template) -> Template:
        """
        템플릿 생성.

        Raises:
            TemplateValidationError: 규칙 위반 또는 이미 존재
        """
        validate_template(template)

        if self.store.find_by_id(template.namespace, template.id) is not None:
            raise TemplateValidationError(
                [ConstraintViolation(
                    "Template id already exists",
                    "template.id",
                    template.id,
                    template,
                )],
                code=ErrorCodes.TEMPLATE_EXISTS,
            )

        return self.store.create(template)

    def update(self, namespace: str, template_id: str, template: Template) -> Template:
        """
        템플릿 교체 (content 전체).

        키는 기존 레코드 기준 (template의 namespace/id는 무시됨).

        Raises:
            TemplateNotFoundError: 대상 없음
            TemplateValidationError: 규칙 위반
        """
        existing = self.store.find_by_id(namespace, template_id)
        if existing is None:
            raise TemplateNotFoundError(namespace, template_id)

        validate_template(template)
        return self.store.update(template, existing)

    def delete(self, namespace: str, template_id: str) -> None:
        """
        템플릿 삭제.

        Raises:
            TemplateNotFoundError: 대상 없음
        """
        existing = self.store.find_by_id(namespace, template_id)
        if existing is None:
            raise TemplateNotFoundError(namespace, template_id)

        self.store.delete(existing)

    # =========================================================================
    # Namespace Sync
    # =========================================================================

    def reconcile(
        self,
        namespace: str,
        templates: list[Template],
        delete: bool = True,
    ) -> ReconcileResult:
        """
        namespace 동기화 + sync log 기록.

        Raises:
            TemplateValidationError: 변경 전 검증 실패 (sync log: rejected)
            그 외 에러: 그대로 전파 (sync log: failed)
        """
        sync_log = create_sync_log(namespace, delete_missing=delete)

        try:
            result = reconcile_namespace(self.store, namespace, templates, delete=delete)
        except TemplateValidationError as e:
            complete_sync_log(sync_log, "rejected", e.code, e.to_dict())
            self._save_log(sync_log)
            raise
        except TemplateError as e:
            complete_sync_log(sync_log, "failed", e.code, e.to_dict())
            self._save_log(sync_log)
            raise
        except Exception as e:
            # 파일 시스템 에러 등 (OSError)
            complete_sync_log(
                sync_log, "failed", type(e).__name__, {"message": str(e)},
            )
            self._save_log(sync_log)
            raise

        for template in result.deleted:
            emit_event(sync_log, "deleted", template.namespace, template.id)
        for template in result.updated:
            emit_event(sync_log, "updated", template.namespace, template.id)
        for template in result.created:
            emit_event(sync_log, "created", template.namespace, template.id)

        complete_sync_log(sync_log, "success")
        self._save_log(sync_log)
        return result

    def update_namespace(
        self,
        namespace: str,
        templates: list[Template],
        delete: bool = True,
    ) -> list[Template]:
        """
        namespace 동기화.

        Returns:
            삭제된 템플릿 + (desired 순서) 갱신/생성된 템플릿
        """
        return self.reconcile(namespace, templates, delete=delete).templates

    def plan_namespace(
        self,
        namespace: str,
        templates: list[Template],
        delete: bool = True,
    ) -> ReconcilePlan:
        """동기화 dry-run (변경 없음)."""
        return plan_namespace(self.store, namespace, templates, delete=delete)

    # =========================================================================
    # Validation
    # =========================================================================

    def validate_templates(self, raw_text: str) -> list[ValidationResult]:
        """다중 문서 텍스트 검증 (문서별 결과)."""
        results = validate_batch(raw_text)
        invalid = sum(1 for r in results if not r.is_valid)
        if invalid:
            logger.info(f"Validated {len(results)} documents: {invalid} invalid")
        return results

    # =========================================================================
    # Internal Helpers
    # =========================================================================

    def _save_log(self, sync_log: SyncLog) -> None:
        if self.logs_dir is None:
            return
        path = save_sync_log(sync_log, self.logs_dir)
        logger.debug(f"Saved sync log {path}")
