"""
Namespace 동기화: desired set → 저장소 상태.

순서 (엄격):
0. 템플릿별 규칙 검사 (id, namespace, tasks) → TemplateValidationError
1. namespace 일치 검사 → 위반 전체 수집 → NamespaceMismatchError
2. 중복 id 검사 → DuplicateIdError
   (0~2는 부작용 없음: 실패 시 저장소 변경 0건)
3. delete=True면 desired에 없는 기존 템플릿 삭제 (저장소 열거 순)
4. desired 순서대로 update(있으면) / create(없으면)
5. 결과 = deleted + upserted

주의:
- 3단계 삭제는 4단계 실패 시 롤백되지 않음 (트랜잭션 없음)
- 락 없음: 같은 namespace 동시 동기화는 last-write-wins
"""

import logging
from dataclasses import dataclass, field, replace

from src.domain.errors import (
    DuplicateIdError,
    NamespaceMismatchError,
    TemplateValidationError,
)
from src.domain.schemas import ConstraintViolation, Template
from src.templates.store import TemplateStore
from src.templates.validator import collect_violations

logger = logging.getLogger(__name__)


# =============================================================================
# Result Types
# =============================================================================

@dataclass
class ReconcileResult:
    """
    동기화 결과.

    upserted: desired 순서의 update/create 결과
    templates: deleted + upserted (삭제된 템플릿도 함께 반환)
    """
    namespace: str
    deleted: list[Template] = field(default_factory=list)
    created: list[Template] = field(default_factory=list)
    updated: list[Template] = field(default_factory=list)
    upserted: list[Template] = field(default_factory=list)

    @property
    def templates(self) -> list[Template]:
        return self.deleted + self.upserted


@dataclass
class ReconcilePlan:
    """동기화 계획 (dry-run). 모두 id 목록."""
    namespace: str
    to_delete: list[str] = field(default_factory=list)
    to_create: list[str] = field(default_factory=list)
    to_update: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.to_delete or self.to_create or self.to_update)


# =============================================================================
# Pre-mutation Checks
# =============================================================================

def _template_violations(templates: list[Template]) -> list[ConstraintViolation]:
    """템플릿별 규칙 위반 (path 앞에 templates[i] 붙임)."""
    violations = []
    for i, template in enumerate(templates):
        violations += [
            replace(v, path=f"templates[{i}].{v.path}")
            for v in collect_violations(template)
        ]
    return violations


def _namespace_violations(
    namespace: str,
    templates: list[Template],
) -> list[ConstraintViolation]:
    return [
        ConstraintViolation(
            "Template namespace is invalid",
            "template.namespace",
            template.namespace,
            template,
        )
        for template in templates
        if template.namespace != namespace
    ]


def _distinct_ids(templates: list[Template]) -> list[str]:
    """id 목록 (첫 등장 순서 유지, 중복 제거)."""
    return list(dict.fromkeys(t.id for t in templates))


def _duplicate_violations(
    templates: list[Template],
    distinct: list[str],
) -> list[ConstraintViolation]:
    if len(distinct) == len(templates):
        return []
    return [ConstraintViolation(
        "Duplicate template id",
        "template.id",
        distinct,
        templates,
    )]


def check_desired_set(
    namespace: str,
    templates: list[Template],
) -> list[ConstraintViolation]:
    """
    desired set 검사 (부작용 없음).

    템플릿별 규칙 위반 → namespace 위반 → 중복 id 순서로,
    앞 단계에서 위반이 나오면 그것만 반환.

    Returns:
        위반 목록 (비어있으면 통과)
    """
    violations = _template_violations(templates)
    if violations:
        return violations
    violations = _namespace_violations(namespace, templates)
    if violations:
        return violations
    return _duplicate_violations(templates, _distinct_ids(templates))


def _ensure_valid(namespace: str, templates: list[Template]) -> None:
    """
    Raises:
        TemplateValidationError: 템플릿 규칙 위반
        NamespaceMismatchError: 다른 namespace 템플릿 포함
        DuplicateIdError: 중복 id
    """
    violations = _template_violations(templates)
    if violations:
        raise TemplateValidationError(violations, namespace=namespace)

    violations = _namespace_violations(namespace, templates)
    if violations:
        raise NamespaceMismatchError(violations, namespace=namespace)

    distinct = _distinct_ids(templates)
    violations = _duplicate_violations(templates, distinct)
    if violations:
        raise DuplicateIdError(
            violations,
            ids=[t.id for t in templates],
            distinct_ids=distinct,
        )


# =============================================================================
# Reconcile
# =============================================================================

def reconcile_namespace(
    store: TemplateStore,
    namespace: str,
    templates: list[Template],
    delete: bool = True,
) -> ReconcileResult:
    """
    namespace 전체를 desired set으로 교체.

    Args:
        store: 템플릿 저장소
        namespace: 대상 namespace
        templates: desired set (순서 유지)
        delete: desired에 없는 기존 템플릿 삭제 여부

    Returns:
        ReconcileResult

    Raises:
        TemplateValidationError: 변경 전 검증 실패
            (NamespaceMismatchError, DuplicateIdError 포함)
        저장소 에러: 그대로 전파 (이미 적용된 변경은 유지됨)
    """
    _ensure_valid(namespace, templates)

    result = ReconcileResult(namespace=namespace)
    ids = {t.id for t in templates}

    # 3. 삭제
    if delete:
        for existing in store.find_by_namespace(namespace):
            if existing.id not in ids:
                store.delete(existing)
                result.deleted.append(existing)

    # 4. update / create
    for template in templates:
        existing = store.find_by_id(namespace, template.id)
        if existing is not None:
            saved = store.update(template, existing)
            result.updated.append(saved)
        else:
            saved = store.create(template)
            result.created.append(saved)
        result.upserted.append(saved)

    logger.info(
        f"Reconciled namespace '{namespace}': "
        f"{len(result.deleted)} deleted, {len(result.updated)} updated, "
        f"{len(result.created)} created"
    )
    return result


def plan_namespace(
    store: TemplateStore,
    namespace: str,
    templates: list[Template],
    delete: bool = True,
) -> ReconcilePlan:
    """
    reconcile_namespace의 dry-run. 저장소 읽기만 수행.

    Raises:
        TemplateValidationError (NamespaceMismatchError, DuplicateIdError 포함)
    """
    _ensure_valid(namespace, templates)

    plan = ReconcilePlan(namespace=namespace)
    ids = {t.id for t in templates}

    if delete:
        plan.to_delete = [
            t.id for t in store.find_by_namespace(namespace) if t.id not in ids
        ]

    for template in templates:
        existing = store.find_by_id(namespace, template.id)
        if existing is None:
            plan.to_create.append(template.id)
        elif existing.content == template.content:
            plan.unchanged.append(template.id)
        else:
            plan.to_update.append(template.id)

    return plan
