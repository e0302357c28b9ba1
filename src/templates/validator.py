"""
단일 템플릿 검증기.

규칙 (모두 수집, 첫 위반에서 멈추지 않음):
- id: 필수, 최대 100자, ^[a-zA-Z0-9][a-zA-Z0-9._-]*$
- namespace: 필수, 최대 150자, ^[a-z0-9][a-z0-9._-]*$
- tasks: 필수, 비어있지 않은 리스트
  - 각 task: mapping + id(문자열) + type(문자열)
  - task id는 템플릿 안에서 유일
- errors: 선택, 있으면 tasks와 같은 규칙 (빈 리스트 허용)
"""

import re
from typing import Any

from src.domain.constants import (
    NAMESPACE_MAX_LENGTH,
    NAMESPACE_PATTERN,
    TEMPLATE_ID_MAX_LENGTH,
    TEMPLATE_ID_PATTERN,
)
from src.domain.errors import TemplateValidationError
from src.domain.schemas import ConstraintViolation, Template


def _check_name(
    template: Template,
    value: str,
    path: str,
    pattern: re.Pattern[str],
    max_length: int,
) -> list[ConstraintViolation]:
    if not value:
        return [ConstraintViolation("must not be empty", path, value, template)]

    violations = []
    if len(value) > max_length:
        violations.append(ConstraintViolation(
            f"size must be between 1 and {max_length}", path, value, template,
        ))
    if not pattern.fullmatch(value):
        violations.append(ConstraintViolation(
            f"must match \"{pattern.pattern}\"", path, value, template,
        ))
    return violations


def _check_tasks(
    template: Template,
    tasks: Any,
    field_name: str,
    allow_empty: bool,
) -> list[ConstraintViolation]:
    if tasks is None:
        if allow_empty:
            return []
        return [ConstraintViolation("must not be null", field_name, None, template)]

    if not isinstance(tasks, list):
        return [ConstraintViolation(
            "must be a list", field_name, type(tasks).__name__, template,
        )]

    if not tasks and not allow_empty:
        return [ConstraintViolation("must not be empty", field_name, tasks, template)]

    violations = []
    seen: set[str] = set()
    for i, task in enumerate(tasks):
        path = f"{field_name}[{i}]"
        if not isinstance(task, dict):
            violations.append(ConstraintViolation(
                "must be a mapping", path, type(task).__name__, template,
            ))
            continue

        for key in ("id", "type"):
            value = task.get(key)
            if not isinstance(value, str) or not value:
                violations.append(ConstraintViolation(
                    "must not be empty", f"{path}.{key}", value, template,
                ))

        task_id = task.get("id")
        if isinstance(task_id, str) and task_id:
            if task_id in seen:
                violations.append(ConstraintViolation(
                    "Duplicate task id", f"{path}.id", task_id, template,
                ))
            seen.add(task_id)

    return violations


def collect_violations(template: Template) -> list[ConstraintViolation]:
    """
    템플릿의 모든 제약 위반 수집.

    Returns:
        위반 목록 (비어있으면 유효)
    """
    violations = []
    violations += _check_name(
        template, template.id, "id", TEMPLATE_ID_PATTERN, TEMPLATE_ID_MAX_LENGTH,
    )
    violations += _check_name(
        template, template.namespace, "namespace", NAMESPACE_PATTERN, NAMESPACE_MAX_LENGTH,
    )
    violations += _check_tasks(
        template, template.content.get("tasks"), "tasks", allow_empty=False,
    )
    violations += _check_tasks(
        template, template.content.get("errors"), "errors", allow_empty=True,
    )
    return violations


def validate_template(template: Template) -> None:
    """
    템플릿 검증.

    Raises:
        TemplateValidationError: 위반이 하나 이상
    """
    violations = collect_violations(template)
    if violations:
        raise TemplateValidationError(
            violations,
            namespace=template.namespace,
            id=template.id,
        )
