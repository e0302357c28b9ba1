"""
Templates layer: 템플릿 저장/동기화/검증 모듈.

역할:
- 저장소 인터페이스 + 구현 (store.py)
- YAML 파싱 (parser.py), 단일 문서 검증 (validator.py)
- namespace 동기화 (reconciler.py)
- 다중 문서 배치 검증 (batch.py)
- 위 기능을 묶은 관리자 (manager.py)
"""

from .batch import split_documents, validate_batch, validate_document
from .manager import TemplateManager
from .parser import parse_template
from .reconciler import (
    ReconcilePlan,
    ReconcileResult,
    check_desired_set,
    plan_namespace,
    reconcile_namespace,
)
from .store import FileTemplateStore, InMemoryTemplateStore, TemplateStore
from .validator import collect_violations, validate_template

__all__ = [
    # manager
    "TemplateManager",
    # store
    "TemplateStore",
    "InMemoryTemplateStore",
    "FileTemplateStore",
    # parser / validator
    "parse_template",
    "collect_violations",
    "validate_template",
    # reconciler
    "reconcile_namespace",
    "plan_namespace",
    "check_desired_set",
    "ReconcileResult",
    "ReconcilePlan",
    # batch
    "split_documents",
    "validate_document",
    "validate_batch",
]
