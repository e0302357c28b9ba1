"""
템플릿 저장소: find/create/update/delete.

규칙:
- (namespace, id) = 유일 키
- create: 이미 있으면 에러 (fail-fast)
- update: 기존 레코드의 키 유지, content 전체 교체
- update/delete: 없으면 에러
- 묵시적 정리(GC) 없음: 명시적 delete만 삭제

구현:
- InMemoryTemplateStore: 테스트/임베디드용 (삽입 순서 유지)
- FileTemplateStore: <root>/<namespace>/<id>.yaml (namespace별 락)
"""

import copy
import logging
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Protocol

import yaml
from filelock import FileLock, Timeout

from src.core.atomic import atomic_write_text
from src.core.ids import sanitize_for_filename
from src.domain.constants import STORE_LOCKS_DIR, TEMPLATE_FILE_SUFFIX
from src.domain.errors import ErrorCodes, StoreError
from src.domain.schemas import Template

logger = logging.getLogger(__name__)


# =============================================================================
# Store Protocol (for dependency injection)
# =============================================================================


class TemplateStore(Protocol):
    """템플릿 저장소 인터페이스."""

    def find_by_id(self, namespace: str, template_id: str) -> Template | None:
        """(namespace, id)로 조회. 없으면 None."""
        ...

    def find_by_namespace(self, namespace: str) -> list[Template]:
        """namespace에 속한 전체 템플릿 (저장소 고유 순서)."""
        ...

    def find_distinct_namespaces(self) -> list[str]:
        """템플릿이 하나 이상 있는 namespace 목록 (정렬)."""
        ...

    def find(
        self,
        query: str | None = None,
        namespace: str | None = None,
    ) -> list[Template]:
        """검색: query는 부분 일치, namespace는 prefix."""
        ...

    def create(self, template: Template) -> Template:
        ...

    def update(self, template: Template, existing: Template) -> Template:
        ...

    def delete(self, template: Template) -> None:
        ...


# =============================================================================
# Search Helpers
# =============================================================================


def matches(template: Template, query: str | None, namespace: str | None) -> bool:
    """
    검색 조건 일치 여부.

    - namespace: prefix 일치 ("io" → "io", "io.kestra")
    - query: id, namespace, description 대상 대소문자 무시 부분 일치
    """
    if namespace and not template.namespace.startswith(namespace):
        return False

    if query:
        needle = query.lower()
        haystack = [template.id, template.namespace, template.description or ""]
        if not any(needle in value.lower() for value in haystack):
            return False

    return True


def _copy(template: Template) -> Template:
    """저장소 밖으로 내보내는 복사본 (호출자 수정이 저장소에 새지 않도록)."""
    return Template(
        namespace=template.namespace,
        id=template.id,
        content=copy.deepcopy(template.content),
    )


# =============================================================================
# In-Memory Store
# =============================================================================


class InMemoryTemplateStore:
    """
    dict 기반 저장소.

    열거 순서 = 삽입 순서. update는 순서를 바꾸지 않음.
    mutations: create/update/delete 호출 횟수 (테스트용)
    """

    def __init__(self, templates: list[Template] | None = None):
        self._templates: dict[tuple[str, str], Template] = {}
        self.mutations = 0
        for template in templates or []:
            self._templates[template.key] = _copy(template)

    def find_by_id(self, namespace: str, template_id: str) -> Template | None:
        template = self._templates.get((namespace, template_id))
        return _copy(template) if template else None

    def find_by_namespace(self, namespace: str) -> list[Template]:
        return [
            _copy(t) for t in self._templates.values()
            if t.namespace == namespace
        ]

    def find_distinct_namespaces(self) -> list[str]:
        return sorted({t.namespace for t in self._templates.values()})

    def find(
        self,
        query: str | None = None,
        namespace: str | None = None,
    ) -> list[Template]:
        results = [
            _copy(t) for t in self._templates.values()
            if matches(t, query, namespace)
        ]
        return sorted(results, key=lambda t: t.key)

    def create(self, template: Template) -> Template:
        if template.key in self._templates:
            raise StoreError(
                ErrorCodes.TEMPLATE_EXISTS,
                f"Template '{template.namespace}.{template.id}' already exists",
                namespace=template.namespace,
                id=template.id,
            )
        self._templates[template.key] = _copy(template)
        self.mutations += 1
        return _copy(template)

    def update(self, template: Template, existing: Template) -> Template:
        if existing.key not in self._templates:
            raise StoreError(
                ErrorCodes.TEMPLATE_NOT_FOUND,
                f"Template '{existing.namespace}.{existing.id}' not found",
                namespace=existing.namespace,
                id=existing.id,
            )
        updated = Template(
            namespace=existing.namespace,
            id=existing.id,
            content=copy.deepcopy(template.content),
        )
        self._templates[existing.key] = updated
        self.mutations += 1
        return _copy(updated)

    def delete(self, template: Template) -> None:
        if self._templates.pop(template.key, None) is None:
            raise StoreError(
                ErrorCodes.TEMPLATE_NOT_FOUND,
                f"Template '{template.namespace}.{template.id}' not found",
                namespace=template.namespace,
                id=template.id,
            )
        self.mutations += 1


# =============================================================================
# File Store
# =============================================================================


class FileTemplateStore:
    """
    파일 기반 저장소.

    구조:
    <root>/
    ├── .locks/<namespace>.lock
    └── <namespace>/
        └── <id>.yaml     # 문서 형태 (id, namespace, content...)

    열거 순서 = id 정렬 순.
    """

    # 락 timeout (초)
    LOCK_TIMEOUT = 10.0

    def __init__(self, root: Path, lock_timeout: float | None = None):
        """
        Args:
            root: 저장소 루트 경로
            lock_timeout: namespace 락 timeout (None이면 LOCK_TIMEOUT)
        """
        self.root = root
        self.lock_timeout = lock_timeout if lock_timeout is not None else self.LOCK_TIMEOUT
        self._locks_dir = root / STORE_LOCKS_DIR

    @contextmanager
    def _namespace_lock(self, namespace: str) -> Generator[None, None, None]:
        """
        namespace별 락 획득.

        동시성 보호: 같은 namespace에 대한 동시 쓰기 방지.
        여러 호출에 걸친 작업(reconcile 전체)은 보호하지 않음.

        Raises:
            StoreError: STORE_LOCK_TIMEOUT
        """
        self._locks_dir.mkdir(parents=True, exist_ok=True)
        lock_file = self._locks_dir / f"{namespace}.lock"
        lock = FileLock(lock_file, timeout=self.lock_timeout)

        try:
            lock.acquire()
        except Timeout:
            raise StoreError(
                ErrorCodes.STORE_LOCK_TIMEOUT,
                f"Failed to acquire lock for namespace '{namespace}'",
                namespace=namespace,
                timeout=self.lock_timeout,
            ) from None

        try:
            yield
        finally:
            lock.release()

    # =========================================================================
    # Read
    # =========================================================================

    def find_by_id(self, namespace: str, template_id: str) -> Template | None:
        path = self._template_path(namespace, template_id)
        if not path.exists():
            return None
        return self._load(path)

    def find_by_namespace(self, namespace: str) -> list[Template]:
        namespace_dir = self.root / self._safe_segment(namespace, "namespace")
        return self._scan(namespace_dir)

    def find_distinct_namespaces(self) -> list[str]:
        namespaces = set()
        for namespace_dir in self._namespace_dirs():
            for template in self._scan(namespace_dir):
                namespaces.add(template.namespace)
        return sorted(namespaces)

    def find(
        self,
        query: str | None = None,
        namespace: str | None = None,
    ) -> list[Template]:
        results = []
        for namespace_dir in self._namespace_dirs():
            results.extend(
                t for t in self._scan(namespace_dir) if matches(t, query, namespace)
            )
        return sorted(results, key=lambda t: t.key)

    # =========================================================================
    # Write
    # =========================================================================

    def create(self, template: Template) -> Template:
        path = self._template_path(template.namespace, template.id)

        with self._namespace_lock(template.namespace):
            # 중복 체크 (fail-fast)
            if path.exists():
                raise StoreError(
                    ErrorCodes.TEMPLATE_EXISTS,
                    f"Template '{template.namespace}.{template.id}' already exists",
                    namespace=template.namespace,
                    id=template.id,
                )
            self._save(path, template)

        logger.debug(f"Created template {template.namespace}.{template.id}")
        return _copy(template)

    def update(self, template: Template, existing: Template) -> Template:
        path = self._template_path(existing.namespace, existing.id)
        updated = Template(
            namespace=existing.namespace,
            id=existing.id,
            content=copy.deepcopy(template.content),
        )

        with self._namespace_lock(existing.namespace):
            if not path.exists():
                raise StoreError(
                    ErrorCodes.TEMPLATE_NOT_FOUND,
                    f"Template '{existing.namespace}.{existing.id}' not found",
                    namespace=existing.namespace,
                    id=existing.id,
                )
            self._save(path, updated)

        logger.debug(f"Updated template {existing.namespace}.{existing.id}")
        return _copy(updated)

    def delete(self, template: Template) -> None:
        path = self._template_path(template.namespace, template.id)

        with self._namespace_lock(template.namespace):
            if not path.exists():
                raise StoreError(
                    ErrorCodes.TEMPLATE_NOT_FOUND,
                    f"Template '{template.namespace}.{template.id}' not found",
                    namespace=template.namespace,
                    id=template.id,
                )
            path.unlink()

        logger.debug(f"Deleted template {template.namespace}.{template.id}")

    # =========================================================================
    # Internal Helpers
    # =========================================================================

    @staticmethod
    def _safe_segment(value: str, label: str) -> str:
        """경로 조각으로 쓸 수 있는 값인지 확인 (경로 탈출 방지)."""
        if not value or value in (".", "..") or sanitize_for_filename(value) != value:
            raise StoreError(
                ErrorCodes.INVALID_KEY,
                f"{label} '{value}' cannot be stored as a file name",
                value=value,
            )
        return value

    def _template_path(self, namespace: str, template_id: str) -> Path:
        namespace_segment = self._safe_segment(namespace, "namespace")
        id_segment = self._safe_segment(template_id, "id")
        return self.root / namespace_segment / f"{id_segment}{TEMPLATE_FILE_SUFFIX}"

    def _namespace_dirs(self) -> list[Path]:
        if not self.root.exists():
            return []
        return sorted(
            d for d in self.root.iterdir()
            if d.is_dir() and not d.name.startswith(".")
        )

    def _scan(self, namespace_dir: Path) -> list[Template]:
        """namespace 폴더의 템플릿 전체 (손상된 파일은 경고 후 건너뜀)."""
        if not namespace_dir.exists():
            return []

        results = []
        for path in sorted(namespace_dir.glob(f"*{TEMPLATE_FILE_SUFFIX}")):
            try:
                results.append(self._load(path))
            except StoreError as e:
                logger.warning(f"Skipping corrupt template file {path}: {e.message}")
        return results

    def _load(self, path: Path) -> Template:
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
            return Template.from_dict(data)
        except (yaml.YAMLError, KeyError, TypeError, AttributeError) as e:
            raise StoreError(
                ErrorCodes.TEMPLATE_CORRUPT,
                f"Template file '{path.name}' is corrupt",
                path=str(path),
                error=str(e),
            ) from e

    def _save(self, path: Path, template: Template) -> None:
        text = yaml.safe_dump(
            template.to_dict(),
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
        )
        atomic_write_text(path, text)
