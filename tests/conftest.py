"""
Pytest fixtures for the template registry tests.

구성:
- 저장소 fixture: 메모리 / 파일 (tmp_path)
- 샘플 템플릿, 다중 문서 텍스트
"""

from collections.abc import Callable
from pathlib import Path

import pytest
import yaml

from src.domain.schemas import Template
from src.templates.store import FileTemplateStore, InMemoryTemplateStore

# =============================================================================
# Template Factories
# =============================================================================


def build_template(
    template_id: str,
    namespace: str = "io.kestra.tests",
    description: str | None = None,
    tasks: list[dict] | None = None,
) -> Template:
    """유효한 템플릿 생성 (tasks 기본값 포함)."""
    content: dict = {}
    if description is not None:
        content["description"] = description
    content["tasks"] = tasks if tasks is not None else [
        {"id": f"{template_id}-log", "type": "io.kestra.core.tasks.log.Log"},
    ]
    return Template(namespace=namespace, id=template_id, content=content)


def to_yaml(template: Template) -> str:
    """Template → 단일 YAML 문서."""
    return yaml.safe_dump(template.to_dict(), sort_keys=False, allow_unicode=True)


@pytest.fixture
def make_template() -> Callable[..., Template]:
    """템플릿 팩토리."""
    return build_template


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
def memory_store() -> InMemoryTemplateStore:
    """빈 메모리 저장소."""
    return InMemoryTemplateStore()


@pytest.fixture
def store_root(tmp_path: Path) -> Path:
    """테스트용 파일 저장소 루트."""
    return tmp_path / "store"


@pytest.fixture
def file_store(store_root: Path) -> FileTemplateStore:
    """빈 파일 저장소."""
    return FileTemplateStore(store_root, lock_timeout=1.0)


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path: Path):
    """두 저장소 구현 모두에 대해 실행."""
    if request.param == "memory":
        return InMemoryTemplateStore()
    return FileTemplateStore(tmp_path / "param_store", lock_timeout=1.0)


@pytest.fixture
def seeded_store(store):
    """namespace N에 a, b, c가 있는 저장소."""
    for template_id in ("a", "b", "c"):
        store.create(build_template(template_id, namespace="n", description="old"))
    return store


# =============================================================================
# Document Fixtures
# =============================================================================


@pytest.fixture
def valid_document() -> str:
    """유효한 단일 문서."""
    return to_yaml(build_template("hello", description="Hello template"))


@pytest.fixture
def multi_document() -> str:
    """유효 / 파싱 실패 / 유효 순서의 다중 문서."""
    doc_a = to_yaml(build_template("doc-a"))
    doc_b = "id: [unclosed\nnamespace: io.kestra.tests\n"
    doc_c = to_yaml(build_template("doc-c"))
    return "---\n".join([doc_a, doc_b, doc_c])


@pytest.fixture
def dump_template() -> Callable[[Template], str]:
    """Template → YAML 문서 변환 함수."""
    return to_yaml
