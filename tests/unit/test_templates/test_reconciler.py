"""
test_reconciler.py - namespace 동기화 테스트

검증:
- diff: 기존 {a,b,c} + desired {b,c,d} → a 삭제, b/c 수정, d 생성
- delete=False: 누락 템플릿 유지
- 멱등성: 같은 desired 두 번 → 생성/삭제 없음
- fail-fast: namespace 불일치, 중복 id → 저장소 변경 0건
- 롤백 없음 / 동시성 경쟁 (알려진 제약)
"""

import pytest

from src.domain.errors import (
    DuplicateIdError,
    NamespaceMismatchError,
    StoreError,
    TemplateValidationError,
)
from src.domain.schemas import Template
from src.templates.reconciler import (
    check_desired_set,
    plan_namespace,
    reconcile_namespace,
)
from src.templates.store import InMemoryTemplateStore


def _ids(templates: list[Template]) -> list[str]:
    return [t.id for t in templates]


def _snapshot(store, namespace: str) -> dict[str, dict]:
    return {t.id: t.content for t in store.find_by_namespace(namespace)}


# =============================================================================
# Diff 정확성
# =============================================================================

class TestReconcileDiff:
    """기존 {a,b,c}, desired {b,c,d}."""

    def test_delete_update_create(self, seeded_store, make_template):
        """a 삭제, b/c 수정, d 생성."""
        desired = [
            make_template("b", namespace="n", description="new"),
            make_template("c", namespace="n", description="new"),
            make_template("d", namespace="n", description="new"),
        ]

        result = reconcile_namespace(seeded_store, "n", desired)

        assert _ids(result.deleted) == ["a"]
        assert _ids(result.updated) == ["b", "c"]
        assert _ids(result.created) == ["d"]
        assert seeded_store.find_by_id("n", "a") is None
        assert sorted(_snapshot(seeded_store, "n")) == ["b", "c", "d"]

    def test_returns_deleted_then_upserted_in_desired_order(self, seeded_store, make_template):
        """반환 순서: 삭제된 것 먼저, 이후 desired 순서."""
        desired = [
            make_template("d", namespace="n"),
            make_template("c", namespace="n"),
            make_template("b", namespace="n"),
        ]

        result = reconcile_namespace(seeded_store, "n", desired)

        assert _ids(result.templates) == ["a", "d", "c", "b"]
        assert _ids(result.upserted) == ["d", "c", "b"]

    def test_update_replaces_content(self, seeded_store, make_template):
        """update = content 전체 교체."""
        desired = [make_template(
            "b",
            namespace="n",
            tasks=[{"id": "only", "type": "io.kestra.core.tasks.debugs.Return"}],
        )]

        reconcile_namespace(seeded_store, "n", desired)

        stored = seeded_store.find_by_id("n", "b")
        assert stored.content == {
            "tasks": [{"id": "only", "type": "io.kestra.core.tasks.debugs.Return"}],
        }
        assert "description" not in stored.content

    def test_other_namespaces_untouched(self, seeded_store, make_template):
        """다른 namespace는 삭제 대상 아님."""
        seeded_store.create(make_template("a", namespace="other"))

        reconcile_namespace(seeded_store, "n", [make_template("d", namespace="n")])

        assert seeded_store.find_by_id("other", "a") is not None

    def test_empty_desired_set_deletes_all(self, seeded_store):
        """빈 desired + delete=True → namespace 비움."""
        result = reconcile_namespace(seeded_store, "n", [])

        assert sorted(_ids(result.deleted)) == ["a", "b", "c"]
        assert result.upserted == []
        assert seeded_store.find_by_namespace("n") == []

    def test_empty_namespace_creates_all(self, store, make_template):
        """기존 템플릿 없음 → 전부 생성."""
        desired = [make_template("x", namespace="n"), make_template("y", namespace="n")]

        result = reconcile_namespace(store, "n", desired)

        assert result.deleted == []
        assert _ids(result.created) == ["x", "y"]


# =============================================================================
# delete=False
# =============================================================================

class TestReconcileNoDelete:
    """누락 템플릿 유지 모드."""

    def test_missing_template_kept(self, seeded_store, make_template):
        """a는 그대로, b/c/d만 upsert."""
        desired = [
            make_template("b", namespace="n", description="new"),
            make_template("c", namespace="n", description="new"),
            make_template("d", namespace="n", description="new"),
        ]

        result = reconcile_namespace(seeded_store, "n", desired, delete=False)

        assert result.deleted == []
        assert _ids(result.templates) == ["b", "c", "d"]

        kept = seeded_store.find_by_id("n", "a")
        assert kept is not None
        assert kept.content["description"] == "old"


# =============================================================================
# 멱등성
# =============================================================================

class TestReconcileIdempotence:
    """같은 desired set 반복 적용."""

    def test_second_run_has_no_creates_or_deletes(self, seeded_store, make_template):
        desired = [
            make_template("b", namespace="n", description="new"),
            make_template("d", namespace="n", description="new"),
        ]

        first = reconcile_namespace(seeded_store, "n", desired)
        state_after_first = _snapshot(seeded_store, "n")

        second = reconcile_namespace(seeded_store, "n", desired)

        assert second.deleted == []
        assert second.created == []
        assert _ids(second.updated) == ["b", "d"]
        assert _ids(second.templates) == _ids(first.upserted)
        assert _snapshot(seeded_store, "n") == state_after_first

    def test_plan_after_reconcile_has_no_changes(self, seeded_store, make_template):
        """동기화 후 plan → 변경 없음."""
        desired = [make_template("b", namespace="n", description="new")]
        reconcile_namespace(seeded_store, "n", desired)

        plan = plan_namespace(seeded_store, "n", desired)

        assert not plan.has_changes
        assert plan.unchanged == ["b"]


# =============================================================================
# Fail-fast: 템플릿별 규칙
# =============================================================================

class TestTemplateRules:
    """desired set 안의 규칙 위반 템플릿 → 삭제 단계 전에 거절."""

    def test_invalid_template_rejected_before_delete(self, seeded_store):
        desired = [Template(namespace="n", id="bad/id", content={"tasks": []})]

        with pytest.raises(TemplateValidationError) as exc_info:
            reconcile_namespace(seeded_store, "n", desired)

        paths = [v.path for v in exc_info.value.violations]
        assert paths == ["templates[0].id", "templates[0].tasks"]
        assert exc_info.value.code == "VALIDATION_ERROR"
        assert _ids(seeded_store.find_by_namespace("n")) == ["a", "b", "c"]

    def test_paths_indexed_by_position(self, memory_store, make_template):
        desired = [
            make_template("ok", namespace="n"),
            Template(namespace="n", id="no-tasks"),
        ]

        with pytest.raises(TemplateValidationError) as exc_info:
            reconcile_namespace(memory_store, "n", desired)

        assert str(exc_info.value) == "templates[1].tasks: must not be null"
        assert exc_info.value.violations[0].root.id == "no-tasks"
        assert memory_store.mutations == 0

    def test_checked_before_namespace(self, memory_store):
        desired = [Template(namespace="m", id="x")]

        with pytest.raises(TemplateValidationError) as exc_info:
            reconcile_namespace(memory_store, "n", desired)

        assert not isinstance(exc_info.value, NamespaceMismatchError)

    def test_plan_rejects_invalid_template(self, seeded_store):
        with pytest.raises(TemplateValidationError):
            plan_namespace(seeded_store, "n", [Template(namespace="n", id="bad/id")])

    def test_check_desired_set_reports_rules(self):
        violations = check_desired_set("n", [Template(namespace="n", id="abc\n")])

        assert [v.path for v in violations] == ["templates[0].id", "templates[0].tasks"]


# =============================================================================
# Fail-fast: namespace 불일치
# =============================================================================

class TestNamespaceMismatch:
    """desired set에 다른 namespace 포함."""

    def test_raises_and_names_offender(self, seeded_store, make_template):
        desired = [
            make_template("x", namespace="n"),
            make_template("y", namespace="m"),
        ]
        before = _snapshot(seeded_store, "n")

        with pytest.raises(NamespaceMismatchError) as exc_info:
            reconcile_namespace(seeded_store, "n", desired)

        violations = exc_info.value.violations
        assert len(violations) == 1
        assert violations[0].root.id == "y"
        assert violations[0].invalid_value == "m"
        assert violations[0].path == "template.namespace"
        assert _snapshot(seeded_store, "n") == before
        assert seeded_store.find_by_id("m", "y") is None

    def test_reports_all_offenders(self, memory_store, make_template):
        """첫 위반만이 아니라 전체 보고."""
        desired = [
            make_template("x", namespace="m1"),
            make_template("y", namespace="n"),
            make_template("z", namespace="m2"),
        ]

        with pytest.raises(NamespaceMismatchError) as exc_info:
            reconcile_namespace(memory_store, "n", desired)

        offenders = {(v.root.id, v.invalid_value) for v in exc_info.value.violations}
        assert offenders == {("x", "m1"), ("z", "m2")}
        assert memory_store.mutations == 0

    def test_checked_before_duplicates(self, memory_store, make_template):
        """namespace 위반과 중복이 함께 있으면 namespace 에러."""
        desired = [
            make_template("x", namespace="n"),
            make_template("x", namespace="m"),
        ]

        with pytest.raises(NamespaceMismatchError):
            reconcile_namespace(memory_store, "n", desired)

    def test_is_validation_error(self, memory_store, make_template):
        with pytest.raises(TemplateValidationError) as exc_info:
            reconcile_namespace(memory_store, "n", [make_template("x", namespace="m")])

        assert exc_info.value.code == "NAMESPACE_MISMATCH"
        assert "template.namespace: Template namespace is invalid" in str(exc_info.value)


# =============================================================================
# Fail-fast: 중복 id
# =============================================================================

class TestDuplicateIds:
    """desired set 안의 중복 id."""

    def test_raises_with_context(self, seeded_store, make_template):
        desired = [
            make_template("x", namespace="n"),
            make_template("x", namespace="n"),
        ]
        before = _snapshot(seeded_store, "n")

        with pytest.raises(DuplicateIdError) as exc_info:
            reconcile_namespace(seeded_store, "n", desired)

        error = exc_info.value
        assert error.ids == ["x", "x"]
        assert error.distinct_ids == ["x"]
        assert len(error.violations) == 1
        assert error.violations[0].message == "Duplicate template id"
        assert _snapshot(seeded_store, "n") == before

    def test_no_deletion_on_duplicates(self, seeded_store, make_template):
        """delete=True여도 삭제 단계 진입 전 실패."""
        desired = [make_template("b", namespace="n"), make_template("b", namespace="n")]

        with pytest.raises(DuplicateIdError):
            reconcile_namespace(seeded_store, "n", desired)

        assert seeded_store.find_by_id("n", "a") is not None


# =============================================================================
# check_desired_set (결과 타입 형태)
# =============================================================================

class TestCheckDesiredSet:
    """예외 없이 위반 목록 반환."""

    def test_valid_set(self, make_template):
        assert check_desired_set("n", [make_template("a", namespace="n")]) == []

    def test_namespace_violations(self, make_template):
        violations = check_desired_set("n", [make_template("a", namespace="m")])

        assert [v.message for v in violations] == ["Template namespace is invalid"]

    def test_duplicate_violation(self, make_template):
        templates = [make_template("a", namespace="n"), make_template("a", namespace="n")]

        violations = check_desired_set("n", templates)

        assert len(violations) == 1
        assert violations[0].invalid_value == ["a"]


# =============================================================================
# plan_namespace
# =============================================================================

class TestPlanNamespace:
    """dry-run."""

    def test_plan_matches_diff(self, seeded_store, make_template):
        desired = [
            make_template("b", namespace="n", description="old"),
            make_template("c", namespace="n", description="new"),
            make_template("d", namespace="n"),
        ]

        plan = plan_namespace(seeded_store, "n", desired)

        assert plan.to_delete == ["a"]
        assert plan.to_create == ["d"]
        assert plan.to_update == ["c"]
        assert plan.unchanged == ["b"]

    def test_plan_does_not_mutate(self, memory_store, make_template):
        memory_store.create(make_template("a", namespace="n"))
        before = memory_store.mutations

        plan_namespace(memory_store, "n", [make_template("b", namespace="n")])

        assert memory_store.mutations == before
        assert memory_store.find_by_id("n", "a") is not None

    def test_plan_without_delete(self, seeded_store):
        plan = plan_namespace(seeded_store, "n", [], delete=False)

        assert plan.to_delete == []
        assert not plan.has_changes

    def test_plan_rejects_mismatch(self, memory_store, make_template):
        with pytest.raises(NamespaceMismatchError):
            plan_namespace(memory_store, "n", [make_template("a", namespace="m")])


# =============================================================================
# 알려진 제약: 롤백 없음, 동시성 경쟁
# =============================================================================

class _FailingCreateStore(InMemoryTemplateStore):
    """특정 id 생성 시 실패하는 저장소."""

    def __init__(self, fail_on: str, templates=None):
        super().__init__(templates)
        self.fail_on = fail_on

    def create(self, template: Template) -> Template:
        if template.id == self.fail_on:
            raise StoreError("STORE_DOWN", "simulated failure", id=template.id)
        return super().create(template)


class _RacingStore(InMemoryTemplateStore):
    """삭제 단계 조회 직후 다른 작성자가 템플릿을 추가하는 저장소."""

    def __init__(self, intruder: Template, templates=None):
        super().__init__(templates)
        self.intruder = intruder

    def find_by_namespace(self, namespace: str) -> list[Template]:
        snapshot = super().find_by_namespace(namespace)
        if self.intruder is not None:
            super().create(self.intruder)
            self.intruder = None
        return snapshot


class TestKnownLimitations:
    """트랜잭션/락 없음 (의도된 제약, 보장 대상 아님)."""

    def test_deletions_not_rolled_back_on_store_failure(self, make_template):
        store = _FailingCreateStore(
            "boom",
            templates=[make_template("a", namespace="n")],
        )

        with pytest.raises(StoreError):
            reconcile_namespace(
                store, "n",
                [make_template("ok", namespace="n"), make_template("boom", namespace="n")],
            )

        assert store.find_by_id("n", "a") is None
        assert store.find_by_id("n", "ok") is not None
        assert store.find_by_id("n", "boom") is None

    def test_concurrent_create_between_passes_survives(self, make_template):
        """삭제 단계 이후 끼어든 템플릿은 삭제되지 않음 (race)."""
        store = _RacingStore(
            intruder=make_template("late", namespace="n"),
            templates=[make_template("a", namespace="n")],
        )

        result = reconcile_namespace(store, "n", [make_template("b", namespace="n")])

        assert _ids(result.deleted) == ["a"]
        assert store.find_by_id("n", "late") is not None
