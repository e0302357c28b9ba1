#!/usr/bin/env python3
"""
sync_templates.py - 다중 문서 YAML 파일 → namespace 동기화 스크립트

동작:
1. 파일 전체를 "---" 기준으로 나눠 문서별 검증
2. 하나라도 실패하면 문서별 사유 출력 후 종료 (저장소 변경 없음)
3. 모두 유효하면 namespace 동기화 (desired에 없는 템플릿은 기본 삭제)

주의:
- 파일 맨 앞/맨 뒤의 "---"도 빈 문서로 취급되어 검증 실패로 보고됨

종료 코드:
- 0: 성공
- 1: 문서 검증 실패 / 입력 파일 없음
- 2: 동기화 거절 (namespace 불일치, 중복 id)

사용법:
    # 검증만
    uv run python scripts/sync_templates.py templates.yaml --namespace io.kestra --validate-only

    # 변경 계획만 출력 (dry-run)
    uv run python scripts/sync_templates.py templates.yaml --namespace io.kestra --dry-run

    # 실제 동기화 (누락 템플릿 유지)
    uv run python scripts/sync_templates.py templates.yaml --namespace io.kestra --no-delete
"""

import argparse
import logging
import sys
from pathlib import Path

# src 패키지 임포트를 위한 경로 추가
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.config import StoreConfig, SyncConfig, load_config  # noqa: E402
from src.domain.errors import TemplateValidationError  # noqa: E402
from src.templates.batch import split_documents  # noqa: E402
from src.templates.manager import TemplateManager  # noqa: E402
from src.templates.parser import parse_template  # noqa: E402
from src.templates.store import FileTemplateStore  # noqa: E402

# 로깅 설정
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_REJECTED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="다중 문서 YAML 파일로 namespace 템플릿 동기화",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("file", type=str, help="다중 문서 YAML 파일")
    parser.add_argument(
        "--namespace",
        type=str,
        required=True,
        help="동기화 대상 namespace",
    )
    parser.add_argument(
        "--root",
        type=str,
        default=None,
        help="저장소 루트 (기본: default.yaml의 store.root)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="설정 파일 경로 (기본: default.yaml)",
    )
    parser.add_argument(
        "--no-delete",
        action="store_true",
        help="파일에 없는 기존 템플릿을 삭제하지 않음",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="변경 계획만 출력 (저장소 변경 없음)",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="문서 검증만 수행",
    )
    return parser


def run(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    source = Path(args.file)
    if not source.exists():
        logger.error(f"입력 파일 없음: {source}")
        return EXIT_INVALID

    config = load_config(Path(args.config) if args.config else None)
    store_config = StoreConfig.from_config(config)
    sync_config = SyncConfig.from_config(config)

    root = Path(args.root) if args.root else store_config.root
    store = FileTemplateStore(root, lock_timeout=store_config.lock_timeout)
    manager = TemplateManager(store, logs_dir=sync_config.logs_dir)

    raw_text = source.read_text(encoding="utf-8")

    # 1. 문서별 검증
    results = manager.validate_templates(raw_text)
    invalid = [r for r in results if not r.is_valid]
    for r in invalid:
        label = f"{r.namespace}.{r.flow_id}" if r.flow_id else "(parse failed)"
        logger.error(f"  문서 #{r.index} {label}: {r.constraints}")

    if invalid:
        logger.error(f"검증 실패: {len(invalid)}/{len(results)} 문서")
        return EXIT_INVALID

    logger.info(f"검증 통과: {len(results)} 문서")
    if args.validate_only:
        return EXIT_OK

    templates = [parse_template(text) for text in split_documents(raw_text)]
    delete = sync_config.delete_missing and not args.no_delete

    try:
        # 2. dry-run
        if args.dry_run:
            plan = manager.plan_namespace(args.namespace, templates, delete=delete)
            logger.info("=" * 50)
            logger.info(f"DRY-RUN: namespace '{plan.namespace}'")
            logger.info(f"  삭제: {plan.to_delete}")
            logger.info(f"  생성: {plan.to_create}")
            logger.info(f"  수정: {plan.to_update}")
            logger.info(f"  변경 없음: {plan.unchanged}")
            return EXIT_OK

        # 3. 동기화
        result = manager.reconcile(args.namespace, templates, delete=delete)
    except TemplateValidationError as e:
        logger.error(f"동기화 거절 [{e.code}]")
        for violation in e.violations:
            logger.error(f"  - {violation}")
        return EXIT_REJECTED

    logger.info("=" * 50)
    logger.info(f"동기화 완료: namespace '{result.namespace}'")
    logger.info(
        f"  삭제 {len(result.deleted)}, 수정 {len(result.updated)}, "
        f"생성 {len(result.created)}"
    )
    return EXIT_OK


def main() -> int:
    return run()


if __name__ == "__main__":
    sys.exit(main())
