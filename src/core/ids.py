"""
ID 생성: run_id

규칙:
- 동기화 1회 = run_id 1개
- 템플릿 id는 사용자가 정하므로 여기서 만들지 않음
"""

import uuid
from datetime import UTC, datetime


def generate_run_id() -> str:
    """
    Run ID 생성.

    고유성 보장: UUID v4
    포맷: RUN-{timestamp}-{uuid[:8]}

    Returns:
        run_id 문자열
    """
    now = datetime.now(UTC)
    timestamp = now.strftime("%Y%m%d%H%M%S")
    unique = uuid.uuid4().hex[:8]

    return f"RUN-{timestamp}-{unique}"


def sanitize_for_filename(value: str) -> str:
    """
    파일명에 사용할 수 있도록 문자열 정리.

    - ASCII 알파벳/숫자/점/밑줄/하이픈만 유지
    - 그 외 문자 → 밑줄
    - 빈 결과 → "UNKNOWN"
    """
    sanitized = ""
    for c in value:
        if c.isascii() and (c.isalnum() or c in "._-"):
            sanitized += c
        else:
            sanitized += "_"

    # 연속 밑줄 정리
    while "__" in sanitized:
        sanitized = sanitized.replace("__", "_")

    sanitized = sanitized.strip("_")
    return sanitized if sanitized else "UNKNOWN"
