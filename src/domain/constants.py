"""
Domain Constants: 레지스트리 전역 상수.

파일명 정책, 구분자, 검증 패턴 등 시스템 전반에서 사용되는 값들.
"""

import re

# =============================================================================
# Multi-document
# =============================================================================
# 한 텍스트 안의 여러 문서를 나누는 구분자.
# 줄 단위가 아니라 문자열 그대로 분할함 ("a---b" → ["a", "b"]).

DOCUMENT_SEPARATOR = "---"

# =============================================================================
# Store Directory Structure (저장소 디렉토리 구조)
# =============================================================================
# <root>/
# ├── .locks/<namespace>.lock
# └── <namespace>/
#     └── <id>.yaml

STORE_LOCKS_DIR = ".locks"
TEMPLATE_FILE_SUFFIX = ".yaml"

# =============================================================================
# Sync Logs
# =============================================================================

SYNC_LOG_PREFIX = "sync_"

# =============================================================================
# Naming Rules (네이밍 규칙)
# =============================================================================

TEMPLATE_ID_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9._-]*$")
TEMPLATE_ID_MAX_LENGTH = 100

NAMESPACE_PATTERN = re.compile(r"^[a-z0-9][a-z0-9._-]*$")
NAMESPACE_MAX_LENGTH = 150
