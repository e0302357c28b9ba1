"""
배치 검증: 여러 문서가 담긴 텍스트 → 문서별 ValidationResult.

규칙:
- "---" 문자열 그대로 분할 (앞/뒤 빈 조각도 결과에 포함, 건너뛰지 않음)
- 한 문서의 실패가 배치 전체를 중단시키지 않음
- 결과 개수 = 조각 개수, index는 0부터 빈틈 없이 증가
"""

from collections.abc import Callable

from src.domain.constants import DOCUMENT_SEPARATOR
from src.domain.errors import ParseError, TemplateValidationError
from src.domain.schemas import Template, ValidationResult
from src.templates.parser import parse_template
from src.templates.validator import validate_template


def split_documents(raw_text: str) -> list[str]:
    """구분자로 문서 텍스트 분할. 빈 조각 유지."""
    return raw_text.split(DOCUMENT_SEPARATOR)


def validate_document(
    index: int,
    text: str,
    parser: Callable[[str], Template] = parse_template,
    validator: Callable[[Template], None] = validate_template,
) -> ValidationResult:
    """
    단일 문서 파싱 + 검증.

    파싱이 성공하면 검증이 실패해도 flow_id/namespace는 채워짐.
    """
    result = ValidationResult(index=index)
    try:
        template = parser(text)
    except ParseError as e:
        result.constraints = e.message
        return result

    result.flow_id = template.id
    result.namespace = template.namespace

    try:
        validator(template)
    except TemplateValidationError as e:
        result.constraints = e.message

    return result


def validate_batch(
    raw_text: str,
    parser: Callable[[str], Template] = parse_template,
    validator: Callable[[Template], None] = validate_template,
) -> list[ValidationResult]:
    """
    다중 문서 텍스트 검증.

    Args:
        raw_text: "---"로 구분된 문서들
        parser: 문서 파서 (테스트 시 교체 가능)
        validator: 단일 문서 검증기

    Returns:
        입력 순서의 ValidationResult 목록 (예외 발생 안 함)
    """
    return [
        validate_document(index, text, parser, validator)
        for index, text in enumerate(split_documents(raw_text))
    ]
