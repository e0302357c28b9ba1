"""
문서 파서: YAML 텍스트 → Template.

파싱 단계에서는 "형태"만 확인:
- YAML 문법
- 빈 문서 아님, mapping 형태
- id, namespace 존재 (스칼라)

필드 값의 규칙(패턴, tasks 등)은 validator.py 담당.
"""

from typing import Any

import yaml

from src.domain.errors import ParseError
from src.domain.schemas import Template

_SCALAR_TYPES = (str, int, float, bool)


def _describe_yaml_error(e: yaml.YAMLError) -> str:
    """YAML 에러를 한 줄 메시지로."""
    mark = getattr(e, "problem_mark", None)
    problem = getattr(e, "problem", None) or str(e)
    if mark is not None:
        return f"Invalid YAML: {problem} (line {mark.line + 1}, column {mark.column + 1})"
    return f"Invalid YAML: {problem}"


def _required_scalar(data: dict[str, Any], key: str) -> str:
    if key not in data or data[key] is None:
        raise ParseError(f"Missing required property '{key}'", property=key)

    value = data[key]
    if not isinstance(value, _SCALAR_TYPES):
        raise ParseError(
            f"Property '{key}' must be a scalar, got {type(value).__name__}",
            property=key,
        )
    return str(value)


def parse_template(text: str) -> Template:
    """
    YAML 텍스트를 Template으로 파싱.

    Args:
        text: 단일 문서 텍스트

    Returns:
        Template

    Raises:
        ParseError: 문법 오류, 빈 문서, mapping 아님, id/namespace 누락
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ParseError(_describe_yaml_error(e)) from e

    if data is None:
        raise ParseError("Empty document")

    if not isinstance(data, dict):
        raise ParseError(
            f"Document must be a mapping, got {type(data).__name__}",
        )

    template_id = _required_scalar(data, "id")
    namespace = _required_scalar(data, "namespace")
    content = {k: v for k, v in data.items() if k not in ("id", "namespace")}

    return Template(namespace=namespace, id=template_id, content=content)
