"""
test_atomic.py - 원자적 파일 쓰기 테스트

DoD:
- 부모 디렉토리 자동 생성
- 덮어쓰기 후 temp 파일 없음
- 쓰기 실패 시 원본 유지
"""

import json
import os
from pathlib import Path

import pytest

from src.core.atomic import atomic_write_json, atomic_write_text


class TestAtomicWriteText:
    """atomic_write_text 함수 테스트."""

    def test_creates_parent_dirs(self, tmp_path: Path):
        path = tmp_path / "a" / "b" / "file.yaml"

        atomic_write_text(path, "id: a\n")

        assert path.read_text(encoding="utf-8") == "id: a\n"

    def test_overwrite_leaves_no_temp(self, tmp_path: Path):
        path = tmp_path / "file.yaml"

        atomic_write_text(path, "v1")
        atomic_write_text(path, "v2")

        assert path.read_text(encoding="utf-8") == "v2"
        assert list(tmp_path.glob("*.tmp")) == []

    def test_failure_keeps_original(self, tmp_path: Path, monkeypatch):
        path = tmp_path / "file.yaml"
        atomic_write_text(path, "original")

        def broken_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", broken_replace)

        with pytest.raises(OSError):
            atomic_write_text(path, "new")

        assert path.read_text(encoding="utf-8") == "original"
        assert list(tmp_path.glob("*.tmp")) == []


def test_atomic_write_json(tmp_path: Path):
    path = tmp_path / "log.json"

    atomic_write_json(path, {"namespace": "한글", "events": []})

    assert json.loads(path.read_text(encoding="utf-8")) == {"namespace": "한글", "events": []}
    assert "한글" in path.read_text(encoding="utf-8")
