"""Tests for the pos-analytics command line against a temporary SQLite file."""

import json

import pytest

from conftest import make_receipt
from pos_analytics.cli import main
from pos_analytics.llm import ChatCompletionsClient


@pytest.fixture
def db_args(tmp_path) -> list[str]:
    args = ["--database-url", f"sqlite:///{tmp_path / 'pos.db'}"]
    assert main([*args, "init-db"]) == 0
    return args


def test_save_and_summarize(db_args, tmp_path, capsys) -> None:
    payload = tmp_path / "receipt.json"
    payload.write_text(
        json.dumps(make_receipt(("팟타이꿍", 2, 13000, "식사류")), ensure_ascii=False), encoding="utf-8"
    )

    assert main([*db_args, "save-receipt", str(payload), "--date", "2025-12-02"]) == 0
    assert main([*db_args, "save-delivery", "--date", "2025-12-02", "--amount", "70,000"]) == 0
    capsys.readouterr()

    assert main([*db_args, "summary", "--start", "2025-12-01", "--end", "2025-12-02"]) == 0
    out = capsys.readouterr().out
    assert "₩26,000" in out
    assert "팟타이꿍 x2" in out
    assert "₩96,000" in out


def test_duplicate_receipt_exits_with_error(db_args, tmp_path, capsys) -> None:
    payload = tmp_path / "receipt.json"
    payload.write_text(json.dumps(make_receipt(("짜조", 1, 6000, "사이드메뉴"))), encoding="utf-8")

    assert main([*db_args, "save-receipt", str(payload), "--date", "2025-12-02"]) == 0
    assert main([*db_args, "save-receipt", str(payload), "--date", "2025-12-02"]) == 1
    assert "already exists" in capsys.readouterr().err

    assert main([*db_args, "delete-order", "--date", "2025-12-02"]) == 0
    assert main([*db_args, "save-receipt", str(payload), "--date", "2025-12-02"]) == 0


def test_coverage_lists_missing_days(db_args, capsys) -> None:
    assert main([*db_args, "coverage", "--start", "2025-12-01", "--end", "2025-12-03"]) == 0
    out = capsys.readouterr().out
    assert "Days without orders          : 3" in out


def test_future_end_date_is_rejected(db_args, capsys) -> None:
    assert main([*db_args, "summary", "--start", "2025-12-01", "--end", "2999-12-31"]) == 1
    assert "after today" in capsys.readouterr().err


def test_unparseable_extraction_prints_raw_response(db_args, tmp_path, monkeypatch, capsys) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.setattr(
        ChatCompletionsClient,
        "complete",
        lambda self, messages, tools=None, **options: {"content": "김치찌개 2 9000 (no JSON)"},
    )
    image = tmp_path / "receipt.jpg"
    image.write_bytes(b"\xff\xd8")

    assert main([*db_args, "ingest-receipt", str(image), "--date", "2025-12-02"]) == 1
    err = capsys.readouterr().err
    assert "ERROR:" in err
    assert "김치찌개 2 9000 (no JSON)" in err


def test_missing_image_exits_with_error(db_args, tmp_path, monkeypatch, capsys) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    assert main([*db_args, "ingest-receipt", str(tmp_path / "nope.jpg"), "--date", "2025-12-02"]) == 1
    assert "Could not read image" in capsys.readouterr().err
