import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from LifeMap.app_state import LifeMapApp
from LifeMap.cli import RETRY_MESSAGE, main
from LifeMap.database import RecordStore
from LifeMap.insight.gateway import InsightError
from LifeMap.models import AnalysisResult, ExperienceRelationship

PROFILE_ARGS = ["profile", "--name", "지민", "--birth-year", "2001", "--status", "대학생"]


@pytest.fixture
def db(tmp_path):
    return tmp_path / "cli.db"


def run(db, *args):
    return main(["--db", str(db), *args])


def _experiences(db):
    return RecordStore(db).load_experiences()


def test_profile_add_list(db, capsys):
    assert run(db, *PROFILE_ARGS) == 0
    assert run(db, "add", "--title", "교내 해커톤", "--description", "우승", "--start", "2023-09-01") == 0
    assert run(db, "list") == 0
    out = capsys.readouterr().out
    assert "== 2023 (23세) ==" in out
    assert "교내 해커톤" in out
    (exp,) = _experiences(db)
    assert exp.start_date == "2023.09.01"


def test_blank_description_is_rejected(db, capsys):
    assert run(db, "add", "--title", "t", "--description", "  ") == 1
    assert "제목과 내용을 모두 입력해주세요." in capsys.readouterr().err
    assert _experiences(db) == []


def test_list_without_profile(db, capsys):
    assert run(db, "list") == 0
    assert "프로필이 없습니다" in capsys.readouterr().out


def test_edit_trash_restore(db, capsys):
    run(db, *PROFILE_ARGS)
    run(db, "add", "--title", "t", "--description", "d")
    (exp,) = _experiences(db)

    assert run(db, "edit", exp.id, "--satisfaction", "9", "--category", "custom", "--custom-category", "봉사") == 0
    (edited,) = _experiences(db)
    assert (edited.satisfaction, edited.category, edited.title) == (9, "봉사", "t")

    run(db, "delete", exp.id)
    assert _experiences(db)[0].is_trashed
    capsys.readouterr()
    run(db, "trash")
    assert exp.id in capsys.readouterr().out

    run(db, "restore", exp.id)
    assert not _experiences(db)[0].is_trashed


def test_add_with_oversized_attachment(db, tmp_path, capsys, monkeypatch):
    monkeypatch.setenv("LIFEMAP_ATTACHMENT_MAX_BYTES", "3")
    photo = tmp_path / "photo.jpg"
    photo.write_bytes(b"12345")
    assert run(db, "add", "--title", "t", "--description", "d", "--attach", str(photo)) == 1
    assert "이하여야 합니다" in capsys.readouterr().err
    assert _experiences(db) == []


def test_purge_asks_for_confirmation(db, monkeypatch):
    run(db, *PROFILE_ARGS)
    run(db, "add", "--title", "t", "--description", "d")
    (exp,) = _experiences(db)

    monkeypatch.setattr("builtins.input", lambda prompt: "n")
    run(db, "purge", exp.id)
    assert len(_experiences(db)) == 1

    monkeypatch.setattr("builtins.input", lambda prompt: "y")
    run(db, "purge", exp.id)
    assert _experiences(db) == []


def test_reset_with_yes(db):
    run(db, *PROFILE_ARGS)
    run(db, "add-cards", "c1", "c2")
    assert len(_experiences(db)) == 2
    assert run(db, "reset", "--yes") == 0
    assert RecordStore(db).load() == (None, [])


def test_unknown_card_is_reported(db, capsys):
    assert run(db, "add-cards", "c1", "c404") == 1
    assert "c404" in capsys.readouterr().err
    assert _experiences(db) == []


def _app_with_gateway(db, gateway):
    app = LifeMapApp(store=RecordStore(db), gateway=gateway)
    return app


def test_analyze_writes_graph(db, tmp_path, capsys):
    run(db, *PROFILE_ARGS)
    run(db, "add", "--title", "a", "--description", "d")
    run(db, "add", "--title", "b", "--description", "d")
    a, b = _experiences(db)
    gateway = MagicMock()
    gateway.analyze = AsyncMock(return_value=AnalysisResult(
        summary="요약입니다",
        action_plan=["인턴 지원"],
        relationships=[ExperienceRelationship(source_id=a.id, target_id=b.id, reason="연결")],
    ))
    out_path = tmp_path / "graph.json"

    code = main(["analyze", "--graph-out", str(out_path), "--seed", "3"], app=_app_with_gateway(db, gateway))

    assert code == 0
    assert "요약입니다" in capsys.readouterr().out
    graph = json.loads(out_path.read_text(encoding="utf-8"))
    assert {n["id"] for n in graph["nodes"]} == {a.id, b.id}
    assert graph["edges"][0]["reason"] == "연결"


def test_analyze_failure_shows_retry(db, capsys):
    run(db, *PROFILE_ARGS)
    run(db, "add", "--title", "a", "--description", "d")
    gateway = MagicMock()
    gateway.analyze = AsyncMock(side_effect=InsightError("boom"))
    assert main(["analyze"], app=_app_with_gateway(db, gateway)) == 1
    assert RETRY_MESSAGE in capsys.readouterr().err


def test_checklist_command(db, capsys):
    run(db, *PROFILE_ARGS)
    gateway = MagicMock()
    gateway.generate_checklist = AsyncMock(return_value=["이력서 쓰기"])
    assert main(["checklist", "인턴 지원"], app=_app_with_gateway(db, gateway)) == 0
    assert "- [ ] 이력서 쓰기" in capsys.readouterr().out
