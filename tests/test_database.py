import json

import duckdb

from LifeMap.database import EXPERIENCES_KEY, PROFILE_KEY, RecordStore, init_database
from LifeMap.models import Attachment, ExperienceDraft, UserProfile
from LifeMap.timeline.lifecycle import ExperienceLifecycle


def test_database_schema_creation(tmp_path):
    db_path = tmp_path / "nested" / "lifemap.db"
    init_database(db_path)
    assert db_path.exists()
    with duckdb.connect(str(db_path)) as conn:
        tables = set(row[0] for row in conn.execute("SHOW TABLES").fetchall())
        assert "kv_store" in tables


def test_load_without_database_is_empty(tmp_path):
    store = RecordStore(tmp_path / "missing.db")
    assert store.load() == (None, [])
    assert not (tmp_path / "missing.db").exists()


def test_round_trip(store, make_experience):
    profile = UserProfile(name="지민", birth_year=2001, status="대학생")
    exp = make_experience("a", attachments=[Attachment(id="f", name="a.txt", mime_type="text/plain", data="aGk=")])
    store.save_profile(profile)
    store.save_experiences([exp])

    loaded_profile, loaded = store.load()
    assert loaded_profile == profile
    assert loaded == [exp]


def test_blobs_use_camel_case_keys(store, make_experience):
    store.save_profile(UserProfile(name="지민", birth_year=2001, status="대학생"))
    store.save_experiences([make_experience("a", attachments=[
        Attachment(id="f", name="a.txt", mime_type="text/plain", data="aGk="),
    ])])
    profile_blob = json.loads(store._read_blob(PROFILE_KEY))
    experiences_blob = json.loads(store._read_blob(EXPERIENCES_KEY))
    assert profile_blob == {"name": "지민", "birthYear": 2001, "status": "대학생"}
    assert "startDate" in experiences_blob[0]
    assert "deletedAt" not in experiences_blob[0]
    assert experiences_blob[0]["attachments"][0]["type"] == "text/plain"


def test_save_overwrites_whole_blob(store, make_experience):
    store.save_experiences([make_experience("a"), make_experience("b")])
    store.save_experiences([make_experience("b")])
    assert [e.id for e in store.load_experiences()] == ["b"]


def test_corrupt_blobs_load_as_empty(store):
    store._write_blob(EXPERIENCES_KEY, "{not json")
    store._write_blob(PROFILE_KEY, "[]")
    assert store.load() == (None, [])


def test_legacy_blob_is_migrated(store):
    store._write_blob(EXPERIENCES_KEY, json.dumps([
        {"id": "old", "title": "t", "description": "d", "date": "2019-09-01", "energyLevel": 8},
    ]))
    (exp,) = store.load_experiences()
    assert exp.start_date == "2019.09.01"
    assert exp.satisfaction == 8


def test_reset_clears_both_collections(store, make_experience):
    store.save_profile(UserProfile(name="지민", birth_year=2001, status="대학생"))
    store.save_experiences([make_experience("a")])
    store.reset()
    assert store.load() == (None, [])


def test_list_description_survives_load_and_next_save(store, settings):
    store._write_blob(EXPERIENCES_KEY, json.dumps([
        {"id": "keep", "title": "앱 개발", "description": ["기획", "개발"], "startDate": "2023.03.01"},
    ], ensure_ascii=False))
    _, loaded = store.load()
    lifecycle = ExperienceLifecycle(store, loaded, settings=settings)
    lifecycle.create(ExperienceDraft(title="new", description="d"))

    stored = json.loads(store._read_blob(EXPERIENCES_KEY))
    assert stored[0]["id"] == "keep"
    assert stored[0]["description"] == "기획\n개발"
    assert len(stored) == 2


def test_unreadable_records_are_written_back_unchanged(store, make_experience):
    bad = {"id": "bad", "title": "t", "description": "d", "deletedAt": "not a timestamp"}
    store._write_blob(EXPERIENCES_KEY, json.dumps([bad, "stray"]))
    assert store.load_experiences() == []

    store.save_experiences([make_experience("a")])
    stored = json.loads(store._read_blob(EXPERIENCES_KEY))
    assert stored[1:] == [bad, "stray"]
    assert [e.id for e in store.load_experiences()] == ["a"]


def test_reset_forgets_unreadable_records(store, make_experience):
    store._write_blob(EXPERIENCES_KEY, json.dumps([{"id": "bad", "title": "t", "description": "d", "deletedAt": "x"}]))
    store.load_experiences()
    store.reset()
    store.save_experiences([make_experience("a")])
    assert len(json.loads(store._read_blob(EXPERIENCES_KEY))) == 1
