import pytest

from LifeMap.database.migration import (
    migrate_experience,
    normalize_record,
    split_experiences,
)


def test_legacy_fields_fold_into_canonical():
    exp = migrate_experience({
        "id": "old",
        "title": "동아리 회장",
        "description": "1년간 운영",
        "date": "2021-05-04",
        "energyLevel": 7,
    })
    assert exp.start_date == "2021.05.04"
    assert exp.end_date == "2021.05.04"
    assert exp.satisfaction == 7
    assert "date" not in exp.model_dump(by_alias=True)


def test_canonical_fields_win_over_legacy():
    record = normalize_record({
        "id": "x",
        "title": "t",
        "description": "d",
        "startDate": "2022.01.01",
        "endDate": "2022.02.01",
        "date": "2010-01-01",
        "satisfaction": 3,
        "energyLevel": 9,
    })
    assert record["startDate"] == "2022.01.01"
    assert record["endDate"] == "2022.02.01"
    assert record["satisfaction"] == 3
    assert "date" not in record and "energyLevel" not in record


def test_missing_end_date_uses_start():
    exp = migrate_experience({"id": "x", "title": "t", "description": "d", "startDate": "2020-03-01"})
    assert exp.end_date == "2020.03.01"


def test_defaults_filled_and_id_generated():
    exp = migrate_experience({"title": "t", "description": "d", "category": None, "energyLevel": 42})
    assert exp.id
    assert exp.category == ""
    assert exp.satisfaction == 10
    assert exp.tags == [] and exp.attachments == []
    assert not exp.is_trashed


def test_unreadable_records_are_set_aside(caplog):
    bad = {"id": "bad", "title": "t", "description": "d", "deletedAt": "not a timestamp"}
    loaded, unreadable = split_experiences([
        {"id": "good", "title": "t", "description": "d"},
        bad,
        "not an object",
    ])
    assert [e.id for e in loaded] == ["good"]
    assert unreadable == [bad, "not an object"]
    assert "unreadable stored experience 'bad'" in caplog.text


def test_non_list_blob_is_empty():
    assert split_experiences({"id": "x"}) == ([], [])


@pytest.mark.parametrize("value, expected", [
    (["기획", "개발"], "기획\n개발"),
    (42, "42"),
    (None, ""),
    ("그대로", "그대로"),
])
def test_text_fields_are_coerced_to_strings(value, expected):
    exp = migrate_experience({"id": "x", "title": "t", "description": value, "category": value, "emotion": value})
    assert exp.description == expected
    assert exp.category == expected
    assert exp.emotion == expected


def test_malformed_attachments_are_dropped_individually():
    exp = migrate_experience({
        "id": "x",
        "title": "t",
        "description": "d",
        "attachments": [
            {"id": "f", "name": "a.txt", "type": "text/plain", "data": "aGk="},
            {"name": "no id or data"},
            "not an object",
        ],
    })
    assert [a.id for a in exp.attachments] == ["f"]
