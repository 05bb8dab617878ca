from datetime import datetime, timedelta, timezone

import pytest

from LifeMap.config import Settings
from LifeMap.database import RecordStore
from LifeMap.models import Experience


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def settings(tmp_path):
    return Settings(storage_path=tmp_path / "lifemap.db")


@pytest.fixture
def store(settings):
    return RecordStore(settings.storage_path, settings)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def make_experience():
    def _make(id, start_date="2023.01.01", **overrides):
        fields = dict(
            id=id,
            title=f"title {id}",
            description=f"description {id}",
            start_date=start_date,
            end_date=start_date,
            category="대외활동",
            emotion="즐거움",
        )
        fields.update(overrides)
        return Experience(**fields)
    return _make
