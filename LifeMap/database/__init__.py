# Local key/value persistence for LifeMap

import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

import duckdb
from pydantic import ValidationError

from LifeMap.config import Settings
from LifeMap.database.migration import split_experiences
from LifeMap.models import Experience, ExperienceList, UserProfile

log = logging.getLogger(__name__)

PROFILE_KEY = "userProfile"
EXPERIENCES_KEY = "experiences"

SCHEMA_QUERIES = [
    '''
    CREATE TABLE IF NOT EXISTS kv_store (
        key VARCHAR PRIMARY KEY,
        value VARCHAR
    );
    ''',
]


def get_connection(db_path: Path):
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(db_path))


def init_database(db_path: Path):
    with get_connection(db_path) as conn:
        for query in SCHEMA_QUERIES:
            conn.execute(query)


class RecordStore:
    """
    Persists the user profile and the experience list as two named JSON blobs.

    Every save overwrites the whole blob. Reads never fail: a missing database,
    missing key or unparseable blob all load as "no data". Stored records that
    cannot be read are held as raw JSON and written back with every save.
    """

    def __init__(self, db_path: Optional[Path] = None, settings: Optional[Settings] = None):
        settings = settings or Settings()
        self.db_path = Path(db_path) if db_path is not None else settings.storage_path
        self._initialized = False
        self.unreadable: List[Any] = []

    # --------------- reads ------------------------------------------------
    def _read_blob(self, key: str) -> Optional[str]:
        if not self.db_path.exists():
            return None
        try:
            with duckdb.connect(str(self.db_path)) as conn:
                row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        except duckdb.Error as e:
            log.warning(f"Could not read '{key}' from {self.db_path}: {e}")
            return None
        return row[0] if row else None

    def load_profile(self) -> Optional[UserProfile]:
        blob = self._read_blob(PROFILE_KEY)
        if not blob:
            return None
        try:
            data = json.loads(blob)
            if not isinstance(data, dict):
                return None
            return UserProfile.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            log.warning(f"Stored profile is unreadable, treating as absent: {e}")
            return None

    def load_experiences(self) -> List[Experience]:
        self.unreadable = []
        blob = self._read_blob(EXPERIENCES_KEY)
        if not blob:
            return []
        try:
            data = json.loads(blob)
        except json.JSONDecodeError as e:
            log.warning(f"Stored experiences are unreadable, treating as empty: {e}")
            return []
        experiences, self.unreadable = split_experiences(data)
        return experiences

    def load(self) -> Tuple[Optional[UserProfile], List[Experience]]:
        return self.load_profile(), self.load_experiences()

    # --------------- writes -----------------------------------------------
    def _ensure_schema(self) -> None:
        if not self._initialized:
            init_database(self.db_path)
            self._initialized = True

    def _write_blob(self, key: str, value: str) -> None:
        self._ensure_schema()
        with get_connection(self.db_path) as conn:
            conn.execute(
                "INSERT INTO kv_store (key, value) VALUES (?, ?) "
                "ON CONFLICT (key) DO UPDATE SET value = excluded.value",
                (key, value),
            )

    def save_profile(self, profile: UserProfile) -> None:
        self._write_blob(PROFILE_KEY, profile.model_dump_json(by_alias=True))
        log.debug(f"Saved profile for {profile.name}")

    def save_experiences(self, experiences: Sequence[Experience]) -> None:
        records = ExperienceList(list(experiences)).model_dump(mode="json", by_alias=True, exclude_none=True)
        payload = json.dumps(records + self.unreadable, ensure_ascii=False)
        self._write_blob(EXPERIENCES_KEY, payload)
        log.debug(f"Saved {len(experiences)} experiences")

    def reset(self) -> None:
        """Remove both blobs in one transaction."""
        self._ensure_schema()
        with get_connection(self.db_path) as conn:
            conn.execute("BEGIN TRANSACTION")
            try:
                conn.execute("DELETE FROM kv_store WHERE key IN (?, ?)", (PROFILE_KEY, EXPERIENCES_KEY))
                conn.execute("COMMIT")
            except duckdb.Error:
                conn.execute("ROLLBACK")
                raise
        self.unreadable = []
        log.info(f"Cleared all stored data in {self.db_path}")
