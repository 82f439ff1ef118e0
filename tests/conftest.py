from datetime import datetime, timezone

import pytest

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
USER = "user-1"


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_prep.db")
    return db_path


class FixedRng:
    """Stands in for random.Random with a fixed draw and no-op shuffle."""

    def __init__(self, value: float):
        self.value = value

    def random(self) -> float:
        return self.value

    def shuffle(self, items) -> None:
        pass
