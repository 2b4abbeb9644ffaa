import pytest
from pydantic import ValidationError

from pingwatch.config import Settings


def test_defaults():
    cfg = Settings()
    assert cfg.PROBE_INTERVAL_SECONDS == 15
    assert cfg.PROBE_TIMEOUT_SECONDS == 10.0
    assert cfg.RETENTION_HORIZON_SECONDS == 3 * 24 * 60 * 60


def test_timeout_must_be_shorter_than_interval():
    with pytest.raises(ValidationError):
        Settings(PROBE_INTERVAL_SECONDS=10, PROBE_TIMEOUT_SECONDS=10)


@pytest.mark.parametrize("field", [
    "PROBE_INTERVAL_SECONDS",
    "AVG_SHORT_HORIZON_SECONDS",
    "RETENTION_HORIZON_SECONDS",
    "RETENTION_SWEEP_INTERVAL_SECONDS",
])
def test_durations_must_be_positive(field):
    with pytest.raises(ValidationError):
        Settings(**{field: 0})


def test_negative_drain_rejected():
    with pytest.raises(ValidationError):
        Settings(SHUTDOWN_DRAIN_SECONDS=-1)


def test_unknown_db_type_rejected():
    with pytest.raises(ValidationError):
        Settings(DB_TYPE="oracle")


def test_db_type_is_normalised():
    assert Settings(DB_TYPE=" MySQL ").DB_TYPE == "mysql"


def test_database_urls():
    assert Settings(DB_TYPE="sqlite", SQLITE_PATH="/tmp/p.db").database_url == "sqlite+aiosqlite:////tmp/p.db"
    assert Settings(
        DB_TYPE="mysql", DB_HOST="db", DB_USER="u", DB_PASS="p", DB_NAME="n",
    ).database_url == "mysql+aiomysql://u:p@db:3306/n"
    assert Settings(
        DB_TYPE="postgresql", DB_HOST="db", DB_PORT=6543, DB_USER="u", DB_PASS="p", DB_NAME="n",
    ).database_url == "postgresql+asyncpg://u:p@db:6543/n"


def test_explicit_database_url_wins():
    cfg = Settings(DB_TYPE="mysql", DATABASE_URL="sqlite+aiosqlite:///:memory:")
    assert cfg.database_url == "sqlite+aiosqlite:///:memory:"
