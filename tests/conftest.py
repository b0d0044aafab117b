from pathlib import Path

from dotenv import load_dotenv

env_file = Path(__file__).parent.parent / ".env.test"
load_dotenv(env_file)

import pytest  # noqa: E402
from docker.errors import DockerException  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from testcontainers.postgres import PostgresContainer  # noqa: E402

import app.db.base  # noqa: E402, F401
from app.core import redis as redis_module  # noqa: E402
from app.core.config import Settings  # noqa: E402
from app.db.session import Base, create_db_engine, get_db  # noqa: E402
from tests.utils.fake_store import FakeObjectStore  # noqa: E402


@pytest.fixture(scope="session")
def postgres_url():
    try:
        container = PostgresContainer(
            "postgres:16", username="test", password="test", dbname="test", driver="psycopg2"
        )
        container.start()
    except DockerException as e:
        pytest.skip(f"PostgreSQL container unavailable: {e}")

    yield container.get_connection_url()
    container.stop()


@pytest.fixture
def test_engine(request, tmp_path):
    """File-backed SQLite by default, PostgreSQL when parametrized with "postgresql".

    Modules opt into both backends with ``on_sqlite_and_postgresql``.
    """
    if getattr(request, "param", "sqlite") == "postgresql":
        engine = create_db_engine(request.getfixturevalue("postgres_url"))
        Base.metadata.drop_all(engine)
    else:
        engine = create_db_engine(f"sqlite:///{tmp_path / 'catalog.db'}")
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return sessionmaker(bind=test_engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def fake_store():
    return FakeObjectStore()


@pytest.fixture
def make_settings():
    def _make(**overrides):
        values = {
            "DATABASE_URL": "sqlite://",
            "S3_BUCKET": "",
            "S3_PREFIX": "",
            "SKIP_BUCKET_VALIDATION": False,
            "ENABLE_DELETION_SYNC": True,
            "ENABLE_BUCKET_SYNC": True,
            "BUCKET_RETRY_BACKOFF_SECONDS": 0.0,
            "SCAN_PROGRESS_BATCH_SIZE": 2,
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
async def test_app(db_session):
    from app.main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    redis_module.redis_client = None

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
async def test_client(test_app):
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as client:
        yield client
