import os
import tempfile

import pytest

# Keep test logs out of the working tree; must be set before sleep_tracker creates loggers.
os.environ.setdefault(
    "SLEEP_TRACKER_LOG_DIR", os.path.join(tempfile.gettempdir(), "sleep_tracker_test_logs")
)

from sleep_tracker.configs.config import TestConfig
from sleep_tracker.create_app import create_app
from sleep_tracker.database.table_initializer import initialize_sleep_tables
from sleep_tracker.models.base import dispose_engine, get_engine, get_session_factory
from sleep_tracker.repositories.sleep_repository import SleepRepository
from sleep_tracker.utils.time_utils import GLOBAL_CONFIG, update_local_timezone


class FakeTextGenerator:
    """
    Stands in for GeminiLLM. Yields the given chunks; with fail_at set it
    raises instead of emitting the chunk at that index (fail_at=len(chunks)
    raises after the last one).
    """

    def __init__(self, chunks=(), fail_at=None, error=None):
        self.chunks = list(chunks)
        self.fail_at = fail_at
        self.error = error or RuntimeError("upstream exploded")
        self.prompts = []
        self.closed = False

    def stream_text(self, prompt, **send_params):
        self.prompts.append(prompt)
        return self._generate()

    def _generate(self):
        try:
            for index, chunk in enumerate(self.chunks):
                if index == self.fail_at:
                    raise self.error
                yield chunk
            if self.fail_at is not None and self.fail_at >= len(self.chunks):
                raise self.error
        finally:
            self.closed = True


@pytest.fixture(autouse=True)
def utc_local_timezone():
    previous = GLOBAL_CONFIG["local_timezone"]
    update_local_timezone("UTC")
    yield
    GLOBAL_CONFIG["local_timezone"] = previous


@pytest.fixture
def database_uri(tmp_path):
    uri = f"sqlite:///{(tmp_path / 'sleep_test.db').as_posix()}"
    yield uri
    dispose_engine(uri)


@pytest.fixture
def repository(database_uri):
    initialize_sleep_tables(get_engine(database_uri))
    return SleepRepository(get_session_factory(database_uri))


@pytest.fixture
def fake_generator_class():
    return FakeTextGenerator


@pytest.fixture
def fake_generator():
    return FakeTextGenerator(chunks=["## Summary\n", "You sleep ", "about 8 hours."])


@pytest.fixture
def make_app(database_uri):
    """Build an app against a throwaway SQLite file; text_generator may be a fake."""
    def _make(text_generator=None, **config_overrides):
        overrides = {"SQLALCHEMY_DATABASE_URI": database_uri}
        overrides.update(config_overrides)
        config_class = type("PerTestConfig", (TestConfig,), overrides)
        app = create_app(config_class, text_generator=text_generator)
        return app
    return _make


@pytest.fixture
def app(make_app, fake_generator):
    return make_app(text_generator=fake_generator)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def create_record(client):
    def _create(sleep_time, wake_time, quality=None, notes=None):
        response = client.post(
            "/api/sleep",
            json={"sleepTime": sleep_time, "wakeTime": wake_time, "quality": quality, "notes": notes},
        )
        assert response.status_code == 200
        return response.get_json()
    return _create
