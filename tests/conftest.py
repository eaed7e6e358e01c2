"""Pytest fixtures: a fake gateway opener and a fake browser session."""

import logging
from contextlib import contextmanager
from pathlib import Path

import pytest
import structlog

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class FakeResponse:
    """Stands in for the object urllib's opener returns."""

    def __init__(self, url: str, body: bytes = b"", status: int = 200):
        self.url = url
        self.body = body
        self.status = status

    def read(self) -> bytes:
        return self.body

    def geturl(self) -> str:
        return self.url

    def getcode(self) -> int:
        return self.status

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class FakeOpener:
    """Routes (method, url) to canned responses or exceptions.

    A route given as a list is consumed in order; its last entry repeats.
    """

    def __init__(self, routes: dict):
        self.routes = {
            key: list(value) if isinstance(value, list) else [value]
            for key, value in routes.items()
        }
        self.requests = []

    def open(self, req, timeout=None):
        self.requests.append(req)
        queue = self.routes[(req.get_method(), req.full_url)]
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item


class FakeSession:
    """Browser session whose cookie jar changes from poll to poll."""

    def __init__(self, jars: list):
        self.jars = list(jars)
        self.navigated = []
        self.polls = 0
        self.closed = False

    def navigate(self, url: str):
        self.navigated.append(url)

    def cookies(self) -> list:
        self.polls += 1
        return self.jars.pop(0) if len(self.jars) > 1 else self.jars[0]

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo setup_logger() between tests."""
    yield
    structlog.reset_defaults()
    logger = logging.getLogger("ocsso")
    logger.handlers = []
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def load_fixture():
    """Factory fixture to load XML fixtures as bytes."""

    def _load(name: str) -> bytes:
        return (FIXTURES_DIR / name).read_bytes()

    return _load


@pytest.fixture
def init_xml(load_fixture) -> bytes:
    return load_fixture("init_response.xml")


@pytest.fixture
def final_xml(load_fixture) -> bytes:
    return load_fixture("final_response.xml")


@pytest.fixture
def fake_opener():
    """Factory fixture building a FakeOpener from a route table."""
    return FakeOpener


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def fake_browser():
    """Factory fixture returning (session, launch) for a sequence of jars.

    ``launch`` has the same call shape as ``ocsso.browser.launch_browser``.
    """

    def _make(jars: list):
        session = FakeSession(jars)

        @contextmanager
        def launch(engine, headless, log=None):
            session.engine = engine
            session.headless = headless
            try:
                yield session
            finally:
                session.close()

        return session, launch

    return _make
