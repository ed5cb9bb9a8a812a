"""Pytest fixtures for testing."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from abacus_academy.db.init_db import init_db
from abacus_academy.db.snapshots import SqlSnapshotRepository
from abacus_academy.services.problem_generator import Problem
from abacus_academy.services.progress_store import ProgressStore


class RecordingTones:
    """Tone sink that remembers every sound played."""

    def __init__(self):
        self.sounds = []

    def play_sound(self, name):
        self.sounds.append(name)


class RecordingPresentation:
    """Presentation sink logging show/hide events in order."""

    def __init__(self, on_show=None):
        self.events = []
        self.on_show = on_show

    def show_term(self, value):
        self.events.append(("show", value))
        if self.on_show is not None:
            self.on_show(value)

    def hide_term(self):
        self.events.append(("hide",))

    @property
    def shown(self):
        return [event[1] for event in self.events if event[0] == "show"]


class FakeSpeech:
    """Speech sink that completes instantly."""

    def __init__(self, available=True):
        self.available = available
        self.spoken = []
        self.stop_calls = 0

    async def speak(self, text, lang, rate):
        self.spoken.append((text, lang, rate))

    def stop_speaking(self):
        self.stop_calls += 1


class FakeSleep:
    """Awaitable sleep that records delays instead of waiting."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


class CountingRepository:
    """In-memory snapshot repository counting writes."""

    def __init__(self, data=None):
        self.data = data
        self.saves = 0
        self.clears = 0

    def save(self, data):
        self.saves += 1
        self.data = data

    def load(self):
        return self.data

    def clear(self):
        self.clears += 1
        self.data = None


def fixed_problems(*problems):
    """Problem factory returning the given term tuples in turn."""
    queue = [Problem(nums=tuple(nums), total=sum(nums)) for nums in problems]

    def factory(rows=3, digits=1):
        return queue.pop(0)

    return factory


@pytest.fixture(scope="function")
def test_engine():
    """In-memory SQLite engine shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture
def repository(session_factory):
    """SQL snapshot repository on the test database."""
    return SqlSnapshotRepository(session_factory=session_factory, key="test_state")


@pytest.fixture
def store():
    """Progress store without persistence."""
    return ProgressStore()


@pytest.fixture
def tones():
    return RecordingTones()


@pytest.fixture
def presentation():
    return RecordingPresentation()


@pytest.fixture
def speech():
    return FakeSpeech()


@pytest.fixture
def fake_sleep():
    return FakeSleep()
