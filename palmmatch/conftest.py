# palmmatch/conftest.py
from datetime import date, datetime, timezone

import pytest

from palmmatch.core.config import settings
from palmmatch.core.database import build_engine, create_all_tables
from palmmatch.core.metrics import METRICS
from palmmatch.features.codes.service import clear_store as clear_code_store
from palmmatch.features.matching.store import clear_store as clear_lifecycle_store
from palmmatch.models.reading import BirthProfile, ReadingDocument, ReadingSnapshot


@pytest.fixture(autouse=True)
def in_memory_stores(monkeypatch):
    """
    Run every test against fresh in-memory stores.

    SQL stores are exercised explicitly through the sqlite_engine fixture.
    """
    monkeypatch.setattr(settings, "DATABASE_URL", None)
    monkeypatch.delenv("TEST_DATABASE_URL", raising=False)
    clear_code_store()
    clear_lifecycle_store()
    METRICS.reset()
    yield
    clear_code_store()
    clear_lifecycle_store()


@pytest.fixture
def fixed_now():
    return datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def sqlite_engine():
    engine = build_engine("sqlite://")
    create_all_tables(engine)
    yield engine
    engine.dispose()


def make_reading(
    heart="",
    head="",
    fate="",
    life="",
    marriage="",
    success="",
    mounts=None,
    markings=None,
):
    lines = {}
    for key, text in (
        ("heartLine", heart),
        ("headLine", head),
        ("fateLine", fate),
        ("lifeLine", life),
        ("marriageLine", marriage),
        ("successLine", success),
    ):
        if text:
            lines[key] = {"description": text}
    return ReadingDocument.model_validate({
        "lines": lines,
        "mounts": {name: {"prominence": level} for name, level in (mounts or {}).items()},
        "special_markings": list(markings or []),
    })


def make_snapshot(name: str, dob: date, **reading_kwargs) -> ReadingSnapshot:
    return ReadingSnapshot(
        reading=make_reading(**reading_kwargs),
        profile=BirthProfile(name=name, date_of_birth=dob),
    )


@pytest.fixture
def alice_snapshot():
    # Leo
    return make_snapshot(
        "Alice",
        date(1995, 8, 1),
        heart="A deep, curved heart line",
        head="Long and clear head line",
        fate="Strong, clearly defined fate line",
        life="Long vibrant life line",
        mounts={"venus": "well-developed", "mercury": "moderate", "jupiter": "prominent", "mars": "moderate"},
        markings=["writing star"],
    )


@pytest.fixture
def bob_snapshot():
    # Aries
    return make_snapshot(
        "Bob",
        date(1994, 4, 2),
        heart="Deep and passionate heart line",
        head="Straight head line",
        fate="Faint fate line",
        life="Strong energetic life line",
        mounts={"venus": "moderate", "mercury": "slight", "jupiter": "slight", "mars": "prominent"},
        markings=["speaking cross"],
    )
