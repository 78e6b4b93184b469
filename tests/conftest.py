"""
Shared fixtures: in-memory database, fake clock and seeded rows.
"""
from datetime import datetime, timedelta

import pytest

from config.settings import Settings
from revmohelp.backend import Backend
from revmohelp.cache import CacheManager
from revmohelp.db import init_db, make_engine, make_session_factory
from revmohelp.models import (
    Answer,
    Category,
    Doctor,
    DoctorProfile,
    DoctorProfileTranslation,
    DoctorTranslation,
    PatientStory,
    PatientStoryTranslation,
    Post,
    PostTranslation,
    Question,
)
from revmohelp.services import build_services

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


class FakeClock:
    """Manually advanced clock for cache expiry tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return CacheManager(clock=clock)


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://")
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def backend(session_factory):
    return Backend(session_factory)


@pytest.fixture
def services(session_factory, cache):
    settings = Settings(database_url="sqlite://", preload_on_startup=False)
    return build_services(settings, session_factory=session_factory, cache=cache)


@pytest.fixture
def add_rows(session_factory):
    """Insert ORM objects directly, bypassing the repositories and their caches."""

    def _add(*objs):
        session = session_factory()
        try:
            session.add_all(objs)
            session.commit()
        finally:
            session.close()

    return _add


def legacy_doctor(doctor_id, email, **overrides):
    values = dict(
        id=doctor_id,
        full_name=f"Legacy {doctor_id}",
        email=email,
        specialization="Revmatolog",
        experience_years=10,
        bio="Tajribali shifokor",
        certificates=[],
        verified=True,
        active=True,
        order_index=0,
        created_at=BASE_TIME,
    )
    values.update(overrides)
    return Doctor(**values)


def profile_doctor(profile_id, email, **overrides):
    values = dict(
        id=profile_id,
        full_name=f"Profile {profile_id}",
        email=email,
        specialization="Kardiolog",
        experience_years=5,
        bio="Profil bio",
        certificates=[],
        verified=True,
        active=True,
        created_at=BASE_TIME,
    )
    values.update(overrides)
    return DoctorProfile(**values)


def legacy_translation(doctor_id, language, **fields):
    return DoctorTranslation(doctor_id=doctor_id, language=language, **fields)


def profile_translation(profile_id, language, **fields):
    return DoctorProfileTranslation(profile_id=profile_id, language=language, **fields)


def patient_story(story_id, **overrides):
    values = dict(
        id=story_id,
        patient_name="Malika",
        age=34,
        diagnosis="Revmatoid artrit",
        story_content="Davolanish hikoyasi",
        treatment_duration="6 oy",
        outcome="Remissiya",
        doctor_name="Dr. Karimov",
        symptoms=["og'riq"],
        treatment_methods=["dori"],
        medications=["metotreksat"],
        order_index=0,
        created_at=BASE_TIME,
    )
    values.update(overrides)
    return PatientStory(**values)


def story_translation(story_id, language, **fields):
    return PatientStoryTranslation(story_id=story_id, language=language, **fields)


def category(category_id, slug, **overrides):
    values = dict(id=category_id, name=slug.capitalize(), slug=slug, color="#10B981", created_at=BASE_TIME)
    values.update(overrides)
    return Category(**values)


def post(post_id, slug, **overrides):
    values = dict(
        id=post_id,
        title=f"Maqola {post_id}",
        content="Bo'g'imlar haqida",
        excerpt="Qisqacha",
        slug=slug,
        tags=["artrit"],
        published=True,
        views_count=0,
        created_at=BASE_TIME,
    )
    values.update(overrides)
    return Post(**values)


def post_translation(post_id, language, **fields):
    return PostTranslation(post_id=post_id, language=language, **fields)


def question(question_id, slug, **overrides):
    values = dict(
        id=question_id,
        title=f"Savol {question_id}",
        content="Qo'llarim og'riyapti",
        slug=slug,
        tags=[],
        status="open",
        created_at=BASE_TIME,
    )
    values.update(overrides)
    return Question(**values)


def answer(answer_id, question_id, **overrides):
    values = dict(id=answer_id, question_id=question_id, content="Shifokorga murojaat qiling", created_at=BASE_TIME)
    values.update(overrides)
    return Answer(**values)


def days_after_base(days: int) -> datetime:
    return BASE_TIME + timedelta(days=days)
