"""Shared fixtures: an in-memory SQLite database per test plus profile factories."""

import os

os.environ["DATABASE_URL"] = "sqlite://"

from datetime import timedelta

import pytest

from mentorship_hub.config import get_settings
from mentorship_hub.core.clock import utcnow
from mentorship_hub.database import Base, SessionLocal, engine
from mentorship_hub.models import LearnerProfile, MentorProfile, StrongSubject, Subject, User, UserRole


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def legacy_official_mode(monkeypatch):
    """Official mentorships stored on the learner only."""
    monkeypatch.setattr(get_settings(), "OFFICIAL_MENTOR_MIRROR", False)


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def factory(username=None, role=None, full_name=None):
        counter["n"] += 1
        user = User(
            username=username or f"user{counter['n']}",
            full_name=full_name,
            role=role,
            is_active=True,
        )
        db.add(user)
        db.commit()
        return user

    return factory


@pytest.fixture
def make_subject(db):
    def factory(name, semester=1, branch="Computer", code=None):
        subject = Subject(name=name, semester=semester, branch=branch, code=code, is_active=True)
        db.add(subject)
        db.commit()
        return subject

    return factory


@pytest.fixture
def make_learner(db, make_user):
    def factory(name, semester=4, year=None, branch="Computer", strong=(), max_mentees=3,
                accepting=True, completed=True, confidence=3, last_active_days_ago=0):
        user = make_user(role=UserRole.STUDENT.value, full_name=name)
        learner = LearnerProfile(
            user_id=user.id,
            name=name,
            phone="5550100",
            branch=branch,
            year=year or (semester + 1) // 2,
            current_semester=semester,
            accepting_new_mentees=accepting,
            max_mentees=max_mentees,
            teaching_mode="both",
            time_slots=[],
            profile_completed=completed,
            is_active=True,
            last_active_at=utcnow() - timedelta(days=last_active_days_ago),
        )
        learner.strong_subjects = [
            StrongSubject(subject_id=subject.id, origin_semester=subject.semester, confidence_level=confidence)
            for subject in strong
        ]
        db.add(learner)
        db.commit()
        return learner

    return factory


@pytest.fixture
def make_mentor(db, make_user):
    def factory(name, experience_years=5, is_active=True):
        user = make_user(role=UserRole.MENTOR.value, full_name=name)
        mentor = MentorProfile(
            user_id=user.id,
            name=name,
            designation="Engineer",
            skills=["python"],
            experience_years=experience_years,
            is_active=is_active,
        )
        db.add(mentor)
        db.commit()
        return mentor

    return factory
