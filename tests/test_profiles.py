"""Tests for profile registration, mentoring preferences and discovery."""

import pytest

from mentorship_hub.exceptions import (
    InvalidStateError, NotFoundError, ProfileAlreadyExistsError, ValidationError,
)
from mentorship_hub.models import LearnerProfile, RelationshipRequest
from mentorship_hub.services.discovery_service import DiscoveryService
from mentorship_hub.services.mentorship_service import MentorshipService
from mentorship_hub.services.profile_service import ProfileService


def _learner_data(**overrides):
    data = {"name": "Nadia", "phone": "5550199", "branch": "Computer", "year": 2, "current_semester": 3}
    data.update(overrides)
    return data


@pytest.fixture
def service(db):
    return ProfileService(db)


class TestRegisterLearner:
    def test_creates_profile_and_assigns_role(self, service, make_user):
        user = make_user()
        learner = service.register_learner(user.id, _learner_data())

        assert learner.user_id == user.id
        assert learner.max_mentees == 3
        assert learner.accepting_new_mentees is True
        assert learner.profile_completed is False  # no strong subjects yet
        assert user.role == "student"

    @pytest.mark.parametrize("overrides", [
        {"year": 2, "current_semester": 5},
        {"year": 5, "current_semester": 9},
        {"branch": "Mechanical"},
        {"name": "   "},
    ])
    def test_invalid_data(self, service, make_user, overrides):
        with pytest.raises(ValidationError):
            service.register_learner(make_user().id, _learner_data(**overrides))

    def test_one_profile_per_account(self, service, make_user):
        user = make_user()
        service.register_learner(user.id, _learner_data())
        with pytest.raises(ProfileAlreadyExistsError):
            service.register_learner(user.id, _learner_data())
        with pytest.raises(ProfileAlreadyExistsError):
            service.register_mentor(user.id, {"name": "Nadia"})

    def test_unknown_account(self, service):
        with pytest.raises(NotFoundError):
            service.register_learner(404, _learner_data())


class TestStrongSubjects:
    @pytest.fixture
    def learner(self, service, make_user):
        return service.register_learner(make_user().id, _learner_data())

    def test_listing_a_subject_completes_the_profile(self, service, learner, make_subject):
        subject = make_subject("Discrete Maths", semester=2)
        updated = service.set_strong_subjects(learner.user_id, [{"subject_id": subject.id, "confidence_level": 4}])

        assert updated.profile_completed is True
        assert [(s.subject_id, s.confidence_level, s.origin_semester) for s in updated.strong_subjects] == [
            (subject.id, 4, 2)
        ]

    def test_replacing_keeps_listed_subjects(self, service, learner, make_subject):
        first = make_subject("Discrete Maths", semester=2)
        second = make_subject("Digital Electronics", semester=1)
        service.set_strong_subjects(learner.user_id, [{"subject_id": first.id}])

        updated = service.set_strong_subjects(
            learner.user_id, [{"subject_id": first.id, "confidence_level": 5}, {"subject_id": second.id}]
        )
        assert {s.subject_id: s.confidence_level for s in updated.strong_subjects} == {first.id: 5, second.id: 3}

        cleared = service.set_strong_subjects(learner.user_id, [])
        assert cleared.strong_subjects == []
        assert cleared.profile_completed is False

    def test_subject_rules(self, service, learner, make_subject):
        current = make_subject("Theory of Computation", semester=3)
        other_branch = make_subject("Signals", semester=1, branch="ECS")
        earlier = make_subject("Discrete Maths", semester=2)

        with pytest.raises(ValidationError):
            service.set_strong_subjects(learner.user_id, [{"subject_id": current.id}])
        with pytest.raises(ValidationError):
            service.set_strong_subjects(learner.user_id, [{"subject_id": other_branch.id}])
        with pytest.raises(ValidationError):
            service.set_strong_subjects(learner.user_id, [{"subject_id": earlier.id}, {"subject_id": earlier.id}])
        with pytest.raises(ValidationError):
            service.set_strong_subjects(learner.user_id, [{"subject_id": earlier.id, "confidence_level": 6}])
        with pytest.raises(NotFoundError):
            service.set_strong_subjects(learner.user_id, [{"subject_id": 999}])

    def test_first_semester_cannot_mentor(self, service, make_user, make_subject):
        fresher = service.register_learner(make_user().id, _learner_data(year=1, current_semester=1))
        with pytest.raises(InvalidStateError):
            service.set_strong_subjects(fresher.user_id, [{"subject_id": make_subject("Physics").id}])


class TestMentorPreferences:
    @pytest.fixture
    def busy_mentor(self, db, make_subject, make_learner):
        subject = make_subject("Operating Systems", semester=4)
        mentor = make_learner("Ola", semester=5, strong=[subject])
        lifecycle = MentorshipService(db)
        for name in ("Pia", "Raj"):
            mentee = make_learner(name, semester=4, strong=[make_subject(f"{name} Elective", semester=2)])
            created = lifecycle.create_peer_request(mentee.user_id, mentor.id, subject.id)
            lifecycle.respond_to_peer_request(mentor.user_id, created.counterpart_request.id, "accepted")
        return mentor

    def test_cannot_drop_below_active_mentees(self, service, busy_mentor):
        with pytest.raises(InvalidStateError):
            service.update_mentor_preferences(busy_mentor.user_id, {"max_mentees": 1})
        updated = service.update_mentor_preferences(busy_mentor.user_id, {"max_mentees": 2})
        assert updated.max_mentees == 2

    def test_updates_and_validation(self, service, make_learner):
        learner = make_learner("Sara", semester=4)
        updated = service.update_mentor_preferences(learner.user_id, {
            "teaching_mode": "online",
            "accepting_new_mentees": False,
            "time_slots": [{"day": "Monday", "start_time": "9:00", "end_time": "10:30"}],
        })
        assert updated.teaching_mode == "online"
        assert updated.accepting_new_mentees is False
        assert updated.time_slots == [{"day": "Monday", "start_time": "9:00", "end_time": "10:30"}]

        for bad in (
            {"max_mentees": 0},
            {"teaching_mode": "hybrid"},
            {"time_slots": [{"day": "Funday", "start_time": "09:00", "end_time": "10:00"}]},
            {"time_slots": [{"day": "Monday", "start_time": "11:00", "end_time": "10:00"}]},
            {"time_slots": [{"day": "Monday", "start_time": "25:00", "end_time": "26:00"}]},
        ):
            with pytest.raises(ValidationError):
                service.update_mentor_preferences(learner.user_id, bad)


class TestMentorProfiles:
    def test_register_mentor(self, service, make_user):
        user = make_user()
        mentor = service.register_mentor(user.id, {
            "name": "Dr. Ana Costa", "designation": "Staff Engineer",
            "skills": [" python ", "", "systems"], "experience_years": 9,
        })
        assert mentor.skills == ["python", "systems"]
        assert mentor.is_active is True
        assert user.role == "mentor"

    def test_bio_limit(self, service, make_user):
        with pytest.raises(ValidationError):
            service.register_mentor(make_user().id, {"name": "Dr. Ana Costa", "bio": "x" * 501})


class TestDeleteLearner:
    def test_counterpart_rows_are_cleared(self, db, service, make_subject, make_learner):
        subject = make_subject("Compiler Design", semester=5)
        mentor = make_learner("Tariq", semester=6, strong=[subject])
        mentee = make_learner("Uma", semester=4, strong=[make_subject("Graphics", semester=3)])
        MentorshipService(db).create_peer_request(mentee.user_id, mentor.id, subject.id)
        mentor_id, user = mentor.id, mentor.user

        service.delete_learner(mentor.user_id)

        assert db.get(LearnerProfile, mentor_id) is None
        assert user.role is None
        remaining = db.query(RelationshipRequest).one()
        assert remaining.owner_learner_id == mentee.id
        assert remaining.counterpart_learner_id is None


class TestDiscovery:
    @pytest.fixture
    def subject(self, make_subject):
        return make_subject("Data Structures", semester=3)

    @pytest.fixture
    def seeker(self, make_learner, make_subject):
        return make_learner("Vik", semester=4, strong=[make_subject("Maths II", semester=2)])

    def test_ordering_and_filters(self, db, subject, seeker, make_learner):
        recent = make_learner("Wan", semester=6, strong=[subject], confidence=5, last_active_days_ago=1)
        older = make_learner("Xia", semester=6, strong=[subject], confidence=5, last_active_days_ago=20)
        modest = make_learner("Yusuf", semester=8, strong=[subject], confidence=2)
        make_learner("Zed", semester=6, strong=[subject], branch="IT")
        make_learner("Ali", semester=6, strong=[subject], accepting=False)
        full = make_learner("Bea", semester=6, strong=[subject], max_mentees=1)
        other = make_learner("Cal", semester=4, strong=[])
        lifecycle = MentorshipService(db)
        created = lifecycle.create_peer_request(other.user_id, full.id, subject.id)
        lifecycle.respond_to_peer_request(full.user_id, created.counterpart_request.id, "accepted")

        results = DiscoveryService(db).find_peer_mentors(seeker.user_id, subject.id)

        assert [entry["learner"].id for entry in results] == [recent.id, older.id, modest.id]
        assert results[0]["confidence_level"] == 5
        assert results[0]["active_mentees"] == 0

    def test_fourth_year_and_incomplete_profiles(self, db, subject, make_learner):
        senior = make_learner("Dev", semester=8)
        incomplete = make_learner("Eve", semester=4, completed=False)
        with pytest.raises(InvalidStateError):
            DiscoveryService(db).find_peer_mentors(senior.user_id, subject.id)
        with pytest.raises(InvalidStateError):
            DiscoveryService(db).find_peer_mentors(incomplete.user_id, subject.id)

    def test_unknown_subject(self, db, seeker):
        with pytest.raises(NotFoundError):
            DiscoveryService(db).find_peer_mentors(seeker.user_id, 999)

    def test_official_mentors_by_experience(self, db, make_mentor):
        junior = make_mentor("Dr. Fay", experience_years=3)
        senior = make_mentor("Dr. Gus", experience_years=15)
        make_mentor("Dr. Hal", experience_years=30, is_active=False)

        assert [m.id for m in DiscoveryService(db).available_official_mentors()] == [senior.id, junior.id]
