# mentorship_hub/core/eligibility.py
"""
Capacity and eligibility predicates.

Pure functions over a loaded ``LearnerProfile``; nothing here touches the
session. They are evaluated when a request is created and again when it is
accepted, so a mentor that filled up in between is caught.
"""
from typing import Tuple

from ..constants import BusinessRules
from .ledger import EdgeKind


def active_mentee_count(learner) -> int:
    return sum(1 for edge in learner.edges if edge.kind == EdgeKind.PEER_MENTEE and edge.is_active)


def has_capacity(learner) -> bool:
    """Room for one more mentee, ignoring the accepting flag (accept-time re-check)."""
    return active_mentee_count(learner) < learner.max_mentees


def can_accept_mentee(learner) -> bool:
    return bool(learner.accepting_new_mentees) and has_capacity(learner)


def can_mentor_subject(learner, subject_id: int) -> bool:
    return any(strong.subject_id == subject_id for strong in learner.strong_subjects)


def has_active_mentor_for_subject(learner, subject_id: int) -> bool:
    return any(
        edge.kind == EdgeKind.PEER_MENTOR and edge.is_active and edge.subject_id == subject_id
        for edge in learner.edges
    )


def is_fourth_year(learner) -> bool:
    # Nobody is senior to a fourth-year student, so they may mentor but not request peer mentors
    return learner.year == 4


def semesters_for_year(year: int) -> Tuple[int, ...]:
    return BusinessRules.YEAR_SEMESTERS.get(year, ())


def is_semester_consistent(year: int, semester: int) -> bool:
    return semester in semesters_for_year(year)


def compute_profile_completed(learner) -> bool:
    """Required identity fields present and at least one strong subject."""
    required = (learner.name, learner.phone, learner.branch, learner.year, learner.current_semester)
    if any(value in (None, "") for value in required):
        return False
    return len(learner.strong_subjects) > 0
