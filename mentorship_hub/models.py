# mentorship_hub/models.py
from enum import Enum
from sqlalchemy import (
    Column, Integer, String, Text, DateTime, JSON, Boolean, ForeignKey, Sequence, UniqueConstraint, Index
)
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from .database import Base
from .core.clock import utcnow
from .core.ledger import EdgeKind, RequestKind, RequestStatus

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class UserRole(str, Enum):
    STUDENT = "student"
    MENTOR = "mentor"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class User(Base):
    """Account record owned by the identity service; read here to resolve actors."""
    __tablename__ = "users"

    id = Column(Integer, Sequence('user_id_seq'), primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    role = Column(String, nullable=True) # None until the user registers a profile
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    learner_profile = relationship("LearnerProfile", back_populates="user", uselist=False)
    mentor_profile = relationship("MentorProfile", back_populates="user", uselist=False)

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', role={self.role})>"


class Subject(Base):
    """Catalog entry. Read-only for this service."""
    __tablename__ = "subjects"
    __table_args__ = (UniqueConstraint("branch", "semester", "name", name="uq_subject_branch_semester_name"),)

    id = Column(Integer, Sequence('subject_id_seq'), primary_key=True, index=True)
    branch = Column(String, nullable=False)
    semester = Column(Integer, nullable=False)
    name = Column(String, nullable=False)
    code = Column(String, nullable=True)
    credits = Column(Integer, default=3)
    is_active = Column(Boolean, default=True)

    def __repr__(self):
        return f"<Subject(id={self.id}, name='{self.name}', branch='{self.branch}', semester={self.semester})>"


class LearnerProfile(Base):
    __tablename__ = "learner_profiles"
    __table_args__ = (Index("ix_learner_branch_semester", "branch", "current_semester"),)

    id = Column(Integer, Sequence('learner_id_seq'), primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    branch = Column(String, nullable=False)
    year = Column(Integer, nullable=False)
    current_semester = Column(Integer, nullable=False)

    # Mentor preferences
    accepting_new_mentees = Column(Boolean, nullable=False, default=True)
    max_mentees = Column(Integer, nullable=False, default=3)
    teaching_mode = Column(String, nullable=False, default="both")
    time_slots = Column(JSONType, nullable=True)

    profile_completed = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, default=True)
    last_active_at = Column(DateTime(timezone=True), default=utcnow)
    # Bumped on every ledger change so concurrent writers to the same ledger collide
    revision = Column(Integer, nullable=False)
    ledger_updated_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    __mapper_args__ = {"version_id_col": revision}

    user = relationship("User", back_populates="learner_profile")
    strong_subjects = relationship("StrongSubject", back_populates="learner", cascade="all, delete-orphan")
    edges = relationship(
        "RelationshipEdge",
        foreign_keys="RelationshipEdge.owner_learner_id",
        back_populates="owner_learner",
        cascade="all, delete-orphan",
    )
    requests = relationship(
        "RelationshipRequest",
        foreign_keys="RelationshipRequest.owner_learner_id",
        back_populates="owner_learner",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<LearnerProfile(id={self.id}, user_id={self.user_id}, branch='{self.branch}', semester={self.current_semester})>"


class StrongSubject(Base):
    __tablename__ = "strong_subjects"
    __table_args__ = (UniqueConstraint("learner_id", "subject_id", name="uq_strong_subject_per_learner"),)

    id = Column(Integer, Sequence('strong_subject_id_seq'), primary_key=True, index=True)
    learner_id = Column(Integer, ForeignKey("learner_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False, index=True)
    origin_semester = Column(Integer, nullable=False)
    confidence_level = Column(Integer, nullable=False, default=3)

    learner = relationship("LearnerProfile", back_populates="strong_subjects")
    subject = relationship("Subject")

    def __repr__(self):
        return f"<StrongSubject(learner_id={self.learner_id}, subject_id={self.subject_id}, confidence={self.confidence_level})>"


class MentorProfile(Base):
    """Professional mentor. Holds ledger rows only when the official mirror is enabled."""
    __tablename__ = "mentor_profiles"

    id = Column(Integer, Sequence('mentor_id_seq'), primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    name = Column(String, nullable=False, index=True)
    phone = Column(String, nullable=True)
    designation = Column(String, nullable=True)
    skills = Column(JSONType, nullable=True)
    experience_years = Column(Integer, nullable=False, default=0)
    bio = Column(Text, nullable=True)
    time_slots = Column(JSONType, nullable=True)
    is_active = Column(Boolean, default=True)
    revision = Column(Integer, nullable=False)
    ledger_updated_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    __mapper_args__ = {"version_id_col": revision}

    user = relationship("User", back_populates="mentor_profile")
    edges = relationship(
        "RelationshipEdge",
        foreign_keys="RelationshipEdge.owner_mentor_id",
        back_populates="owner_mentor",
        cascade="all, delete-orphan",
    )
    requests = relationship(
        "RelationshipRequest",
        foreign_keys="RelationshipRequest.owner_mentor_id",
        back_populates="owner_mentor",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<MentorProfile(id={self.id}, name='{self.name}', designation='{self.designation}')>"


class _LedgerRowMixin:
    """Owner/counterpart slots shared by edges and requests.

    Exactly one owner column and at most one counterpart column is set; the
    counterpart is cleared when that profile is deleted.
    """

    @property
    def owner_id(self):
        return self.owner_learner_id if self.owner_learner_id is not None else self.owner_mentor_id

    @property
    def counterpart_id(self):
        return self.counterpart_learner_id if self.counterpart_learner_id is not None else self.counterpart_mentor_id

    @property
    def owner(self):
        return self.owner_learner if self.owner_learner_id is not None else self.owner_mentor

    @property
    def counterpart(self):
        return self.counterpart_learner if self.counterpart_learner_id is not None else self.counterpart_mentor


class RelationshipEdge(_LedgerRowMixin, Base):
    __tablename__ = "relationship_edges"
    __table_args__ = (
        Index("ix_edge_owner_learner_kind", "owner_learner_id", "kind"),
        Index("ix_edge_owner_mentor_kind", "owner_mentor_id", "kind"),
    )

    id = Column(Integer, Sequence('relationship_edge_id_seq'), primary_key=True, index=True)
    kind = Column(String, nullable=False)

    owner_learner_id = Column(Integer, ForeignKey("learner_profiles.id", ondelete="CASCADE"), nullable=True)
    owner_mentor_id = Column(Integer, ForeignKey("mentor_profiles.id", ondelete="CASCADE"), nullable=True)
    counterpart_learner_id = Column(Integer, ForeignKey("learner_profiles.id", ondelete="SET NULL"), nullable=True, index=True)
    counterpart_mentor_id = Column(Integer, ForeignKey("mentor_profiles.id", ondelete="SET NULL"), nullable=True, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=True)

    connected_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    is_active = Column(Boolean, nullable=False, default=True)
    last_interaction = Column(DateTime(timezone=True), nullable=True, default=utcnow)
    ended_at = Column(DateTime(timezone=True), nullable=True)

    rating_score = Column(Integer, nullable=True)
    rating_feedback = Column(Text, nullable=True)
    rated_at = Column(DateTime(timezone=True), nullable=True)

    owner_learner = relationship("LearnerProfile", foreign_keys=[owner_learner_id], back_populates="edges")
    owner_mentor = relationship("MentorProfile", foreign_keys=[owner_mentor_id], back_populates="edges")
    counterpart_learner = relationship("LearnerProfile", foreign_keys=[counterpart_learner_id])
    counterpart_mentor = relationship("MentorProfile", foreign_keys=[counterpart_mentor_id])
    subject = relationship("Subject")

    @property
    def variant(self):
        return EdgeKind(self.kind).variant

    @property
    def is_rated(self) -> bool:
        return self.rating_score is not None

    @property
    def rating(self):
        if self.rating_score is None:
            return None
        return {"score": self.rating_score, "feedback": self.rating_feedback, "rated_at": self.rated_at}

    def __repr__(self):
        return (f"<RelationshipEdge(id={self.id}, kind='{self.kind}', owner={self.owner_id}, "
                f"counterpart={self.counterpart_id}, subject={self.subject_id}, active={self.is_active})>")


class RelationshipRequest(_LedgerRowMixin, Base):
    __tablename__ = "relationship_requests"
    __table_args__ = (
        Index("ix_request_owner_learner_kind", "owner_learner_id", "kind"),
        Index("ix_request_owner_mentor_kind", "owner_mentor_id", "kind"),
    )

    id = Column(Integer, Sequence('relationship_request_id_seq'), primary_key=True, index=True)
    kind = Column(String, nullable=False)

    owner_learner_id = Column(Integer, ForeignKey("learner_profiles.id", ondelete="CASCADE"), nullable=True)
    owner_mentor_id = Column(Integer, ForeignKey("mentor_profiles.id", ondelete="CASCADE"), nullable=True)
    counterpart_learner_id = Column(Integer, ForeignKey("learner_profiles.id", ondelete="SET NULL"), nullable=True, index=True)
    counterpart_mentor_id = Column(Integer, ForeignKey("mentor_profiles.id", ondelete="SET NULL"), nullable=True, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=True)

    message = Column(Text, nullable=True)
    status = Column(String, nullable=False, default=RequestStatus.PENDING.value)
    requested_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    responded_at = Column(DateTime(timezone=True), nullable=True)

    owner_learner = relationship("LearnerProfile", foreign_keys=[owner_learner_id], back_populates="requests")
    owner_mentor = relationship("MentorProfile", foreign_keys=[owner_mentor_id], back_populates="requests")
    counterpart_learner = relationship("LearnerProfile", foreign_keys=[counterpart_learner_id])
    counterpart_mentor = relationship("MentorProfile", foreign_keys=[counterpart_mentor_id])
    subject = relationship("Subject")

    @property
    def variant(self):
        return RequestKind(self.kind).variant

    def __repr__(self):
        return (f"<RelationshipRequest(id={self.id}, kind='{self.kind}', owner={self.owner_id}, "
                f"counterpart={self.counterpart_id}, subject={self.subject_id}, status='{self.status}')>")


class NotificationEvent(Base):
    """Outbox row. Written after the ledger commits; delivered by a separate dispatcher."""
    __tablename__ = "notification_events"

    id = Column(Integer, Sequence('notification_event_id_seq'), primary_key=True, index=True)
    recipient_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    event_kind = Column(String, nullable=False)
    title = Column(String(100), nullable=False)
    message = Column(String(500), nullable=False)
    payload = Column(JSONType, nullable=True)
    priority = Column(String, nullable=False, default=NotificationPriority.MEDIUM.value)
    is_read = Column(Boolean, nullable=False, default=False)
    delivery_attempts = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    dispatched_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<NotificationEvent(id={self.id}, kind='{self.event_kind}', recipient={self.recipient_user_id})>"
