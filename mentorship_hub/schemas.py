from datetime import datetime
from typing import List, Dict, Any, Optional
from pydantic import BaseModel, Field
from .core.ledger import Decision, EndMode

# --- Authentication Schemas ---
class TokenData(BaseModel):
    username: Optional[str] = None

# --- Input Models ---

class TimeSlot(BaseModel):
    day: str = Field(..., description="Day of the week, Monday..Sunday.")
    start_time: str = Field(..., description="Start time, HH:MM (24-hour).")
    end_time: str = Field(..., description="End time, HH:MM (24-hour).")

class LearnerCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100, description="The student's full name.")
    phone: Optional[str] = Field(None, max_length=20)
    branch: str = Field(..., description="One of Computer, IT, AIML, ECS.")
    year: int = Field(..., description="Year of study, 1-4.")
    current_semester: int = Field(..., description="Current semester, consistent with the year.")

class StrongSubjectInput(BaseModel):
    subject_id: int
    confidence_level: int = Field(3, description="Self-assessed confidence, 1-5.")

class StrongSubjectsUpdate(BaseModel):
    subjects: List[StrongSubjectInput] = Field(..., description="Replaces the full strong-subject list.")

class MentorPreferencesUpdate(BaseModel):
    accepting_new_mentees: Optional[bool] = None
    max_mentees: Optional[int] = Field(None, description="Mentee cap, 1-20.")
    teaching_mode: Optional[str] = Field(None, description="online, offline or both.")
    time_slots: Optional[List[TimeSlot]] = None

class MentorCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100, description="The mentor's full name.")
    phone: Optional[str] = Field(None, max_length=20)
    designation: Optional[str] = None
    skills: List[str] = Field(default_factory=list, description="Skill tags.")
    experience_years: int = Field(0, ge=0)
    bio: Optional[str] = Field(None, description="Short biography, at most 500 characters.")
    time_slots: List[TimeSlot] = Field(default_factory=list)

class PeerRequestCreate(BaseModel):
    target_learner_id: int = Field(..., description="Learner profile asked to mentor.")
    subject_id: int
    message: Optional[str] = Field(None, description="Optional note, at most 500 characters.")

class OfficialRequestCreate(BaseModel):
    mentor_profile_id: int
    message: Optional[str] = Field(None, description="Optional note, at most 500 characters.")

class RequestDecision(BaseModel):
    decision: Decision

class EndRelationship(BaseModel):
    mode: EndMode = EndMode.DEACTIVATE

class RatingCreate(BaseModel):
    score: int = Field(..., description="Integer 1-5.")
    feedback: Optional[str] = Field(None, description="Optional feedback, at most 500 characters.")

# --- Output Models ---

class StrongSubjectResponse(BaseModel):
    subject_id: int
    origin_semester: int
    confidence_level: int

    model_config = {"from_attributes": True}

class LearnerResponse(BaseModel):
    id: int
    user_id: int
    name: str
    phone: Optional[str]
    branch: str
    year: int
    current_semester: int
    accepting_new_mentees: bool
    max_mentees: int
    teaching_mode: str
    time_slots: Optional[List[Dict[str, Any]]]
    profile_completed: bool
    is_active: bool
    revision: int
    strong_subjects: List[StrongSubjectResponse] = []

    model_config = {"from_attributes": True}

class MentorResponse(BaseModel):
    id: int
    user_id: int
    name: str
    designation: Optional[str]
    skills: Optional[List[str]]
    experience_years: int
    bio: Optional[str]
    time_slots: Optional[List[Dict[str, Any]]]
    is_active: bool

    model_config = {"from_attributes": True}

class RatingResponse(BaseModel):
    score: int
    feedback: Optional[str]
    rated_at: Optional[datetime]

class RequestResponse(BaseModel):
    id: int
    kind: str
    owner_id: Optional[int]
    counterpart_id: Optional[int]
    counterpart_name: Optional[str] = None # populated by ResponseEnricher
    subject_id: Optional[int]
    subject_name: Optional[str] = None # populated by ResponseEnricher
    message: Optional[str]
    status: str
    requested_at: datetime
    responded_at: Optional[datetime]

    model_config = {"from_attributes": True}

class EdgeResponse(BaseModel):
    id: int
    kind: str
    owner_id: Optional[int]
    counterpart_id: Optional[int]
    counterpart_name: Optional[str] = None # populated by ResponseEnricher
    subject_id: Optional[int]
    subject_name: Optional[str] = None # populated by ResponseEnricher
    connected_at: datetime
    is_active: bool
    last_interaction: Optional[datetime]
    ended_at: Optional[datetime]
    rating: Optional[RatingResponse] = None

    model_config = {"from_attributes": True}

class LedgerFragmentResponse(BaseModel):
    request: Optional[RequestResponse] = None
    counterpart_request: Optional[RequestResponse] = None
    edge: Optional[EdgeResponse] = None
    counterpart_edge: Optional[EdgeResponse] = None

class PeerMentorResponse(BaseModel):
    learner_id: int
    name: str
    branch: str
    year: int
    current_semester: int
    confidence_level: int
    active_mentees: int
    max_mentees: int
    teaching_mode: str
    time_slots: Optional[List[Dict[str, Any]]]

class PendingRatingResponse(BaseModel):
    edge: EdgeResponse
    days_since_connection: int

class ReceivedRatingsResponse(BaseModel):
    as_student_mentor: List[EdgeResponse]
    as_official_mentor: List[EdgeResponse]
    average: Dict[str, float]
    total: Dict[str, int]
