# mentorship_hub/routers/profile_router.py
from fastapi import APIRouter, Depends, HTTPException, Response

from ..services import ProfileService
from ..dependencies.auth_dependencies import get_student_user
from ..dependencies.service_dependencies import get_profile_service
from ..schemas import (
    LearnerCreate, LearnerResponse, MentorCreate, MentorPreferencesUpdate, MentorResponse, StrongSubjectsUpdate,
)
from ..models import User
from ..security import get_current_active_user
from ..exceptions import BusinessLogicError

router = APIRouter(prefix="/api/profiles", tags=["profiles"])

@router.post("/learner", response_model=LearnerResponse, status_code=201)
async def register_learner(
    learner_data: LearnerCreate,
    current_user: User = Depends(get_current_active_user),
    profile_service: ProfileService = Depends(get_profile_service)
):
    """Create the student profile for the current account"""
    try:
        return profile_service.register_learner(current_user.id, learner_data.model_dump())
    except BusinessLogicError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

@router.put("/learner/strong-subjects", response_model=LearnerResponse)
async def set_strong_subjects(
    subjects_data: StrongSubjectsUpdate,
    current_user: User = Depends(get_student_user),
    profile_service: ProfileService = Depends(get_profile_service)
):
    """Replace the subjects the student offers to mentor"""
    try:
        entries = [entry.model_dump() for entry in subjects_data.subjects]
        return profile_service.set_strong_subjects(current_user.id, entries)
    except BusinessLogicError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

@router.put("/learner/preferences", response_model=LearnerResponse)
async def update_mentor_preferences(
    preferences: MentorPreferencesUpdate,
    current_user: User = Depends(get_student_user),
    profile_service: ProfileService = Depends(get_profile_service)
):
    """Update capacity, teaching mode and availability for peer mentoring"""
    try:
        return profile_service.update_mentor_preferences(current_user.id, preferences.model_dump(exclude_unset=True))
    except BusinessLogicError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

@router.delete("/learner", status_code=204)
async def delete_learner(
    current_user: User = Depends(get_student_user),
    profile_service: ProfileService = Depends(get_profile_service)
):
    """Delete the student profile and its relationship history"""
    try:
        profile_service.delete_learner(current_user.id)
        return Response(status_code=204)
    except BusinessLogicError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

@router.post("/mentor", response_model=MentorResponse, status_code=201)
async def register_mentor(
    mentor_data: MentorCreate,
    current_user: User = Depends(get_current_active_user),
    profile_service: ProfileService = Depends(get_profile_service)
):
    """Create a professional mentor profile for the current account"""
    try:
        return profile_service.register_mentor(current_user.id, mentor_data.model_dump())
    except BusinessLogicError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
