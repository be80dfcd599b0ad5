# mentorship_hub/routers/discovery_router.py
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Path

from ..services import DiscoveryService
from ..dependencies.auth_dependencies import get_student_user
from ..dependencies.service_dependencies import get_discovery_service
from ..utils.response_enricher import ResponseEnricher
from ..schemas import MentorResponse, PeerMentorResponse
from ..models import User
from ..security import get_current_active_user
from ..exceptions import BusinessLogicError

router = APIRouter(prefix="/api", tags=["discovery"])

@router.get("/peer/mentors/subject/{subject_id}", response_model=List[PeerMentorResponse])
async def find_peer_mentors(
    subject_id: int = Path(..., description="The subject the student wants help with"),
    current_user: User = Depends(get_student_user),
    discovery_service: DiscoveryService = Depends(get_discovery_service)
):
    """List same-branch students who can mentor the subject"""
    try:
        mentors = discovery_service.find_peer_mentors(current_user.id, subject_id)
        return ResponseEnricher.enrich_peer_mentors(mentors)
    except BusinessLogicError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

@router.get("/official/mentors", response_model=List[MentorResponse])
async def available_official_mentors(
    current_user: User = Depends(get_current_active_user),
    discovery_service: DiscoveryService = Depends(get_discovery_service)
):
    """List active professional mentors, most experienced first"""
    return discovery_service.available_official_mentors()
