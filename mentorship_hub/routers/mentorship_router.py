# mentorship_hub/routers/mentorship_router.py
from fastapi import APIRouter, Depends, HTTPException, Query, Path
from typing import Optional, List

from ..services import MentorshipService
from ..dependencies.auth_dependencies import get_student_user, get_mentor_user
from ..dependencies.service_dependencies import get_mentorship_service
from ..utils.response_enricher import ResponseEnricher
from ..schemas import (
    EdgeResponse, EndRelationship, LedgerFragmentResponse, OfficialRequestCreate, PeerRequestCreate, RequestDecision,
    RequestResponse,
)
from ..models import User, UserRole
from ..core.ledger import RequestStatus
from ..security import get_current_active_user
from ..exceptions import BusinessLogicError

router = APIRouter(prefix="/api", tags=["mentorship"])

# --- Peer mentorship ---

@router.post("/peer/requests", response_model=LedgerFragmentResponse, status_code=201)
async def create_peer_request(
    request_data: PeerRequestCreate,
    current_user: User = Depends(get_student_user),
    mentorship_service: MentorshipService = Depends(get_mentorship_service)
):
    """Ask another student to mentor a subject"""
    try:
        fragment = mentorship_service.create_peer_request(
            current_user.id, request_data.target_learner_id, request_data.subject_id, request_data.message
        )
        return ResponseEnricher.enrich_fragment(fragment)
    except BusinessLogicError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

@router.put("/peer/requests/{request_id}/respond", response_model=LedgerFragmentResponse)
async def respond_to_peer_request(
    decision: RequestDecision,
    request_id: int = Path(..., description="Id of the request in the responder's incoming queue"),
    current_user: User = Depends(get_student_user),
    mentorship_service: MentorshipService = Depends(get_mentorship_service)
):
    """Accept or reject an incoming peer request"""
    try:
        fragment = mentorship_service.respond_to_peer_request(current_user.id, request_id, decision.decision)
        return ResponseEnricher.enrich_fragment(fragment)
    except BusinessLogicError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

@router.get("/peer/requests/incoming", response_model=List[RequestResponse])
async def get_incoming_requests(
    status: Optional[RequestStatus] = Query(None),
    current_user: User = Depends(get_student_user),
    mentorship_service: MentorshipService = Depends(get_mentorship_service)
):
    """Requests from students who want the current student as a mentor"""
    try:
        return ResponseEnricher.enrich_requests(mentorship_service.get_incoming_requests(current_user.id, status))
    except BusinessLogicError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

@router.get("/peer/requests/outgoing", response_model=List[RequestResponse])
async def get_outgoing_requests(
    status: Optional[RequestStatus] = Query(None),
    current_user: User = Depends(get_student_user),
    mentorship_service: MentorshipService = Depends(get_mentorship_service)
):
    """Requests the current student has sent"""
    try:
        return ResponseEnricher.enrich_requests(mentorship_service.get_outgoing_requests(current_user.id, status))
    except BusinessLogicError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

@router.get("/peer/mentors", response_model=List[EdgeResponse])
async def get_current_mentors(
    current_user: User = Depends(get_student_user),
    mentorship_service: MentorshipService = Depends(get_mentorship_service)
):
    try:
        return ResponseEnricher.enrich_edges(mentorship_service.get_current_mentors(current_user.id))
    except BusinessLogicError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

@router.get("/peer/mentees", response_model=List[EdgeResponse])
async def get_current_mentees(
    current_user: User = Depends(get_student_user),
    mentorship_service: MentorshipService = Depends(get_mentorship_service)
):
    try:
        return ResponseEnricher.enrich_edges(mentorship_service.get_current_mentees(current_user.id))
    except BusinessLogicError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

# --- Official mentorship ---

@router.post("/official/requests", response_model=LedgerFragmentResponse, status_code=201)
async def create_official_request(
    request_data: OfficialRequestCreate,
    current_user: User = Depends(get_student_user),
    mentorship_service: MentorshipService = Depends(get_mentorship_service)
):
    """Ask a professional mentor for mentorship"""
    try:
        fragment = mentorship_service.create_official_request(
            current_user.id, request_data.mentor_profile_id, request_data.message
        )
        return ResponseEnricher.enrich_fragment(fragment)
    except BusinessLogicError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

@router.put("/official/requests/{request_id}/respond", response_model=LedgerFragmentResponse)
async def respond_to_official_request(
    decision: RequestDecision,
    request_id: int = Path(..., description="Id of the mentor's incoming row or the student's outgoing row"),
    current_user: User = Depends(get_mentor_user),
    mentorship_service: MentorshipService = Depends(get_mentorship_service)
):
    """Accept or reject a request addressed to the current professional mentor"""
    try:
        fragment = mentorship_service.respond_to_official_request(current_user.id, request_id, decision.decision)
        return ResponseEnricher.enrich_fragment(fragment)
    except BusinessLogicError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

@router.get("/official/requests", response_model=List[RequestResponse])
async def get_official_requests(
    current_user: User = Depends(get_current_active_user),
    mentorship_service: MentorshipService = Depends(get_mentorship_service)
):
    """Sent requests for a student, received requests for a professional mentor"""
    try:
        return ResponseEnricher.enrich_requests(mentorship_service.get_official_requests(current_user.id))
    except BusinessLogicError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

@router.get("/official/current", response_model=List[EdgeResponse])
async def get_current_official(
    current_user: User = Depends(get_current_active_user),
    mentorship_service: MentorshipService = Depends(get_mentorship_service)
):
    """Active official mentors of a student, or active mentees of a professional mentor"""
    try:
        if current_user.role == UserRole.MENTOR.value:
            edges = mentorship_service.get_official_mentees(current_user.id)
        else:
            edges = mentorship_service.get_current_official_mentors(current_user.id)
        return ResponseEnricher.enrich_edges(edges)
    except BusinessLogicError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

# --- Both kinds ---

@router.put("/relationships/{edge_id}/end", response_model=LedgerFragmentResponse)
async def end_relationship(
    end_data: EndRelationship,
    edge_id: int = Path(..., description="Id of the relationship row owned by the current account"),
    current_user: User = Depends(get_current_active_user),
    mentorship_service: MentorshipService = Depends(get_mentorship_service)
):
    """Deactivate a relationship or remove it completely"""
    try:
        fragment = mentorship_service.end_relationship(current_user.id, edge_id, end_data.mode)
        return ResponseEnricher.enrich_fragment(fragment)
    except BusinessLogicError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
