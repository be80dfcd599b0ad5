# mentorship_hub/routers/rating_router.py
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Path

from ..services import RatingService
from ..dependencies.service_dependencies import get_rating_service
from ..utils.response_enricher import ResponseEnricher
from ..schemas import EdgeResponse, PendingRatingResponse, RatingCreate, ReceivedRatingsResponse
from ..models import User
from ..security import get_current_active_user
from ..exceptions import BusinessLogicError

router = APIRouter(prefix="/api", tags=["ratings"])

@router.post("/relationships/{edge_id}/rating", response_model=EdgeResponse, status_code=201)
async def rate_relationship(
    rating_data: RatingCreate,
    edge_id: int = Path(..., description="Id of the relationship row owned by the rater"),
    current_user: User = Depends(get_current_active_user),
    rating_service: RatingService = Depends(get_rating_service)
):
    """Rate a relationship once it has been active for the minimum period.
    A rating can only be given once per relationship.
    """
    try:
        edge = rating_service.rate(current_user.id, edge_id, rating_data.score, rating_data.feedback)
        return ResponseEnricher.enrich_single_edge(edge)
    except BusinessLogicError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

@router.get("/ratings/given", response_model=List[EdgeResponse])
async def get_given_ratings(
    current_user: User = Depends(get_current_active_user),
    rating_service: RatingService = Depends(get_rating_service)
):
    try:
        return ResponseEnricher.enrich_edges(rating_service.given_ratings(current_user.id))
    except BusinessLogicError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

@router.get("/ratings/received", response_model=ReceivedRatingsResponse)
async def get_received_ratings(
    current_user: User = Depends(get_current_active_user),
    rating_service: RatingService = Depends(get_rating_service)
):
    """Ratings left by mentees, with averages per relationship type and overall"""
    try:
        received = rating_service.received_ratings(current_user.id)
        summary = rating_service.average_rating(current_user.id)
        return {
            "as_student_mentor": ResponseEnricher.enrich_edges(received["student_mentor"]),
            "as_official_mentor": ResponseEnricher.enrich_edges(received["official_mentor"]),
            "average": summary["average"],
            "total": summary["total"],
        }
    except BusinessLogicError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

@router.get("/ratings/pending", response_model=List[PendingRatingResponse])
async def get_pending_ratings(
    current_user: User = Depends(get_current_active_user),
    rating_service: RatingService = Depends(get_rating_service)
):
    """Relationships old enough to be rated that have no rating yet"""
    try:
        pending = rating_service.pending_ratable(current_user.id)
        return [
            {"edge": ResponseEnricher.enrich_single_edge(entry["edge"]),
             "days_since_connection": entry["days_since_connection"]}
            for entry in pending
        ]
    except BusinessLogicError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
