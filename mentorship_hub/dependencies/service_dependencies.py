# mentorship_hub/dependencies/service_dependencies.py
from fastapi import Depends
from sqlalchemy.orm import Session
from ..database import get_db
from ..services.mentorship_service import MentorshipService
from ..services.profile_service import ProfileService
from ..services.rating_service import RatingService
from ..services.discovery_service import DiscoveryService

def get_mentorship_service(db: Session = Depends(get_db)) -> MentorshipService:
    return MentorshipService(db)

def get_profile_service(db: Session = Depends(get_db)) -> ProfileService:
    return ProfileService(db)

def get_rating_service(db: Session = Depends(get_db)) -> RatingService:
    return RatingService(db)

def get_discovery_service(db: Session = Depends(get_db)) -> DiscoveryService:
    return DiscoveryService(db)
