# mentorship_hub/utils/response_enricher.py
from typing import Dict, Any, List, Optional
from ..models import RelationshipEdge, RelationshipRequest
from ..directory import DirectoryService
from ..schemas import EdgeResponse, RequestResponse, PeerMentorResponse

class ResponseEnricher:
    @staticmethod
    def _names(row) -> Dict[str, Any]:
        return {
            "counterpart_name": DirectoryService.resolve_display_name(row.counterpart),
            "subject_name": row.subject.name if row.subject else None,
        }

    @staticmethod
    def enrich_requests(requests: List[RelationshipRequest]) -> List[Dict[str, Any]]:
        """Adds counterpart display names and subject names to request rows"""
        enriched = []
        for req in requests:
            req_dict = RequestResponse.model_validate(req).model_dump()
            req_dict.update(ResponseEnricher._names(req))
            enriched.append(req_dict)
        return enriched

    @staticmethod
    def enrich_single_request(request: Optional[RelationshipRequest]) -> Optional[Dict[str, Any]]:
        if request is None:
            return None
        return ResponseEnricher.enrich_requests([request])[0]

    @staticmethod
    def enrich_edges(edges: List[RelationshipEdge]) -> List[Dict[str, Any]]:
        enriched = []
        for edge in edges:
            edge_dict = EdgeResponse.model_validate(edge).model_dump()
            edge_dict.update(ResponseEnricher._names(edge))
            enriched.append(edge_dict)
        return enriched

    @staticmethod
    def enrich_single_edge(edge: Optional[RelationshipEdge]) -> Optional[Dict[str, Any]]:
        if edge is None:
            return None
        return ResponseEnricher.enrich_edges([edge])[0]

    @staticmethod
    def enrich_fragment(fragment) -> Dict[str, Any]:
        """Serialises a LedgerFragment returned by the lifecycle operations"""
        return {
            "request": ResponseEnricher.enrich_single_request(fragment.request),
            "counterpart_request": ResponseEnricher.enrich_single_request(fragment.counterpart_request),
            "edge": ResponseEnricher.enrich_single_edge(fragment.edge),
            "counterpart_edge": ResponseEnricher.enrich_single_edge(fragment.counterpart_edge),
        }

    @staticmethod
    def enrich_peer_mentors(mentors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        enriched = []
        for entry in mentors:
            learner = entry["learner"]
            enriched.append(PeerMentorResponse(
                learner_id=learner.id,
                name=DirectoryService.resolve_display_name(learner),
                branch=learner.branch,
                year=learner.year,
                current_semester=learner.current_semester,
                confidence_level=entry["confidence_level"],
                active_mentees=entry["active_mentees"],
                max_mentees=learner.max_mentees,
                teaching_mode=learner.teaching_mode,
                time_slots=learner.time_slots or [],
            ).model_dump())
        return enriched
