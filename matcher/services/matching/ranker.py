"""
Ranker

Scores filtered candidates against the requester and orders them by score,
highest first. Equal scores keep their input order (stable sort); no
secondary key is applied.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from matcher.models.enums import UserRole
from matcher.services.matching.candidate_filter import Candidate
from matcher.services.matching.scorer import calculate_match_score


@dataclass
class RankedCandidate:
    """Discovery result entry."""
    user_id: str
    role: str  # role of the candidate (opposite of the requester)
    profile: Any
    match_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "role": self.role,
            "profile": self.profile.to_dict() if hasattr(self.profile, "to_dict") else self.profile,
            "match_score": self.match_score,
        }


def rank_candidates(
    requester_user,
    requester_profile,
    candidates: Sequence[Candidate],
    role: UserRole,
) -> List[RankedCandidate]:
    """
    Score and order candidates for a requester.

    Args:
        requester_user: User requesting discovery
        requester_profile: Requester's profile of `role`
        candidates: Output of the candidate filter
        role: Requester's role

    Returns:
        Candidates ordered by match_score descending, ties in input order
    """
    role = UserRole(role)
    ranked: List[RankedCandidate] = []

    for candidate in candidates:
        if role is UserRole.creator:
            score = calculate_match_score(
                requester_profile, requester_user, candidate.profile, candidate.user
            )
        else:
            score = calculate_match_score(
                candidate.profile, candidate.user, requester_profile, requester_user
            )

        ranked.append(RankedCandidate(
            user_id=candidate.user.id,
            role=role.opposite.value,
            profile=candidate.profile,
            match_score=score,
        ))

    # sorted() is stable, including with reverse=True
    return sorted(ranked, key=lambda r: r.match_score, reverse=True)


def paginate(ranked: Sequence[RankedCandidate], offset: int, limit: int) -> List[RankedCandidate]:
    """Slice [offset, offset + limit). An offset past the end yields []."""
    return list(ranked[offset:offset + limit])
