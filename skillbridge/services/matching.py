# skillbridge/services/matching.py
"""
Skill Matching

Bidirectional compatibility scoring between two users' teach/learn sets.
`score_match` and `rank_matches` are pure; `find_matches` loads the data
through the repository and ranks every eligible candidate.
"""

import logging
from dataclasses import dataclass
from typing import AbstractSet, Any, Dict, Iterable, List, Optional, Tuple

from skillbridge import models
from skillbridge.errors import NotFound
from skillbridge.repository import Repository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkillProfile:
    """A user's skill sets, as skill identifiers."""

    teaches: frozenset = frozenset()
    learns: frozenset = frozenset()

    @classmethod
    def of(cls, teaches: Iterable[int] = (), learns: Iterable[int] = ()) -> "SkillProfile":
        return cls(frozenset(teaches), frozenset(learns))

    @classmethod
    def from_user(cls, user: models.User) -> "SkillProfile":
        return cls.of(
            (skill.id for skill in user.teaching_skills),
            (skill.id for skill in user.learning_skills),
        )


@dataclass(frozen=True)
class MatchScore:
    eligible: bool
    teaching_matches: int
    learning_matches: int
    score: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "eligible": self.eligible,
            "teaching_matches": self.teaching_matches,
            "learning_matches": self.learning_matches,
            "score": self.score,
        }


def score_match(
    current_user_id: int,
    current: SkillProfile,
    candidate_user_id: int,
    candidate: SkillProfile,
    already_connected: bool = False,
) -> MatchScore:
    """
    Score how well a candidate complements the current user.

    teaching_matches counts skills the current user can teach the candidate,
    learning_matches counts skills the candidate can teach the current user.
    Self-matches and already-connected pairs are ineligible but still scored.
    """
    teaching = len(candidate.learns & current.teaches)
    learning = len(candidate.teaches & current.learns)
    eligible = current_user_id != candidate_user_id and not already_connected

    return MatchScore(
        eligible=eligible,
        teaching_matches=teaching,
        learning_matches=learning,
        score=teaching + learning,
    )


def rank_matches(
    current_user_id: int,
    current: SkillProfile,
    candidates: Iterable[Tuple[int, SkillProfile]],
    connected_user_ids: AbstractSet[int] = frozenset(),
    min_score: int = 0,
) -> List[Tuple[int, MatchScore]]:
    """Score every eligible candidate and sort by score, highest first."""
    scored = []
    for candidate_id, profile in candidates:
        result = score_match(
            current_user_id,
            current,
            candidate_id,
            profile,
            already_connected=candidate_id in connected_user_ids,
        )
        if result.eligible and result.score >= min_score:
            scored.append((candidate_id, result))

    scored.sort(key=lambda item: item[1].score, reverse=True)
    return scored


def find_matches(
    repo: Repository,
    user_id: int,
    min_score: int = 0,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Ranked match suggestions for a user.

    Args:
        repo: Repository
        user_id: Current user ID
        min_score: Drop candidates scoring below this
        limit: Optional cap on returned matches

    Returns:
        List of match dictionaries, best first

    Raises:
        NotFound: If the user does not exist
    """
    user = repo.find_user_by_id(user_id)
    if not user:
        raise NotFound("User", user_id)

    current = SkillProfile.from_user(user)
    candidates = {c.id: c for c in repo.find_candidate_users(exclude_user_id=user_id)}
    connected = {
        conn.other_party(user_id) for conn in repo.find_connections_for_user(user_id)
    }

    ranked = rank_matches(
        user_id,
        current,
        ((cid, SkillProfile.from_user(c)) for cid, c in candidates.items()),
        connected_user_ids=connected,
        min_score=min_score,
    )
    if limit is not None:
        ranked = ranked[:limit]

    logger.debug("User %s: %s candidates, %s ranked matches", user_id, len(candidates), len(ranked))

    return [
        {
            "user_id": cid,
            "name": candidates[cid].name,
            "location": candidates[cid].location,
            "image": candidates[cid].image,
            "teaching_skills": sorted(s.name for s in candidates[cid].teaching_skills),
            "learning_skills": sorted(s.name for s in candidates[cid].learning_skills),
            "match_score": result.score,
            "matching_skills": {
                "teaching": result.teaching_matches,
                "learning": result.learning_matches,
            },
        }
        for cid, result in ranked
    ]
