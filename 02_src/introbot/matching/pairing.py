"""Greedy global pairing of users by profile similarity."""

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from ..errors import PairingError, SimilarityComputationError
from ..logging_config import get_logger
from ..models import SimilarityPair, UserProfile
from .similarity import IScorer, SimilarityScorer

logger = get_logger(__name__)


@dataclass
class PairingResult:
    """Accepted pairs in acceptance order and the (at most one) leftover user."""

    pairs: list[SimilarityPair] = field(default_factory=list)
    unpaired: list[UserProfile] = field(default_factory=list)


def rank_candidates(users: Sequence[UserProfile], scores: np.ndarray) -> list[SimilarityPair]:
    """All unordered pairs sorted by score desc, then by user ids asc."""
    candidates = [
        SimilarityPair(users[i].user_id, users[j].user_id, float(scores[i, j]))
        for i in range(len(users))
        for j in range(i + 1, len(users))
    ]
    candidates.sort(key=lambda p: (-p.score, p.user_id_1, p.user_id_2))
    return candidates


def greedy_pairs(candidates: Sequence[SimilarityPair]) -> list[SimilarityPair]:
    """Take pairs best-first, skipping any pair with an already assigned member."""
    assigned: set[int] = set()
    accepted: list[SimilarityPair] = []
    for pair in candidates:
        if pair.user_id_1 in assigned or pair.user_id_2 in assigned:
            continue
        accepted.append(pair)
        assigned.add(pair.user_id_1)
        assigned.add(pair.user_id_2)
    return accepted


class PairingEngine:
    """Builds disjoint pairs out of the eligible population of one run."""

    def __init__(self, scorer: IScorer | None = None):
        self._scorer = scorer or SimilarityScorer()

    def match(self, users: Sequence[UserProfile]) -> PairingResult:
        """
        Pair users by similarity of their matching texts.

        Args:
            users: Eligible profiles, each user id at most once.

        Returns:
            PairingResult with every user in at most one pair and at most
            one user left unpaired.

        Raises:
            PairingError: On duplicate ids, a score matrix of the wrong shape
                or more than one user left without a partner.
            SimilarityComputationError: If scoring fails or yields
                non-finite values.
        """
        ids = [u.user_id for u in users]
        duplicates = sorted({uid for uid in ids if ids.count(uid) > 1})
        if duplicates:
            raise PairingError(f"Duplicate user ids in matching input: {duplicates}")

        n = len(users)
        if n < 2:
            return PairingResult(pairs=[], unpaired=list(users))

        scores = np.asarray(self._scorer.score_matrix([u.matching_text for u in users]))
        if scores.shape != (n, n):
            raise PairingError(f"Expected a {n}x{n} score matrix, got {scores.shape}")
        if not np.isfinite(scores).all():
            raise SimilarityComputationError("Score matrix contains non-finite values")

        pairs = greedy_pairs(rank_candidates(users, scores))

        paired_ids = {uid for p in pairs for uid in (p.user_id_1, p.user_id_2)}
        unpaired = [u for u in users if u.user_id not in paired_ids]
        if len(unpaired) > 1:
            raise PairingError(
                f"{len(unpaired)} users left unpaired: {[u.user_id for u in unpaired]}"
            )

        logger.info(f"Paired {len(pairs) * 2} of {n} users, {len(unpaired)} left over")
        return PairingResult(pairs=pairs, unpaired=unpaired)
