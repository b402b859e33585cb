"""Matching module."""

from .orchestrator import IMatchingOrchestrator, MatchingOrchestrator
from .pairing import PairingEngine, PairingResult, greedy_pairs, rank_candidates
from .similarity import IScorer, SimilarityScorer, normalize_text

__all__ = [
    "IMatchingOrchestrator",
    "MatchingOrchestrator",
    "PairingEngine",
    "PairingResult",
    "greedy_pairs",
    "rank_candidates",
    "IScorer",
    "SimilarityScorer",
    "normalize_text",
]
