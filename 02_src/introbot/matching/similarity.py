"""
Lexical similarity of profile answers.

All texts of one run are vectorized together with a single TF-IDF
vocabulary, so every score in the resulting matrix is comparable with every
other. Scores are cosine similarities in [0, 1].
"""

import re
from typing import Protocol, Sequence

import numpy as np
from sklearn.feature_extraction.text import TfidfVectorizer  # type: ignore
from sklearn.metrics.pairwise import cosine_similarity  # type: ignore

from ..errors import SimilarityComputationError

_URL_RE = re.compile(r"https?://\S+|www\.\S+")
_MENTION_RE = re.compile(r"@\w+")
_NON_WORD_RE = re.compile(r"[^\w\s]+")
_WHITESPACE_RE = re.compile(r"\s+")
# Same as TfidfVectorizer's default token_pattern
_TOKEN_RE = re.compile(r"(?u)\b\w\w+\b")


class IScorer(Protocol):
    """Produces an n x n similarity matrix for n texts."""

    def score_matrix(self, texts: Sequence[str]) -> np.ndarray:
        ...


def normalize_text(text: str) -> str:
    """Lowercase and strip links, mentions, punctuation and emoji."""
    text = text.lower()
    text = _URL_RE.sub(" ", text)
    text = _MENTION_RE.sub(" ", text)
    text = _NON_WORD_RE.sub(" ", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


class SimilarityScorer:
    """TF-IDF cosine similarity over a shared per-run vocabulary."""

    def __init__(self, max_features: int | None = 4096):
        self._max_features = max_features

    def score_matrix(self, texts: Sequence[str]) -> np.ndarray:
        """
        Pairwise similarity of all texts.

        Returns:
            Symmetric float matrix with values in [0, 1]. All zeros when no
            text contains a single token.

        Raises:
            SimilarityComputationError: If a text is not a string or the
                vectorizer rejects the corpus.
        """
        n = len(texts)
        if n == 0:
            return np.zeros((0, 0))

        normalized = []
        for i, text in enumerate(texts):
            if not isinstance(text, str):
                raise SimilarityComputationError(
                    f"Text #{i} is {type(text).__name__}, expected str"
                )
            normalized.append(normalize_text(text))

        if not any(_TOKEN_RE.search(text) for text in normalized):
            return np.zeros((n, n))

        vectorizer = TfidfVectorizer(max_features=self._max_features, lowercase=False)
        try:
            tfidf = vectorizer.fit_transform(normalized)
            scores = cosine_similarity(tfidf)
        except ValueError as e:
            raise SimilarityComputationError(f"Vectorization failed: {e}") from e

        scores = (scores + scores.T) / 2
        return np.clip(scores, 0.0, 1.0)

    def score(self, text_a: str, text_b: str) -> float:
        """Similarity of two texts on their own two-document vocabulary."""
        return float(self.score_matrix([text_a, text_b])[0, 1])
