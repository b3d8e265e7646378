"""
Similarity oracle used by the matcher.

The matcher only depends on the `SimilarityOracle` interface:

    match(source_name, target_candidates, context) -> [(target_index, probability)]

`EmbeddingLLMOracle` is the production implementation:
1) exact (case-insensitive) name matches score 1.0 without a model call
2) remaining candidates are ranked by embedding cosine similarity
   (SentenceTransformer, normalised embeddings)
3) the top_k candidates are checked by an OpenAI chat model answering Yes/No
4) match probability = P(Yes) from the answer token's log-probabilities

Candidates scoring at least `min_probability` are returned, best first.
Transient API errors are retried with backoff; the last one propagates.
"""

from __future__ import annotations

import math
import random
import time
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from openai import OpenAI
from sentence_transformers import SentenceTransformer

from clea_iso.config import LinkageConfig, get_openai_key
from clea_iso.errors import OracleError
from clea_iso.models import OracleContext, SimilarityOracle


# ------------------ HELPERS ------------------ #

def backoff(attempt: int) -> None:
    time.sleep((2 ** attempt) * 0.6 + random.random() * 0.3)


def make_user_text(source_name: str, target_name: str, record_type: str) -> str:
    return (
        f"Record type: {record_type}\n"
        f"First name: {source_name}\n"
        f"Second name: {target_name}\n\n"
        "Respond with Yes or No only."
    )


def yes_probability(response) -> float:
    """
    Convert a one-token chat completion into P(Yes).

    Uses the top log-probabilities of the first token, normalised over the
    Yes/No mass. Falls back to the literal answer when logprobs are absent.
    """
    choice = response.choices[0]
    logprobs = getattr(choice, "logprobs", None)
    content = getattr(logprobs, "content", None) if logprobs is not None else None

    if not content:
        answer = (choice.message.content or "").strip().lower()
        if answer.startswith("yes"):
            return 1.0
        if answer.startswith("no"):
            return 0.0
        raise OracleError(f"Unexpected oracle answer: {answer[:50]!r}")

    yes = 0.0
    no = 0.0
    for candidate in content[0].top_logprobs or []:
        token = candidate.token.strip().lower()
        if token == "yes":
            yes += math.exp(candidate.logprob)
        elif token == "no":
            no += math.exp(candidate.logprob)

    if yes + no == 0.0:
        raise OracleError("Neither Yes nor No among the answer's top tokens")

    return yes / (yes + no)


# ------------------ ORACLE ------------------ #

class EmbeddingLLMOracle(SimilarityOracle):
    """
    Embedding retrieval + LLM yes/no check, one source name at a time.
    """

    def __init__(
        self,
        client: OpenAI,
        embedder: Optional[SentenceTransformer] = None,
        *,
        chat_model: str = "gpt-4.1-mini",
        embedding_model: str = "all-MiniLM-L6-v2",
        top_k: int = 5,
        min_probability: float = 0.1,
        max_retries: int = 4,
    ):
        self.client = client
        self.embedder = embedder if embedder is not None else SentenceTransformer(embedding_model)
        self.chat_model = chat_model
        self.top_k = top_k
        self.min_probability = min_probability
        self.max_retries = max_retries

        self._embeddings: Dict[str, np.ndarray] = {}

    def _embed(self, names: Sequence[str]) -> np.ndarray:
        missing = [n for n in dict.fromkeys(names) if n not in self._embeddings]
        if missing:
            vectors = self.embedder.encode(
                list(missing),
                normalize_embeddings=True,
                show_progress_bar=False,
            )
            for name, vec in zip(missing, vectors):
                self._embeddings[name] = np.asarray(vec, dtype=float)

        return np.vstack([self._embeddings[n] for n in names])

    def _check_pair(self, source_name: str, target_name: str, context: OracleContext) -> float:
        messages = [
            {"role": "system", "content": context.instructions},
            {"role": "user", "content": make_user_text(source_name, target_name, context.record_type)},
        ]

        for attempt in range(self.max_retries):
            try:
                resp = self.client.chat.completions.create(
                    model=self.chat_model,
                    messages=messages,
                    temperature=0,
                    max_completion_tokens=1,
                    logprobs=True,
                    top_logprobs=5,
                )
                return yes_probability(resp)
            except Exception:
                if attempt == self.max_retries - 1:
                    raise
                backoff(attempt)

        raise OracleError("max_retries must be at least 1")

    def match(
        self,
        source_name: str,
        target_candidates: Sequence[str],
        context: OracleContext,
    ) -> List[Tuple[int, float]]:
        if not target_candidates or not source_name:
            return []

        scores: Dict[int, float] = {}
        key = source_name.strip().casefold()

        remaining: List[int] = []
        for i, target in enumerate(target_candidates):
            if str(target).strip().casefold() == key:
                scores[i] = 1.0
            else:
                remaining.append(i)

        if remaining and self.top_k > 0:
            source_vec = self._embed([source_name])[0]
            target_vecs = self._embed([str(target_candidates[i]) for i in remaining])
            sims = target_vecs @ source_vec

            for j in np.argsort(-sims, kind="stable")[: self.top_k]:
                i = remaining[int(j)]
                scores[i] = self._check_pair(source_name, str(target_candidates[i]), context)

        matches = [(i, p) for i, p in scores.items() if p >= self.min_probability]
        return sorted(matches, key=lambda m: (-m[1], m[0]))


def build_oracle(cfg: LinkageConfig) -> EmbeddingLLMOracle:
    """
    Construct the production oracle from config (reads the API key from .env).
    """
    return EmbeddingLLMOracle(
        OpenAI(api_key=get_openai_key()),
        chat_model=cfg.chat_model,
        embedding_model=cfg.embedding_model,
        top_k=cfg.top_k,
        min_probability=cfg.min_probability,
        max_retries=cfg.max_retries,
    )
