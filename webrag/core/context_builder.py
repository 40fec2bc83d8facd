from dataclasses import dataclass
from typing import List, Sequence, Union

from webrag.core.models import ScoredMatch


@dataclass(frozen=True)
class NoContext:
    """Nothing was retrieved; the caller must answer with a refusal."""


@dataclass(frozen=True)
class Context:
    text: str
    sources: int


ContextOutcome = Union[NoContext, Context]


def format_citation(rank: int, match: ScoredMatch) -> str:
    return f"[{rank}] Source: {match.title} ({match.url})\nContent: {match.text}"


def rank_matches(matches: Sequence[ScoredMatch]) -> List[ScoredMatch]:
    """Order matches by descending score; equal scores keep their input order."""
    return sorted(matches, key=lambda m: m.score, reverse=True)


def build_context(matches: Sequence[ScoredMatch]) -> ContextOutcome:
    """Turn retrieved matches into numbered citation blocks.

    Sorting happens here, so citation [1] is always the best scoring match
    whatever order the backend returned.
    """
    if not matches:
        return NoContext()
    ranked = rank_matches(matches)
    text = "\n\n".join(format_citation(i, m) for i, m in enumerate(ranked, 1))
    return Context(text=text, sources=len(ranked))
