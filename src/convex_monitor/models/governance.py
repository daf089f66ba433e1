"""Snapshot governance models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from convex_monitor.constants import proposal_url


@dataclass(frozen=True)
class Proposal:
    """A governance proposal in the Convex snapshot space."""

    id: str
    title: str
    start: int  # epoch seconds
    end: int  # epoch seconds
    choices: list[str] = field(default_factory=list)
    scores: list[float] = field(default_factory=list)
    scores_total: float = 0.0
    votes: int = 0
    body: str = ""
    state: str = ""
    author: str = ""
    snapshot: str = ""
    quorum: float = 0.0

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> Proposal:
        return cls(
            id=str(raw.get("id") or ""),
            title=str(raw.get("title") or ""),
            start=int(raw.get("start") or 0),
            end=int(raw.get("end") or 0),
            choices=list(raw.get("choices") or []),
            scores=[float(s or 0) for s in raw.get("scores") or []],
            scores_total=float(raw.get("scores_total") or 0),
            votes=int(raw.get("votes") or 0),
            body=str(raw.get("body") or ""),
            state=str(raw.get("state") or ""),
            author=str(raw.get("author") or ""),
            snapshot=str(raw.get("snapshot") or ""),
            quorum=float(raw.get("quorum") or 0),
        )

    @property
    def url(self) -> str:
        return proposal_url(self.id)


@dataclass(frozen=True)
class Vote:
    """A single vote cast on a proposal."""

    id: str
    voter: str
    vp: float
    choice: int | list[int]  # 1-based index into Proposal.choices
    created: int  # epoch seconds

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> Vote:
        choice = raw.get("choice")
        if isinstance(choice, list):
            parsed: int | list[int] = [int(c) for c in choice]
        elif isinstance(choice, dict):
            # weighted votes: {"1": 60, "3": 40}
            parsed = [int(c) for c in choice]
        else:
            parsed = int(choice or 0)
        return cls(
            id=str(raw.get("id") or ""),
            voter=str(raw.get("voter") or ""),
            vp=float(raw.get("vp") or 0),
            choice=parsed,
            created=int(raw.get("created") or 0),
        )
