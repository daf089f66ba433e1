"""Snapshot governance source - proposals and votes over GraphQL.

Governance data is best effort: every failure is logged and turned into an
empty result so the caller can keep evaluating the metrics it does have.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from convex_monitor.constants import REQUEST_TIMEOUT, SNAPSHOT_API, SNAPSHOT_SPACE
from convex_monitor.models.governance import Proposal, Vote

log = logging.getLogger(__name__)

_PROPOSAL_FIELDS = """
    id
    title
    body
    choices
    start
    end
    snapshot
    state
    author
    scores
    scores_total
    votes
    quorum
"""

ACTIVE_PROPOSALS_QUERY = f"""
query GetProposals($space: String!, $state: String!) {{
  proposals(
    first: 20
    skip: 0
    where: {{ space: $space, state: $state }}
    orderBy: "created"
    orderDirection: desc
  ) {{{_PROPOSAL_FIELDS}  }}
}}
"""

ALL_PROPOSALS_QUERY = f"""
query GetProposals($space: String!, $first: Int!, $skip: Int!) {{
  proposals(
    first: $first
    skip: $skip
    where: {{ space: $space }}
    orderBy: "created"
    orderDirection: desc
  ) {{{_PROPOSAL_FIELDS}  }}
}}
"""

PROPOSAL_QUERY = f"""
query GetProposal($id: String!) {{
  proposal(id: $id) {{{_PROPOSAL_FIELDS}  }}
}}
"""

VOTES_QUERY = """
query GetVotes($proposalId: String!, $first: Int!) {
  votes(
    first: $first
    where: { proposal: $proposalId }
    orderBy: "vp"
    orderDirection: desc
  ) {
    id
    voter
    vp
    choice
    created
  }
}
"""


class SnapshotSource:
    """GraphQL client for the Convex snapshot space."""

    def __init__(
        self,
        url: str = SNAPSHOT_API,
        space: str = SNAPSHOT_SPACE,
        api_key: str = "",
        timeout: float = REQUEST_TIMEOUT,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._space = space
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if api_key:
            headers["x-api-key"] = api_key
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=10),
            headers=headers,
        )

    @property
    def space(self) -> str:
        return self._space

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def _query(self, query: str, variables: dict[str, Any], operation: str) -> dict | None:
        """Run a GraphQL query. Returns the ``data`` object or None on any failure."""
        try:
            resp = await self._http.post(
                self._url, json={"query": query, "variables": variables},
            )
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPStatusError as exc:
            log.warning(
                "Snapshot %s failed: HTTP %d", operation, exc.response.status_code,
            )
            return None
        except (httpx.HTTPError, ValueError) as exc:
            log.warning("Snapshot %s failed: %s", operation, exc)
            return None

        if not isinstance(payload, dict):
            log.warning("Snapshot %s returned a non-object payload", operation)
            return None
        if payload.get("errors"):
            messages = [e.get("message", "?") for e in payload["errors"] if isinstance(e, dict)]
            log.warning("Snapshot %s returned errors: %s", operation, "; ".join(messages))
            return None
        return payload.get("data") or {}

    @staticmethod
    def _proposals(data: dict | None) -> list[Proposal]:
        if not data:
            return []
        return [Proposal.from_api(p) for p in data.get("proposals") or [] if isinstance(p, dict)]

    # ── Proposals ──────────────────────────────────────────

    async def get_active_proposals(self) -> list[Proposal]:
        data = await self._query(
            ACTIVE_PROPOSALS_QUERY,
            {"space": self._space, "state": "active"},
            "get_active_proposals",
        )
        return self._proposals(data)

    async def get_all_proposals(
        self, limit: int = 20, state: str | None = None
    ) -> list[Proposal]:
        data = await self._query(
            ALL_PROPOSALS_QUERY,
            {"space": self._space, "first": limit, "skip": 0},
            "get_all_proposals",
        )
        proposals = self._proposals(data)
        if state:
            proposals = [p for p in proposals if p.state == state]
        return proposals

    async def get_proposal(self, proposal_id: str) -> Proposal | None:
        data = await self._query(PROPOSAL_QUERY, {"id": proposal_id}, "get_proposal")
        raw = (data or {}).get("proposal")
        return Proposal.from_api(raw) if isinstance(raw, dict) else None

    # ── Votes ──────────────────────────────────────────────

    async def get_votes(self, proposal_id: str, limit: int = 100) -> list[Vote]:
        data = await self._query(
            VOTES_QUERY, {"proposalId": proposal_id, "first": limit}, "get_votes",
        )
        if not data:
            return []
        return [Vote.from_api(v) for v in data.get("votes") or [] if isinstance(v, dict)]
