"""GovernanceSource protocol - best-effort snapshot governance data."""

from __future__ import annotations

from typing import Protocol

from convex_monitor.models.governance import Proposal, Vote


class GovernanceSource(Protocol):
    """Read-only access to the governance GraphQL API.

    Failures never propagate: implementations log and return an empty result.
    """

    async def get_active_proposals(self) -> list[Proposal]:
        """Active proposals, newest first."""
        ...

    async def get_all_proposals(
        self, limit: int = 20, state: str | None = None
    ) -> list[Proposal]:
        """Recent proposals in any state, newest first."""
        ...

    async def get_proposal(self, proposal_id: str) -> Proposal | None:
        ...

    async def get_votes(self, proposal_id: str, limit: int = 100) -> list[Vote]:
        """Votes on a proposal ordered by voting power."""
        ...

    async def aclose(self) -> None:
        ...
