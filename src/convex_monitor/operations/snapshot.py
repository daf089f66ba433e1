"""Governance operations over the Convex snapshot space."""

from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone

from convex_monitor.client import ConvexDataClient
from convex_monitor.constants import (
    GAUGE_VOTE_CYCLE_DAYS,
    GAUGE_VOTE_TITLE_WORDS,
    GAUGE_VOTE_WEEKDAY,
    HIDDEN_HAND_URL,
    SNAPSHOT_SPACE,
    SNAPSHOT_WEB,
    VL_CVX_LOCK_DAYS,
    VOTIUM_URL,
)
from convex_monitor.formatting import format_number
from convex_monitor.models.governance import Proposal, Vote
from convex_monitor.operations.base import (
    OperationSpec,
    Params,
    Record,
    bool_param,
    int_param,
    iso,
    str_param,
)

BODY_PREVIEW = 500
MAX_SCHEDULE_DATES = 12
SPACE_URL = f"{SNAPSHOT_WEB}/{SNAPSHOT_SPACE}"


def _distribution(proposal: Proposal) -> list[Record]:
    """Choices ranked by score, highest first."""
    total = proposal.scores_total or 1
    rows = []
    for i, choice in enumerate(proposal.choices):
        score = proposal.scores[i] if i < len(proposal.scores) else 0.0
        rows.append({
            "choice": choice,
            "score": score,
            "percentage": f"{score / total * 100:.2f}%",
        })
    rows.sort(key=lambda r: r["score"], reverse=True)
    return rows


def _choice_label(proposal: Proposal, index: int) -> str | None:
    # Vote choices are 1-based
    if 1 <= index <= len(proposal.choices):
        return proposal.choices[index - 1]
    return None


def _vote_record(proposal: Proposal, vote: Vote) -> Record:
    if isinstance(vote.choice, list):
        choice: str | list[str | None] | None = [_choice_label(proposal, c) for c in vote.choice]
    else:
        choice = _choice_label(proposal, vote.choice)
    return {
        "voter": vote.voter,
        "choice": choice,
        "votingPower": vote.vp,
        "votingPowerFormatted": format_number(vote.vp),
        "timestamp": iso(vote.created),
    }


async def get_active_proposals(client: ConvexDataClient, params: Params) -> list[Record]:
    limit = int_param(params, "limit", 10)
    proposals = (await client.get_active_proposals())[:limit]
    if not proposals:
        return [{
            "message": "No active proposals found",
            "snapshotSpace": SNAPSHOT_SPACE,
            "snapshotUrl": SPACE_URL,
            "note": "Check Snapshot directly for the latest governance activity",
        }]

    now = int(time.time())
    results = []
    for p in proposals:
        remaining = max(p.end - now, 0)
        days, rest = divmod(remaining, 86400)
        hours = rest // 3600
        body = p.body[:BODY_PREVIEW] + ("..." if len(p.body) > BODY_PREVIEW else "")
        results.append({
            "id": p.id,
            "title": p.title,
            "body": body,
            "choices": list(p.choices),
            "startTime": iso(p.start),
            "endTime": iso(p.end),
            "timeRemaining": {
                "days": days,
                "hours": hours,
                "formatted": f"{days}d {hours}h",
            },
            "state": p.state,
            "author": p.author,
            "scores": list(p.scores),
            "scoresTotal": p.scores_total,
            "scoresTotalFormatted": format_number(p.scores_total),
            "votes": p.votes,
            "votesFormatted": format_number(p.votes),
            "quorum": p.quorum,
            "snapshot": p.snapshot,
            "snapshotSpace": SNAPSHOT_SPACE,
            "proposalUrl": p.url,
        })
    return results


async def get_vote_results(client: ConvexDataClient, params: Params) -> list[Record]:
    proposal_id = str_param(params, "proposalId")
    if proposal_id:
        return await _single_result(client, proposal_id, bool_param(params, "includeVotes", False))

    limit = int_param(params, "limit", 10)
    now = int(time.time())
    closed = [p for p in await client.get_all_proposals(limit) if p.end < now]
    if not closed:
        return [{
            "message": "No closed proposals found",
            "snapshotSpace": SNAPSHOT_SPACE,
            "snapshotUrl": SPACE_URL,
        }]

    results = []
    for p in closed:
        distribution = _distribution(p)
        winner = distribution[0] if distribution else {"choice": None, "percentage": "0.00%"}
        results.append({
            "id": p.id,
            "title": p.title,
            "state": p.state,
            "endTime": iso(p.end),
            "totalVotes": p.votes,
            "totalVotingPower": p.scores_total,
            "quorumReached": p.scores_total >= p.quorum,
            "winner": {"choice": winner["choice"], "percentage": winner["percentage"]},
            "topChoices": distribution[:5],
            "proposalUrl": p.url,
        })
    return results


async def _single_result(
    client: ConvexDataClient, proposal_id: str, include_votes: bool
) -> list[Record]:
    proposal = await client.get_proposal_by_id(proposal_id)
    if proposal is None:
        return [{
            "error": "Proposal not found",
            "proposalId": proposal_id,
            "snapshotUrl": SPACE_URL,
        }]

    distribution = _distribution(proposal)
    winner = distribution[0] if distribution else {"choice": None, "score": 0.0, "percentage": "0.00%"}
    result: Record = {
        "id": proposal.id,
        "title": proposal.title,
        "state": proposal.state,
        "startTime": iso(proposal.start),
        "endTime": iso(proposal.end),
        "author": proposal.author,
        "totalVotes": proposal.votes,
        "totalVotesFormatted": format_number(proposal.votes),
        "totalVotingPower": proposal.scores_total,
        "totalVotingPowerFormatted": format_number(proposal.scores_total),
        "quorum": proposal.quorum,
        "quorumReached": proposal.scores_total >= proposal.quorum,
        "winner": winner,
        "voteDistribution": distribution,
        "proposalUrl": proposal.url,
    }
    if include_votes:
        votes = await client.get_proposal_votes(proposal_id, 100)
        result["votes"] = [_vote_record(proposal, v) for v in votes]
    return [result]


# ── Gauge weight votes ────────────────────────────────────────────


def next_gauge_vote(now: datetime) -> datetime:
    """Midnight UTC of the first vote day strictly after ``now``'s date."""
    days_ahead = (GAUGE_VOTE_WEEKDAY - now.weekday()) % 7 or 7
    day = (now + timedelta(days=days_ahead)).date()
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


def _vote_date(when: datetime) -> Record:
    return {
        "date": when.isoformat(),
        "formatted": f"{when:%A}, {when:%B} {when.day}, {when.year}",
    }


async def get_gauge_weight_votes(client: ConvexDataClient, params: Params) -> list[Record]:
    limit = int_param(params, "limit", 10)
    include_past = bool_param(params, "includePast", True)

    now_dt = datetime.now(timezone.utc)
    now = int(now_dt.timestamp())
    next_vote = _vote_date(next_gauge_vote(now_dt))

    proposals = await client.get_gauge_weight_votes(limit)
    if not include_past:
        proposals = [p for p in proposals if p.end > now]
    if not proposals:
        return [{
            "message": "No gauge weight vote proposals found",
            "snapshotSpace": SNAPSHOT_SPACE,
            "snapshotUrl": SPACE_URL,
            "nextGaugeVote": next_vote,
            "note": "Gauge weight votes occur bi-weekly on Thursdays",
        }]

    results = []
    for p in proposals:
        results.append({
            "id": p.id,
            "title": p.title,
            "isGaugeWeightVote": True,
            "isActive": p.start <= now < p.end,
            "state": p.state,
            "startTime": iso(p.start),
            "endTime": iso(p.end),
            "author": p.author,
            "totalVotes": p.votes,
            "totalVotesFormatted": format_number(p.votes),
            "totalVotingPower": p.scores_total,
            "totalVotingPowerFormatted": format_number(p.scores_total),
            "topChoices": _distribution(p)[:10],
            "allChoicesCount": len(p.choices),
            "proposalUrl": p.url,
            "description": "Gauge weight votes determine CRV emissions allocation across Curve pools",
        })
    results[0]["nextGaugeVote"] = next_vote
    return results


async def get_voting_schedule(client: ConvexDataClient, params: Params) -> list[Record]:
    count = min(max(int_param(params, "futureDates", 6), 0), MAX_SCHEDULE_DATES)

    now = datetime.now(timezone.utc)
    first = next_gauge_vote(now)
    upcoming = []
    for i in range(count):
        when = first + timedelta(days=i * GAUGE_VOTE_CYCLE_DAYS)
        upcoming.append({
            **_vote_date(when),
            "daysUntil": (when - now).days,
            "isNext": i == 0,
        })

    active = (await client.get_active_proposals())[:5]
    gauge_votes = [
        p for p in active
        if any(word in p.title.lower() for word in GAUGE_VOTE_TITLE_WORDS)
    ]

    return [{
        "currentTime": now.isoformat(),
        "gaugeVoteCycle": {
            "intervalDays": GAUGE_VOTE_CYCLE_DAYS,
            "intervalFormatted": f"Every {GAUGE_VOTE_CYCLE_DAYS} days (bi-weekly)",
            "voteDay": "Thursday",
            "description": "Gauge weight votes occur every two weeks on Thursday",
        },
        "nextGaugeVote": upcoming[0] if upcoming else None,
        "upcomingVotes": upcoming,
        "activeVotes": {
            "count": len(gauge_votes),
            "proposals": [
                {"id": p.id, "title": p.title, "endTime": iso(p.end), "proposalUrl": p.url}
                for p in gauge_votes
            ],
        },
        "allActiveProposals": {
            "count": len(active),
            "proposals": [{"id": p.id, "title": p.title, "endTime": iso(p.end)} for p in active],
        },
        "vlCvxLockInfo": {
            "lockDuration": VL_CVX_LOCK_DAYS,
            "lockDurationFormatted": f"{VL_CVX_LOCK_DAYS // 7} weeks + 1 day",
            "description": "vlCVX locks are for 16 weeks + 1 day to align with gauge vote epochs",
        },
        "snapshotSpace": SNAPSHOT_SPACE,
        "snapshotUrl": SPACE_URL,
        "votiumUrl": VOTIUM_URL,
        "hiddenHandUrl": HIDDEN_HAND_URL,
        "howToParticipate": [
            "1. Acquire CVX tokens",
            "2. Lock CVX as vlCVX on Convex (16 weeks + 1 day)",
            "3. Wait for the next gauge weight vote to open",
            "4. Vote on Snapshot for your preferred gauges",
            "5. Optionally, delegate to Votium or Hidden Hand for bribes",
        ],
    }]


OPERATIONS = {
    "getActiveProposals": OperationSpec(get_active_proposals),
    "getVoteResults": OperationSpec(get_vote_results),
    "getGaugeWeightVotes": OperationSpec(get_gauge_weight_votes),
    "getVotingSchedule": OperationSpec(get_voting_schedule),
}
