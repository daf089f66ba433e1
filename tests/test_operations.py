"""Request/response operations and the dispatch table."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from convex_monitor.constants import ETHEREUM_CONTRACTS
from convex_monitor.errors import TransportError, UnknownOperationError, ValidationError
from convex_monitor.operations import REGISTRY, Resource, execute, list_operations
from convex_monitor.operations.snapshot import next_gauge_vote

from tests.factories import BASE_TIME, make_pool, make_proposal, make_vote

CVX_KEY = f"ethereum:{ETHEREUM_CONTRACTS['cvx']}"
CRV_KEY = f"ethereum:{ETHEREUM_CONTRACTS['crv']}"
CVXCRV_KEY = f"ethereum:{ETHEREUM_CONTRACTS['cvxCrv']}"


@pytest.fixture
def pools(aggregator):
    aggregator.pools = [
        make_pool("p1", symbol="3CRV", apy=6.0, tvl_usd=2_000_000.0, stablecoin=True,
                  apy_base=1.0, apy_reward=5.0),
        make_pool("p2", symbol="CVX-ETH", apy=25.0, tvl_usd=50_000.0),
        make_pool("p3", symbol="FRAX", apy=9.0, tvl_usd=500_000.0, stablecoin=True),
        make_pool("p4", symbol="DEAD", apy=0.0, tvl_usd=0.0),
    ]
    return aggregator


# ── Dispatch ──────────────────────────────────────────────────────


def test_registry_covers_every_resource():
    assert {r for r, _ in REGISTRY} == set(Resource)
    assert ("pool", "getAllPools") in list_operations()
    assert ("frax", "getFraxPools") in list_operations()
    assert len(list_operations()) == 17


@pytest.mark.parametrize("resource, operation", [
    ("pool", "getEverything"),
    ("frax", "getFxsRewards"),
    ("token", "getAllPools"),
])
async def test_unknown_operation_fails_before_network(client, aggregator, resource, operation):
    with pytest.raises(UnknownOperationError):
        await execute(resource, operation, [{}], client, continue_on_fail=True)
    assert aggregator.calls == []


async def test_missing_required_param_fails_before_network(client, aggregator):
    with pytest.raises(ValidationError, match="poolId"):
        await execute("pool", "getPoolById", [{"poolId": "  "}], client)
    assert aggregator.calls == []


async def test_continue_on_fail_reports_in_band(client, pools):
    results = await execute(
        "pool", "getPoolById", [{}, {"poolId": "p1"}], client, continue_on_fail=True,
    )

    assert results[0] == {"error": 'Required parameter "poolId" is missing or empty'}
    assert results[1]["id"] == "p1"


async def test_transport_failure_aborts_batch_without_continue(client, aggregator):
    aggregator.fail = True

    with pytest.raises(TransportError):
        await execute("pool", "getAllPools", [{}], client)

    results = await execute("pool", "getAllPools", [{}, {}], client, continue_on_fail=True)
    assert len(results) == 2
    assert all("simulated outage" in r["error"] for r in results)


async def test_items_are_concatenated(client, pools):
    results = await execute(
        "pool", "getPoolTvl", [{"poolId": "p1"}, {"poolId": "P3"}], client,
    )

    assert [r["poolId"] for r in results] == ["p1", "p3"]


# ── Pool ──────────────────────────────────────────────────────────


async def test_get_all_pools_filters_inactive_and_limits(client, pools):
    active = await execute("pool", "getAllPools", [{}], client)
    assert [r["id"] for r in active] == ["p1", "p2", "p3"]

    everything = await execute("pool", "getAllPools", [{"includeInactive": True, "limit": "2"}], client)
    assert [r["id"] for r in everything] == ["p1", "p2"]


async def test_get_pool_by_id_not_found(client, pools):
    assert await execute("pool", "getPoolById", [{"poolId": "zz"}], client) == [
        {"error": "Pool not found", "poolId": "zz"},
    ]


async def test_get_pool_apy_breakdown(client, pools):
    [p1] = await execute("pool", "getPoolApy", [{"poolId": "p1"}], client)
    assert p1["totalApyFormatted"] == "6.00%"
    assert p1["rewardApyFormatted"] == "5.00%"

    [p2] = await execute("pool", "getPoolApy", [{"poolId": "p2"}], client)
    assert p2["baseApy"] is None
    assert p2["baseApyFormatted"] == "N/A"


async def test_get_pool_tvl(client, pools):
    [record] = await execute("pool", "getPoolTvl", [{"poolId": "p1"}], client)

    assert record["tvlUsd"] == 2_000_000.0
    assert record["tvlFormatted"] == "$2.00M"
    assert record["stablecoin"] is True


async def test_top_pools_by_apy_applies_min_tvl(client, pools):
    results = await execute("pool", "getTopPoolsByApy", [{}], client)

    assert [(r["rank"], r["id"]) for r in results] == [(1, "p3"), (2, "p1")]

    low = await execute("pool", "getTopPoolsByApy", [{"minTvl": 0, "limit": 1}], client)
    assert [r["id"] for r in low] == ["p2"]


async def test_top_pools_by_tvl_stablecoins_only(client, pools):
    results = await execute("pool", "getTopPoolsByTvl", [{"stablecoinsOnly": "true"}], client)

    assert [r["id"] for r in results] == ["p1", "p3"]
    assert results[0]["tvlFormatted"] == "$2.00M"



async def test_get_pool_rewards_breakdown(client, pools):
    [record] = await execute("pool", "getPoolRewards", [{"poolId": "p1"}], client)

    assert record["totalRewardApy"] == 5.0
    assert record["rewardBreakdown"]["crv"]["estimatedApy"] == pytest.approx(3.0)
    assert record["rewardBreakdown"]["cvx"]["estimatedApy"] == pytest.approx(2.0)
    assert record["rewardBreakdown"]["baseApy"]["value"] == 1.0
    assert record["rewardTokens"] == ["CRV", "CVX"]
    assert record["hasExtraRewards"] is False
    assert record["platformFee"] == "17%"
    assert record["netApy"] == pytest.approx(4.98)
    assert record["netApyFormatted"] == "4.98%"


async def test_get_pool_rewards_extra_tokens_and_zero_apy(client, aggregator):
    aggregator.pools = [make_pool("x", apy=0.0, reward_tokens=["0xcrv", "0xcvx", "0xldo"])]

    [record] = await execute("pool", "getPoolRewards", [{"poolId": "x"}], client)
    [missing] = await execute("pool", "getPoolRewards", [{"poolId": "nope"}], client)

    assert record["hasExtraRewards"] is True
    assert record["netApy"] == 0.0
    assert record["netApyFormatted"] == "N/A"
    assert missing == {"error": "Pool not found", "poolId": "nope"}


# ── Token and staking ─────────────────────────────────────────────


async def test_get_cvx_price(client, aggregator):
    aggregator.set_price(CVX_KEY, 3.0)
    aggregator.set_price(CRV_KEY, 0.6)

    [record] = await execute("token", "getCvxPrice", [{}], client)

    assert record["cvx"]["price"] == 3.0
    assert record["cvx"]["priceFormatted"] == "$3.00"
    # Missing cvxCRV feed falls back to CRV
    assert record["cvxCrv"]["price"] == 0.6
    assert record["ratios"]["cvxToCrv"] == pytest.approx(5.0)
    assert record["ratios"]["cvxToCrvFormatted"] == "5.0000"


@pytest.mark.parametrize("cvxcrv, status, arbitrage", [
    (0.99, "pegged", False),
    (0.90, "discount", True),
    (1.04, "premium", False),
])
async def test_get_cvxcrv_ratio(client, aggregator, cvxcrv, status, arbitrage):
    aggregator.set_price(CRV_KEY, 1.0)
    aggregator.set_price(CVXCRV_KEY, cvxcrv)

    [record] = await execute("staking", "getCvxCrvRatio", [{}], client)

    assert record["pegStatus"] == status
    assert record["arbitrageOpportunity"] is arbitrage
    assert record["ratio"] == pytest.approx(cvxcrv)



async def test_get_staking_tvl_share(client, aggregator, pools):
    aggregator.pools.append(make_pool("cvxcrv-pool", symbol="CVXCRV-CRV", tvl_usd=300_000.0))
    aggregator.set_tvl(1_500_000.0)
    aggregator.protocol = {**aggregator.protocol, "currentChainTvls": {"Ethereum": 1_500_000.0}, "change_1d": -2.5}

    [record] = await execute("staking", "getStakingTvl", [{}], client)

    assert record["cvxCrvStakingTvl"] == 300_000.0
    assert record["cvxCrvPools"] == 1
    assert record["tvlPercentage"] == pytest.approx(20.0)
    assert record["tvlPercentageFormatted"] == "20.00%"
    assert record["chainBreakdown"] == {"Ethereum": 1_500_000.0}
    assert record["tvlChange1d"] == -2.5


async def test_get_staking_tvl_zero_protocol_tvl(client, aggregator):
    [record] = await execute("staking", "getStakingTvl", [{}], client)

    assert record["tvlPercentage"] == 0.0
    assert record["cvxCrvPools"] == 0


# ── Frax and Prisma ───────────────────────────────────────────────


async def test_get_frax_pools_by_symbol_or_meta(client, aggregator, pools):
    aggregator.pools += [
        make_pool("fxs", symbol="CVXFXS-FXS", tvl_usd=900_000.0),
        make_pool("bp", symbol="USDC-X", tvl_usd=10.0, pool_meta="FraxBP"),
    ]

    records = await execute("frax", "getFraxPools", [{}], client)
    filtered = await execute("frax", "getFraxPools", [{"minTvl": 1000, "limit": 1}], client)

    assert [r["id"] for r in records] == ["fxs", "p3", "bp"]
    assert all(r["isFraxPool"] for r in records)
    assert records[0]["tvlFormatted"] == "$900.00K"
    assert [r["id"] for r in filtered] == ["fxs"]


async def test_get_prisma_pools(client, aggregator, pools):
    [empty] = await execute("prisma", "getPrismaPools", [{}], client)
    assert empty["message"] == "No Prisma pools found on Convex"

    aggregator.pools.append(make_pool("mk", symbol="MKUSD-FRAXBP", tvl_usd=40_000.0))
    [record] = await execute("prisma", "getPrismaPools", [{}], client)

    assert record["id"] == "mk"
    assert record["isPrismaPool"] is True


# ── Protocol ──────────────────────────────────────────────────────


async def test_get_protocol_tvl(client, aggregator):
    aggregator.protocol = {
        "slug": "convex-finance",
        "tvl": 1.5e9,
        "currentChainTvls": {"Ethereum": 1.4e9, "Arbitrum": 1e8},
    }
    aggregator.tvl = 1.5e9

    [record] = await execute("protocol", "getProtocolTvl", [{}], client)

    assert record["totalTvlFormatted"] == "$1.50B"
    assert record["chainBreakdown"][0] == {
        "chain": "Ethereum", "tvl": 1.4e9, "tvlFormatted": "$1.40B",
    }
    assert record["metadata"]["slug"] == "convex-finance"

    [bare] = await execute("protocol", "getProtocolTvl", [{"includeBreakdown": False}], client)
    assert "chainBreakdown" not in bare


# ── Snapshot ──────────────────────────────────────────────────────


async def test_active_proposals_empty_is_informational(client, governance):
    [record] = await execute("snapshot", "getActiveProposals", [{}], client)

    assert record["message"] == "No active proposals found"
    assert record["snapshotSpace"] == "cvx.eth"


async def test_active_proposals_truncates_body(client, governance):
    governance.proposals = [make_proposal("0x1", body="x" * 600), make_proposal("0x2", body="short")]

    records = await execute("snapshot", "getActiveProposals", [{"limit": 5}], client)

    assert len(records) == 2
    assert records[0]["body"] == "x" * 500 + "..."
    assert records[1]["body"] == "short"
    assert records[0]["proposalUrl"].endswith("/proposal/0x1")


async def test_vote_results_for_one_proposal(client, governance):
    governance.proposals = [make_proposal(
        "0xp", state="closed", choices=["Yes", "No", "Abstain"], scores=[30.0, 60.0, 10.0],
        quorum=50.0,
    )]
    governance.votes = {"0xp": [make_vote("0xv1", choice=2, vp=60.0), make_vote("0xv2", choice=[1, 3])]}

    [record] = await execute(
        "snapshot", "getVoteResults", [{"proposalId": "0xp", "includeVotes": True}], client,
    )

    assert record["winner"] == {"choice": "No", "score": 60.0, "percentage": "60.00%"}
    assert [d["choice"] for d in record["voteDistribution"]] == ["No", "Yes", "Abstain"]
    assert record["quorumReached"] is True
    assert record["votes"][0]["choice"] == "No"
    assert record["votes"][1]["choice"] == ["Yes", "Abstain"]


async def test_vote_results_unknown_proposal(client, governance):
    [record] = await execute("snapshot", "getVoteResults", [{"proposalId": "0xnone"}], client)

    assert record["error"] == "Proposal not found"


async def test_vote_results_recent_closed(client, governance):
    governance.proposals = [
        make_proposal("0xopen", end=BASE_TIME + 10**10),
        make_proposal("0xdone", state="closed", scores=[1.0, 3.0]),
    ]

    records = await execute("snapshot", "getVoteResults", [{}], client)

    assert [r["id"] for r in records] == ["0xdone"]
    assert records[0]["winner"] == {"choice": "Against", "percentage": "75.00%"}


async def test_active_proposals_past_end_reports_zero_remaining(client, governance):
    # Still flagged active upstream although the voting window has closed
    governance.proposals = [make_proposal("0xlate", end=BASE_TIME)]

    [record] = await execute("snapshot", "getActiveProposals", [{}], client)

    assert record["timeRemaining"] == {"days": 0, "hours": 0, "formatted": "0d 0h"}


# ── Gauge weight votes ────────────────────────────────────────────


@pytest.mark.parametrize("now, expected", [
    (datetime(2024, 1, 1, 9, 30, tzinfo=timezone.utc), datetime(2024, 1, 4, tzinfo=timezone.utc)),
    (datetime(2024, 1, 4, 12, 0, tzinfo=timezone.utc), datetime(2024, 1, 11, tzinfo=timezone.utc)),
    (datetime(2024, 1, 6, 23, 59, tzinfo=timezone.utc), datetime(2024, 1, 11, tzinfo=timezone.utc)),
])
def test_next_gauge_vote_is_following_thursday(now, expected):
    assert next_gauge_vote(now) == expected


async def test_gauge_weight_votes_filters_titles(client, governance):
    governance.proposals = [
        make_proposal("0xg1", title="Gauge Weight for Week of 4th Jan", end=BASE_TIME + 10**10,
                      choices=["A", "B", "C"], scores=[5.0, 20.0, 75.0]),
        make_proposal("0xcip", title="CIP-9: Treasury"),
        make_proposal("0xg0", title="Gauge weight for Week of 21st Dec", state="closed"),
    ]

    records = await execute("snapshot", "getGaugeWeightVotes", [{}], client)
    upcoming = await execute("snapshot", "getGaugeWeightVotes", [{"includePast": False}], client)

    assert [r["id"] for r in records] == ["0xg1", "0xg0"]
    assert records[0]["isGaugeWeightVote"] is True
    assert records[0]["isActive"] is True
    assert records[0]["topChoices"][0] == {"choice": "C", "score": 75.0, "percentage": "75.00%"}
    assert records[0]["allChoicesCount"] == 3
    assert records[0]["nextGaugeVote"]["formatted"].startswith("Thursday, ")
    assert "nextGaugeVote" not in records[1]
    assert [r["id"] for r in upcoming] == ["0xg1"]


async def test_gauge_weight_votes_none_found(client, governance):
    governance.fail = True

    [record] = await execute("snapshot", "getGaugeWeightVotes", [{}], client)

    assert record["message"] == "No gauge weight vote proposals found"
    assert "date" in record["nextGaugeVote"]


async def test_voting_schedule(client, governance):
    governance.proposals = [
        make_proposal("0xg", title="Gauge Weight for Week of 4th Jan"),
        make_proposal("0xcip", title="CIP-9: Treasury"),
    ]

    [record] = await execute("snapshot", "getVotingSchedule", [{"futureDates": 3}], client)
    [capped] = await execute("snapshot", "getVotingSchedule", [{"futureDates": 50}], client)

    upcoming = record["upcomingVotes"]
    dates = [datetime.fromisoformat(v["date"]) for v in upcoming]
    assert len(upcoming) == 3
    assert all(d.weekday() == 3 for d in dates)
    assert [(b - a).days for a, b in zip(dates, dates[1:])] == [14, 14]
    assert [v["isNext"] for v in upcoming] == [True, False, False]
    assert 0 <= upcoming[0]["daysUntil"] <= 6
    assert record["nextGaugeVote"] == upcoming[0]
    assert record["activeVotes"]["count"] == 1
    assert record["activeVotes"]["proposals"][0]["id"] == "0xg"
    assert record["allActiveProposals"]["count"] == 2
    assert record["vlCvxLockInfo"]["lockDuration"] == 113
    assert record["vlCvxLockInfo"]["lockDurationFormatted"] == "16 weeks + 1 day"
    assert len(capped["upcomingVotes"]) == 12
