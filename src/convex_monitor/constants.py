"""Upstream endpoints, identifiers and Convex contract addresses."""

from __future__ import annotations

# ── DefiLlama ──────────────────────────────────────────────

CONVEX_DEFILLAMA_SLUG = "convex-finance"

DEFILLAMA_PROTOCOL_URL = "https://api.llama.fi/protocol"
DEFILLAMA_TVL_URL = "https://api.llama.fi/tvl"
DEFILLAMA_YIELDS_URL = "https://yields.llama.fi/pools"
DEFILLAMA_PRICES_URL = "https://coins.llama.fi/prices/current"

# ── Snapshot governance ────────────────────────────────────

SNAPSHOT_API = "https://hub.snapshot.org/graphql"
SNAPSHOT_SPACE = "cvx.eth"
SNAPSHOT_WEB = "https://snapshot.org/#"

# ── Coingecko ids used by the price feeds ──────────────────

COINGECKO_CVX = "convex-finance"
COINGECKO_CVXCRV = "convex-crv"
COINGECKO_CRV = "curve-dao-token"

# ── Ethereum mainnet contracts ─────────────────────────────

ETHEREUM_CONTRACTS = {
    "booster": "0xF403C135812408BFbE8713b5A23a04b3D48AAE31",
    "cvx": "0x4e3FBD56CD56c3e72c1403e103b45Db9da5B9D2B",
    "cvxCrv": "0x62B9c7356A2Dc64a1969e19C23e4f579F9810Aa7",
    "cvxCrvStaking": "0x3Fe65692bfCD0e6CF84Cb1E7d24108E434A7587e",
    "vlCvx": "0x72a19342e8F1838460eBFCCEf09F6585e32db86E",
    "crv": "0xD533a949740bb3306d119CC777fa900bA034cd52",
}

# First N pools watched by poolApyChanged when no pool id is configured
POOL_APY_SCAN_LIMIT = 50

REQUEST_TIMEOUT = 30.0  # seconds

# ── Protocol parameters ────────────────────────────────────

PLATFORM_FEE = 17  # percent of CRV rewards, all fee recipients combined
CRV_REWARD_SHARE = 0.6  # share of reward APY attributed to CRV, the rest to CVX

GAUGE_VOTE_CYCLE_DAYS = 14
GAUGE_VOTE_WEEKDAY = 3  # Thursday, datetime.weekday()
GAUGE_VOTE_TITLE_WORDS = ("gauge", "weight")
VL_CVX_LOCK_DAYS = 16 * 7 + 1

VOTIUM_URL = "https://votium.app"
HIDDEN_HAND_URL = "https://hiddenhand.finance/convex"


def proposal_url(proposal_id: str) -> str:
    return f"{SNAPSHOT_WEB}/{SNAPSHOT_SPACE}/proposal/{proposal_id}"
