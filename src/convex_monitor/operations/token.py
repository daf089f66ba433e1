"""Token operations."""

from __future__ import annotations

from convex_monitor.client import ConvexDataClient
from convex_monitor.constants import ETHEREUM_CONTRACTS
from convex_monitor.formatting import format_usd
from convex_monitor.models.pools import TokenRef
from convex_monitor.operations.base import OperationSpec, Params, Record, utc_now

CVX = TokenRef.address("ethereum", ETHEREUM_CONTRACTS["cvx"])
CRV = TokenRef.address("ethereum", ETHEREUM_CONTRACTS["crv"])
CVXCRV = TokenRef.address("ethereum", ETHEREUM_CONTRACTS["cvxCrv"])


def _token(price: float, contract: str, symbol: str) -> Record:
    return {
        "price": price,
        "priceFormatted": format_usd(price),
        "contract": contract,
        "symbol": symbol,
    }


async def get_cvx_price(client: ConvexDataClient, params: Params) -> list[Record]:
    prices = await client.get_prices([CVX, CRV, CVXCRV])
    cvx = prices.get(CVX) or 0.0
    crv = prices.get(CRV) or 0.0
    # cvxCRV falls back to CRV when the feed is missing
    cvxcrv = prices.get(CVXCRV) or crv

    cvx_to_crv = cvx / crv if crv > 0 else 0.0
    return [{
        "cvx": _token(cvx, ETHEREUM_CONTRACTS["cvx"], "CVX"),
        "crv": _token(crv, ETHEREUM_CONTRACTS["crv"], "CRV"),
        "cvxCrv": _token(cvxcrv, ETHEREUM_CONTRACTS["cvxCrv"], "cvxCRV"),
        "ratios": {
            "cvxToCrv": cvx_to_crv,
            "cvxToCrvFormatted": f"{cvx_to_crv:.4f}",
        },
        "network": "ethereum",
        "timestamp": utc_now(),
    }]


OPERATIONS = {
    "getCvxPrice": OperationSpec(get_cvx_price),
}
