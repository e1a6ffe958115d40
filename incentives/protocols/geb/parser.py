"""Pure query builders and parsers for the GEB lending subgraph: no I/O."""
from __future__ import annotations

from typing import Any

from ...errors import AdapterError
from ...fixed_point import to_wad
from ...models import RewardEvent, RewardEventType, SafeDebt
from ...rewards.merger import log_index_from_id

# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def build_owner_mapping_query(block: int) -> str:
    return f"""{{
      safeHandlerOwners(first: 1000, skip: [[skip]], block: {{number: {block}}}) {{
        id
        owner {{ address }}
      }}
    }}"""


def build_safes_debt_query(block: int, c_type: str | None = None) -> str:
    collateral_filter = f', collateralType: "{c_type}"' if c_type else ""
    return f"""{{
      safes(
        where: {{ debt_gt: 0{collateral_filter} }},
        first: 1000,
        skip: [[skip]],
        block: {{ number: {block} }}
      ) {{
        debt
        collateral
        safeHandler
        collateralType {{ id }}
      }}
    }}"""


def build_accumulated_rate_query(block: int, c_type: str) -> str:
    return f"""{{
      collateralType(id: "{c_type}", block: {{ number: {block} }}) {{
        accumulatedRate
      }}
    }}"""


def build_redemption_price_query(timestamp: int) -> str:
    return f"""{{
      redemptionPrices(
        orderBy: timestamp,
        orderDirection: desc,
        first: 1,
        where: {{ timestamp_lte: {timestamp} }}
      ) {{
        value
      }}
    }}"""


def build_safe_modification_query(
    entity: str, start_block: int, end_block: int, c_type: str
) -> str:
    """Debt-changing safe events: modifications and liquidations."""
    return f"""{{
      {entity}(
        where: {{
          createdAtBlock_gte: {start_block},
          createdAtBlock_lte: {end_block},
          collateralType: "{c_type}",
          deltaDebt_not: 0
        }},
        first: 1000,
        skip: [[skip]]
      ) {{
        id
        deltaDebt
        deltaCollateral
        safeHandler
        createdAt
        createdAtBlock
        collateralType {{ id }}
      }}
    }}"""


def build_safe_transfer_query(start_block: int, end_block: int, c_type: str) -> str:
    return f"""{{
      transferSAFECollateralAndDebts(
        where: {{
          createdAtBlock_gte: {start_block},
          createdAtBlock_lte: {end_block},
          collateralType: "{c_type}",
          deltaDebt_not: 0
        }},
        first: 1000,
        skip: [[skip]]
      ) {{
        id
        deltaDebt
        deltaCollateral
        srcHandler
        dstHandler
        createdAt
        createdAtBlock
        collateralType {{ id }}
      }}
    }}"""


def build_accumulated_rate_events_query(
    start_block: int, end_block: int, c_type: str
) -> str:
    return f"""{{
      updateAccumulatedRates(
        where: {{
          createdAtBlock_gte: {start_block},
          createdAtBlock_lte: {end_block},
          collateralType: "{c_type}"
        }},
        first: 1000,
        skip: [[skip]]
      ) {{
        id
        rateMultiplier
        createdAt
        createdAtBlock
        collateralType {{ id }}
      }}
    }}"""


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------


def parse_owner_mapping(rows: list[dict[str, Any]]) -> dict[str, str]:
    """Safe handler → owner address."""
    return {
        row["id"].lower(): row["owner"]["address"].lower()
        for row in rows
        if row.get("owner")
    }


def parse_safes(rows: list[dict[str, Any]]) -> list[SafeDebt]:
    return [
        SafeDebt(
            safe_handler=row["safeHandler"].lower(),
            c_type=row["collateralType"]["id"],
            debt=to_wad(row["debt"]),
            collateral=to_wad(row.get("collateral") or "0"),
        )
        for row in rows
    ]


def parse_accumulated_rate(data: dict[str, Any]) -> int:
    collateral_type = data.get("collateralType")
    if not collateral_type:
        raise AdapterError("Collateral type not found in subgraph response")
    return to_wad(collateral_type["accumulatedRate"])


def parse_redemption_price(data: dict[str, Any]) -> int:
    prices = data.get("redemptionPrices") or []
    if not prices:
        raise AdapterError("Redemption price data not found in the response")
    return to_wad(prices[0]["value"])


def split_transfer(row: dict[str, Any]) -> list[dict[str, Any]]:
    """A debt transfer is a + leg on the destination and a - leg on the source."""
    common = {
        "id": row["id"],
        "createdAt": row["createdAt"],
        "createdAtBlock": row["createdAtBlock"],
        "collateralType": row.get("collateralType"),
    }
    return [
        {
            **common,
            "deltaDebt": row["deltaDebt"],
            "deltaCollateral": row["deltaCollateral"],
            "safeHandler": row["dstHandler"],
        },
        {
            **common,
            "deltaDebt": _negate(row["deltaDebt"]),
            "deltaCollateral": _negate(row["deltaCollateral"]),
            "safeHandler": row["srcHandler"],
        },
    ]


def _negate(amount: str) -> str:
    amount = str(amount).strip()
    return amount[1:] if amount.startswith("-") else f"-{amount}"


def parse_debt_events(
    modifications: list[dict[str, Any]], owners: dict[str, str]
) -> list[RewardEvent]:
    """DELTA_DEBT events for handlers that resolve to an owner."""
    events: list[RewardEvent] = []
    for row in modifications:
        owner = owners.get(row["safeHandler"].lower())
        if not owner:
            continue
        c_type = (row.get("collateralType") or {}).get("id")
        events.append(
            RewardEvent(
                type=RewardEventType.DELTA_DEBT,
                value=to_wad(row["deltaDebt"]),
                complementary_value=to_wad(row.get("deltaCollateral") or "0"),
                address=owner,
                log_index=log_index_from_id(row["id"]),
                timestamp=int(row["createdAt"]),
                created_at_block=int(row["createdAtBlock"]),
                c_type=c_type,
            )
        )
    return events


def parse_rate_events(rows: list[dict[str, Any]]) -> list[RewardEvent]:
    return [
        RewardEvent(
            type=RewardEventType.UPDATE_ACCUMULATED_RATE,
            value=to_wad(row["rateMultiplier"]),
            c_type=row["collateralType"]["id"],
            log_index=log_index_from_id(row["id"]),
            timestamp=int(row["createdAt"]),
            created_at_block=int(row["createdAtBlock"]),
        )
        for row in rows
    ]
