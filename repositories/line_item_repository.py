"""
Line item repository (persistence).

Loads lot line items and deal lines keyed by normalized line ref, and
forwards component part observations to the store's logging function.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from uuid import UUID

from domain.line_ref import LineRefIndex
from repositories.client import Client
from repositories.store import execute, rows

_LINE_ITEMS_TABLE: str = "line_items"
_DEAL_LINES_TABLE: str = "deal_lines"


@dataclass(frozen=True, slots=True)
class LineItemComponents:
    """Component part numbers carried by a line item (for stock observation logging)."""

    line_item_id: UUID
    lot_id: Optional[UUID]
    cpu: Optional[str] = None
    cpu_qty: Optional[int] = None
    memory_part_numbers: Optional[str] = None
    memory_qty: Optional[int] = None
    gpu: Optional[str] = None
    gpu_qty: Optional[int] = None
    drives: Optional[str] = None
    drives_qty: Optional[int] = None


def _build_indexes(
    line_rows: Iterable[Mapping[str, Any]], scope_column: str
) -> Dict[UUID, LineRefIndex]:
    grouped: Dict[UUID, List[Tuple[UUID, Optional[str]]]] = defaultdict(list)
    for row in line_rows:
        if not row.get(scope_column) or not row.get("line_ref"):
            continue
        grouped[UUID(str(row[scope_column]))].append((UUID(str(row["id"])), row["line_ref"]))
    return {scope_id: LineRefIndex.build(lines) for scope_id, lines in grouped.items()}


def line_ref_indexes_for_lots(db: Client, tenant_id: UUID, lot_ids: Iterable[UUID]) -> Dict[UUID, LineRefIndex]:
    ids = [str(lot_id) for lot_id in lot_ids]
    if not ids:
        return {}
    response = execute(
        db.table(_LINE_ITEMS_TABLE)
        .select("id,line_ref,lot_id")
        .in_("lot_id", ids)
        .eq("tenant_id", str(tenant_id)),
        "fetch lot line items",
    )
    return _build_indexes(rows(response), "lot_id")


def line_ref_indexes_for_deals(db: Client, tenant_id: UUID, deal_ids: Iterable[UUID]) -> Dict[UUID, LineRefIndex]:
    ids = [str(deal_id) for deal_id in deal_ids]
    if not ids:
        return {}
    response = execute(
        db.table(_DEAL_LINES_TABLE)
        .select("id,line_ref,deal_id")
        .in_("deal_id", ids)
        .eq("tenant_id", str(tenant_id)),
        "fetch deal lines",
    )
    return _build_indexes(rows(response), "deal_id")


def _int_or_none(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def get_line_item_components(db: Client, line_item_ids: Iterable[UUID]) -> List[LineItemComponents]:
    ids = [str(line_id) for line_id in line_item_ids]
    if not ids:
        return []
    response = execute(
        db.table(_LINE_ITEMS_TABLE)
        .select("id,lot_id,cpu,cpu_qty,memory_part_numbers,memory_qty,gpu,specs")
        .in_("id", ids),
        "fetch line item components",
    )

    components: List[LineItemComponents] = []
    for row in rows(response):
        specs = row.get("specs") if isinstance(row.get("specs"), dict) else {}
        drives = specs.get("drives")
        components.append(
            LineItemComponents(
                line_item_id=UUID(str(row["id"])),
                lot_id=UUID(str(row["lot_id"])) if row.get("lot_id") else None,
                cpu=row.get("cpu") or None,
                cpu_qty=_int_or_none(row.get("cpu_qty")),
                memory_part_numbers=row.get("memory_part_numbers") or None,
                memory_qty=_int_or_none(row.get("memory_qty")),
                gpu=row.get("gpu") or None,
                gpu_qty=_int_or_none(specs.get("gpu_qty")),
                drives=drives if isinstance(drives, str) and drives else None,
                drives_qty=_int_or_none(specs.get("drives_qty")),
            )
        )
    return components


def log_part_observation(
    db: Client,
    *,
    part_number: str,
    category: str,
    qty: int,
    lot_id: Optional[UUID],
    line_item_id: UUID,
    offer_id: UUID,
    qty_type: str = "sold",
    source: str = "offer_lines",
) -> None:
    execute(
        db.rpc(
            "log_part_observation",
            {
                "p_part_number": part_number,
                "p_category": category,
                "p_qty": qty,
                "p_qty_type": qty_type,
                "p_lot": str(lot_id) if lot_id else None,
                "p_line": str(line_item_id),
                "p_offer": str(offer_id),
                "p_source": source,
            },
        ),
        "log part observation",
    )


__all__ = [
    "LineItemComponents",
    "get_line_item_components",
    "line_ref_indexes_for_deals",
    "line_ref_indexes_for_lots",
    "log_part_observation",
]
