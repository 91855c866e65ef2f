"""
变体库存合并：webhook 的变体列表和库里已有变体按 id 对齐，
webhook 没带库存字段时保留旧值，避免把未追踪库存的数量清零。
"""

from __future__ import annotations
from typing import Any, Dict, List

from app.integrations.shopify.payload_utils import variant_id_key


UNTRACKED_MANAGEMENT = ("", "not_managed")


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def merge_variant(incoming: Dict[str, Any], existing: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(incoming)

    if _is_empty(incoming.get("inventory_management")) and not _is_empty(existing.get("inventory_management")):
        merged["inventory_management"] = existing["inventory_management"]

    if _is_empty(incoming.get("inventory_policy")) and not _is_empty(existing.get("inventory_policy")):
        merged["inventory_policy"] = existing["inventory_policy"]

    old_qty = existing.get("inventory_quantity")
    if incoming.get("inventory_quantity") is None:
        # 缺省不等于 0：webhook 没带数量（追踪与否都一样）沿用旧值，不当作售罄
        if old_qty is not None:
            merged["inventory_quantity"] = old_qty
    elif (merged.get("inventory_management") or "") in UNTRACKED_MANAGEMENT and _as_int(old_qty) > 0:
        # 未追踪库存：旧的正数不被覆盖
        merged["inventory_quantity"] = old_qty
    # 其余情况（追踪库存）以 webhook 为准，0 也是真实的售罄信号

    return merged


def merge_variant_inventory(
    incoming: List[Dict[str, Any]],
    existing: List[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """按 incoming 的顺序返回合并后的变体列表；找不到旧变体的原样保留"""
    existing_by_id = {
        variant_id_key(v): v for v in existing or [] if isinstance(v, dict) and variant_id_key(v)
    }
    merged: List[Dict[str, Any]] = []
    for variant in incoming or []:
        if not isinstance(variant, dict):
            continue
        old = existing_by_id.get(variant_id_key(variant))
        merged.append(merge_variant(variant, old) if old is not None else dict(variant))
    return merged
