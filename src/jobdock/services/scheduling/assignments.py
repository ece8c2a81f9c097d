"""Normalization of the ``assigned_to`` field at the storage boundary.

Older rows hold one of three shapes: a bare user id string, a list of user
id strings, or a list of assignment objects. Everything past this module
works with the list-of-assignments form only.
"""

from typing import Any

from jobdock.models.enums import PayType

DEFAULT_ROLE = "Team Member"


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def _normalize_item(item: Any) -> dict | None:
    if isinstance(item, str):
        user_id = item.strip()
        if not user_id:
            return None
        return {
            "user_id": user_id,
            "role": DEFAULT_ROLE,
            "price": None,
            "pay_type": PayType.JOB.value,
            "hourly_rate": None,
        }

    if hasattr(item, "model_dump"):
        item = item.model_dump(mode="json")
    if not isinstance(item, dict):
        return None

    # camelCase keys come from rows written by the legacy API
    user_id = item.get("user_id", item.get("userId"))
    if not isinstance(user_id, str) or not user_id.strip():
        return None

    role = item.get("role")
    pay_type = item.get("pay_type", item.get("payType"))
    return {
        "user_id": user_id.strip(),
        "role": role.strip() if isinstance(role, str) and role.strip() else DEFAULT_ROLE,
        "price": _as_number(item.get("price")),
        "pay_type": pay_type if pay_type in (PayType.JOB.value, PayType.HOURLY.value) else PayType.JOB.value,
        "hourly_rate": _as_number(item.get("hourly_rate", item.get("hourlyRate"))),
    }


def normalize_assigned_to(value: Any) -> list[dict]:
    """Return the canonical list-of-assignment dicts for any stored shape.

    Duplicate user ids keep their first entry. Unusable entries are dropped.
    """
    if value is None:
        return []
    items = value if isinstance(value, (list, tuple)) else [value]

    normalized: list[dict] = []
    seen: set[str] = set()
    for item in items:
        assignment = _normalize_item(item)
        if assignment is None or assignment["user_id"] in seen:
            continue
        seen.add(assignment["user_id"])
        normalized.append(assignment)
    return normalized


def extract_user_ids(value: Any) -> list[str]:
    """User ids of every assignee, in assignment order."""
    return [a["user_id"] for a in normalize_assigned_to(value)]
