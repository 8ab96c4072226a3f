"""
GRV LIFECYCLE DOMAIN RULES

The ONLY allowed status transitions for GoodsReceivedVoucher.

    DRAFT -> POSTED -> CANCELLED

DESIGN PRINCIPLES:
- No database writes
- No stock mutation
- No side effects
"""

from inventory.services.exceptions import InvalidStateError
from purchases.models import GoodsReceivedVoucher

# ============================================================
# STATE DEFINITIONS
# ============================================================

TERMINAL_STATES = {
    GoodsReceivedVoucher.STATUS_CANCELLED,
}

ALLOWED_TRANSITIONS = {
    GoodsReceivedVoucher.STATUS_DRAFT: {
        GoodsReceivedVoucher.STATUS_POSTED,
    },
    GoodsReceivedVoucher.STATUS_POSTED: {
        GoodsReceivedVoucher.STATUS_CANCELLED,
    },
}


# ============================================================
# DOMAIN RULES
# ============================================================


def can_transition(*, from_status: str, to_status: str) -> bool:
    if from_status in TERMINAL_STATES:
        return False

    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def validate_transition(*, grv: GoodsReceivedVoucher, target_status: str):
    if not can_transition(from_status=grv.status, to_status=target_status):
        raise InvalidStateError(
            f"GRV {grv.grv_number or grv.id} cannot transition from "
            f"'{grv.status}' to '{target_status}'"
        )


def ensure_editable(grv: GoodsReceivedVoucher):
    """Edit and soft delete are Draft-only; posted/cancelled GRVs are history."""
    if grv.status != GoodsReceivedVoucher.STATUS_DRAFT:
        raise InvalidStateError(
            f"GRV {grv.grv_number or grv.id} is {grv.status}; only DRAFT GRVs can be changed"
        )
