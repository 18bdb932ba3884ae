# transactions/services/transition_service.py

"""
TRANSITION SERVICE (DOMAIN-CONTROLLED)

The single write path for booking / rental / order status changes.

GUARANTEES:
- Only the two parties can act (third party -> 403)
- Moves are validated against the static tables in lifecycle.py
- The row is locked (select_for_update) AND the write is a conditional
  UPDATE on the status that was read, so of two racing requests only the
  one matching the committed state wins; the other gets a stale-state error
- Tool hold on approval is part of the transaction (no tool, no approval)
- Inventory restoration runs in a savepoint: its failure is logged and
  never undoes the status change
- Notifications + completion hook run only after commit

FLOW:
1) Lock + load
2) Resolve actor role
3) Optional optimistic check (expected_status)
4) Notes permissions
5) Validate transition (same status = no-op)
6) Conditional UPDATE + timestamp
7) Inventory effects
8) After commit: dispatcher
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from backend.api_errors import DomainNotFoundError, DomainPermissionError, DomainStateError
from listings.services.inventory import hold_tool
from permissions.roles import ACTOR_COUNTERPARTY, ACTOR_OWNER, resolve_actor_role
from transactions.models import KIND_BOOKING, KIND_ORDER, KIND_RENTAL, MODEL_BY_KIND, ToolRental
from transactions.services.lifecycle import (
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    ForbiddenTransitionError,
    allowed_transitions,
    get_table,
    validate_transition,
)
from transactions.services.side_effects import dispatch_transition_effects, restore_inventory

logger = logging.getLogger(__name__)


# ============================================================
# DOMAIN ERRORS
# ============================================================


class TransactableNotFoundError(DomainNotFoundError):
    pass


class StaleTransitionError(DomainStateError):
    pass


class NotesPermissionError(DomainPermissionError):
    pass


# ============================================================
# CONFIG
# ============================================================

SELECT_RELATED = {
    KIND_BOOKING: ("plot",),
    KIND_RENTAL: ("tool",),
    KIND_ORDER: ("listing",),
}

# note field -> role allowed to write it (None = either party)
NOTE_FIELDS = {
    KIND_BOOKING: {"owner_notes": ACTOR_OWNER, "renter_notes": ACTOR_COUNTERPARTY},
    KIND_RENTAL: {"owner_notes": ACTOR_OWNER, "renter_notes": ACTOR_COUNTERPARTY},
    KIND_ORDER: {"notes": None},
}


@dataclass
class TransitionResult:
    transactable: object
    actor_role: str
    from_status: str
    to_status: str
    changed: bool
    updated_fields: list = field(default_factory=list)


# ============================================================
# LOADERS
# ============================================================


def get_transactable(*, kind: str, entity_id, lock: bool = False):
    model = MODEL_BY_KIND[kind]
    qs = model.objects.select_related(*SELECT_RELATED[kind])
    if lock:
        qs = qs.select_for_update(of=("self",))
    try:
        return qs.get(pk=entity_id)
    except (model.DoesNotExist, ValueError, DjangoValidationError):
        raise TransactableNotFoundError(f"{kind.capitalize()} not found") from None


def transitions_for_user(*, kind: str, transactable, user) -> dict:
    role = resolve_actor_role(transactable=transactable, user=user)
    if role is None:
        raise ForbiddenTransitionError("Only the parties to this transaction can view it")
    return {
        "status": transactable.status,
        "role": role,
        "allowed": sorted(
            allowed_transitions(kind=kind, current_status=transactable.status, actor_role=role)
        ),
    }


# ============================================================
# TRANSITION
# ============================================================


def apply_transition(
    *,
    kind: str,
    entity_id,
    user,
    desired_status: Optional[str] = None,
    expected_status: Optional[str] = None,
    notes: Optional[dict] = None,
) -> TransitionResult:
    """
    Change status and/or notes of a booking, rental or order.

    `notes` maps note field names (owner_notes, renter_notes, notes) to text.
    """
    table = get_table(kind)
    model = MODEL_BY_KIND[kind]
    notes = notes or {}

    with transaction.atomic():
        obj = get_transactable(kind=kind, entity_id=entity_id, lock=True)

        role = resolve_actor_role(transactable=obj, user=user)
        if role is None:
            raise ForbiddenTransitionError("Only the parties to this transaction can change it")

        current = obj.status

        if expected_status and expected_status != current:
            raise StaleTransitionError(
                f"{kind.capitalize()} is {current}, not {expected_status}; reload and retry"
            )

        updates = {}
        allowed_notes = NOTE_FIELDS[kind]
        for field_name, value in notes.items():
            if field_name not in allowed_notes:
                raise NotesPermissionError(f"'{field_name}' cannot be set on a {kind}")
            owner_role = allowed_notes[field_name]
            if owner_role is not None and owner_role != role:
                raise NotesPermissionError(f"Only the {owner_role} can update {field_name}")
            updates[field_name] = value

        changed = False
        if desired_status:
            changed = validate_transition(
                kind=kind,
                current_status=current,
                requested_status=desired_status,
                actor_role=role,
            )

        if not changed and not updates:
            return TransitionResult(
                transactable=obj,
                actor_role=role,
                from_status=current,
                to_status=current,
                changed=False,
            )

        now = timezone.now()
        updates["updated_at"] = now

        if changed:
            if kind == KIND_RENTAL and desired_status == ToolRental.STATUS_APPROVED:
                hold_tool(rental=obj)

            updates["status"] = desired_status
            ts_field = table.timestamps.get(desired_status)
            if ts_field:
                updates[ts_field] = now

        rows = model.objects.filter(pk=obj.pk, status=current).update(**updates)
        if rows != 1:
            raise StaleTransitionError(
                f"{kind.capitalize()} changed while processing; reload and retry"
            )

        for name, value in updates.items():
            setattr(obj, name, value)

        if changed and desired_status in (STATUS_CANCELLED, STATUS_COMPLETED):
            restore_inventory(kind=kind, transactable=obj, to_status=desired_status)

    to_status = obj.status
    logger.info(
        "Transaction updated",
        extra={
            "kind": kind,
            "entity_id": str(obj.pk),
            "actor_role": role,
            "from_status": current,
            "to_status": to_status,
            "fields": sorted(updates),
        },
    )

    if changed:
        dispatch_transition_effects(
            kind=kind,
            transactable=obj,
            from_status=current,
            to_status=to_status,
            actor_role=role,
        )

    return TransitionResult(
        transactable=obj,
        actor_role=role,
        from_status=current,
        to_status=to_status,
        changed=changed,
        updated_fields=sorted(updates),
    )
