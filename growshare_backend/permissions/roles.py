# permissions/roles.py

from __future__ import annotations

from typing import Optional

from rest_framework.permissions import BasePermission


# =========================================================
# PARTY ROLES (PER TRANSACTION)
# =========================================================
# These are NOT account roles.
# They describe which side of a booking / rental / order the requester is on.
ACTOR_OWNER = "owner"  # plot owner, tool owner, produce seller
ACTOR_COUNTERPARTY = "counterparty"  # renter or buyer

ACTOR_ROLES = {
    ACTOR_OWNER,
    ACTOR_COUNTERPARTY,
}


# =========================================================
# Helpers
# =========================================================
def resolve_actor_role(*, transactable, user) -> Optional[str]:
    """
    Which side of the transaction is `user` on?

    Returns None for anyone who is neither party (third parties are
    forbidden, not merely invalid).

    A transactable exposes `owner_user_id` and `counterparty_user_id`.
    """
    user_id = getattr(user, "id", None)
    if user_id is None:
        return None

    if user_id == transactable.owner_user_id:
        return ACTOR_OWNER
    if user_id == transactable.counterparty_user_id:
        return ACTOR_COUNTERPARTY
    return None


def other_party_id(*, transactable, actor_role: str):
    if actor_role == ACTOR_OWNER:
        return transactable.counterparty_user_id
    return transactable.owner_user_id


# =========================================================
# DRF permission
# =========================================================
class IsTransactionParty(BasePermission):
    """
    Object-level permission: only the owner or the counterparty
    may read or act on a transaction.
    """

    message = "Only the parties to this transaction can access it"

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        return resolve_actor_role(transactable=obj, user=request.user) is not None
