# transactions/signals.py

"""
Transaction lifecycle signals.

transactable_completed
    Sent after a booking / rental / order reaches COMPLETED and the
    transaction has committed.

    kwargs: kind, instance, owner_id, counterparty_id
"""

from django.dispatch import Signal

transactable_completed = Signal()
