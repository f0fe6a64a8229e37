"""Reliable request delivery to in-page agents."""

from .queue import DeliveryQueue, DeliveryQueueEntry, PendingDelivery, Transport

__all__ = [
    "DeliveryQueue",
    "DeliveryQueueEntry",
    "PendingDelivery",
    "Transport",
]
