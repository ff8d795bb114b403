"""
Сервисы движка оповещений
"""

from .dedup import DedupAction, DedupController, DedupDecision
from .dispatcher import NotificationDispatcher
from .email_service import EmailService
from .entity_store import EntityStore
from .recipient_resolver import RecipientResolver
from .velocity_service import VelocityService

__all__ = [
    "DedupAction",
    "DedupController",
    "DedupDecision",
    "NotificationDispatcher",
    "EmailService",
    "EntityStore",
    "RecipientResolver",
    "VelocityService",
]
