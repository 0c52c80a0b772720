"""
Alert evaluation and notification delivery.
"""

from .alert_evaluator import AlertEvaluator, should_alert
from .channels import (
    DeliveryResult,
    NotificationChannel,
    ConsoleChannel,
    LoggerChannel,
    CallbackChannel,
    EmailChannel,
    WebhookChannel
)
from .notifier import Notifier

__all__ = [
    'AlertEvaluator',
    'should_alert',
    'DeliveryResult',
    'NotificationChannel',
    'ConsoleChannel',
    'LoggerChannel',
    'CallbackChannel',
    'EmailChannel',
    'WebhookChannel',
    'Notifier'
]
