"""Emergency-contact alert channels."""

from src.notifications.channels import AlertChannel, EmergencyAlert
from src.notifications.email_channel import EmailAlertChannel

__all__ = [
    "AlertChannel",
    "EmailAlertChannel",
    "EmergencyAlert",
]
