"""AlertChannel protocol — interface for emergency-contact delivery channels."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class EmergencyAlert:
    """Who to notify about whom, and when the message was sent."""

    contact_email: str
    user_name: str
    user_email: str
    timestamp: datetime


@runtime_checkable
class AlertChannel(Protocol):
    """Protocol that all alert channels must satisfy."""

    @property
    def name(self) -> str:
        """Unique channel identifier (e.g. 'email')."""
        ...

    async def send_emergency_alert(self, alert: EmergencyAlert) -> bool:
        """Deliver *alert*. Returns True on success and never raises."""
        ...
