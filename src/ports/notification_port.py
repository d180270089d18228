"""Notification port — abstract interface for delivering reminders.

Core modules depend on this protocol, never on a specific push provider.
"""

from __future__ import annotations

from typing import Protocol


class NotificationPort(Protocol):
    """Abstract notification interface used by the reminder dispatcher."""

    async def send_message(self, title: str, body: str) -> None: ...
