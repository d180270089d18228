"""Console notification adapter — implements NotificationPort.

Writes reminders to a text stream (stdout by default). Real push delivery
lives outside this project; this adapter backs the ``remind`` CLI command.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

logger = logging.getLogger(__name__)


class ConsoleNotifier:
    """Console implementation of NotificationPort."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stdout

    async def send_message(self, title: str, body: str) -> None:
        self._stream.write(f"🔔 {title}\n   {body}\n")
        self._stream.flush()
        logger.debug("Reminder written to console: %s", title)
