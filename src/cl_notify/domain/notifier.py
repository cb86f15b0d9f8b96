"""Notifier Protocol — fire-and-forget event sink.

send() failures propagate to the caller; they never undo a committed write.
"""

from typing import Any, Protocol


class NotifierProtocol(Protocol):
    async def send(self, event_name: str, payload: dict[str, Any]) -> None: ...
