"""Report sink Protocol — object-store capability used by the report service.

Implementations store `body` under (bucket, key); errors propagate as-is.
"""

from typing import Protocol


class ReportSinkProtocol(Protocol):
    async def upload(
        self, bucket: str, key: str, body: bytes, content_type: str
    ) -> None: ...
