"""Filesystem-backed report sink.

Lays objects out as <root>/<bucket>/<key>, mirroring an object store, plus a
sidecar "<key>.meta.json" holding the content type. Used for local runs and
tests; a bucket store client can replace it behind ReportSinkProtocol.
"""

import asyncio
import json
import logging
from pathlib import Path

from config.settings import settings

logger = logging.getLogger(__name__)


class FileReportSink:
    def __init__(self, root_dir: Path | str | None = None) -> None:
        self.root_dir = Path(root_dir or settings.REPORTS_ROOT_DIR)

    def path_for(self, bucket: str, key: str) -> Path:
        target = (self.root_dir / bucket / key).resolve()
        if not target.is_relative_to(self.root_dir.resolve()):
            raise ValueError(f"Object key escapes the sink root: {bucket}/{key}")
        return target

    async def upload(
        self, bucket: str, key: str, body: bytes, content_type: str
    ) -> None:
        target = self.path_for(bucket, key)
        await asyncio.to_thread(self._write, target, body, content_type)
        logger.info("Stored report %s/%s (%d bytes)", bucket, key, len(body))

    @staticmethod
    def _write(target: Path, body: bytes, content_type: str) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(body)
        meta = target.with_name(target.name + ".meta.json")
        meta.write_text(json.dumps({"content_type": content_type}), encoding="utf-8")
