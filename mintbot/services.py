# pylint: disable=E1101
"""
mintbot.services
~~~~~~~~~~~~~~~~

This module contains services for the application.
"""
import asyncio
import datetime
import logging
import typing
import uuid

import aiohttp
import orjson
import pytz

LOGS = "/logs"

logger = logging.getLogger(__name__)


class LoggerService:
    """Client for a remote log aggregation service.

    Entries are shipped fire-and-forget: a failed delivery is logged locally and
    never affects the mint that produced it.
    """

    endpoint_url: str
    timezone: str
    client: aiohttp.ClientSession

    def __init__(
        self,
        endpoint_url: str,
        timezone: str,
        client: aiohttp.ClientSession | None = None,
    ) -> None:
        self.endpoint_url = endpoint_url
        self.timezone = timezone
        self.client = client or aiohttp.ClientSession(
            base_url=self.endpoint_url,
            json_serialize=lambda json_: orjson.dumps(json_).decode(),
        )
        self._pending: set[asyncio.Task[typing.Any]] = set()

    def _delivered(self, task: asyncio.Task[typing.Any]) -> None:
        self._pending.discard(task)

        if task.cancelled():
            return

        if (exc := task.exception()) is not None:
            logger.warning("Failed to ship log entry: %s", exc)
            return

        resp = task.result()
        release = getattr(resp, "release", None)

        if callable(release):
            release()

    async def add_log_entry(
        self,
        message: str,
        raw: str,
        level: str,
        source: str = "mint-api",
        id: str | None = None,  # pylint: disable=W0622
        created_at: str | None = None,
    ) -> None:
        """Log a message to the logger service.

        Args:
            message (str): A short message, like a title.
            raw (str): Details pertaining to the log entry.
            level (str): The level of the log entry. One of: "info", "warn", "error".
            source (str, optional): The name of the web service where the log entry
                originated. Defaults to "mint-api".
            id (str | None): The id of the log entry, a UUIDv4 string. Generated
                when omitted.
            created_at (str | None): The timestamp of the log entry.
        """
        task = asyncio.create_task(
            self.client.post(
                LOGS,
                json={
                    "id": id or str(uuid.uuid4()),
                    "created_at": created_at
                    or str(datetime.datetime.now(pytz.timezone(self.timezone))),
                    "message": message,
                    "raw": raw,
                    "level": level,
                    "source": source,
                },
            )
        )
        self._pending.add(task)
        task.add_done_callback(self._delivered)

    async def close(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

        await self.client.close()
