from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, TypeVar

import httpx

from hostwatch.collectors.base import with_timeout
from hostwatch.format import format_bandwidth
from hostwatch.models.snapshot import Torrent, TorrentState, TransmissionSession, TransmissionStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")

SESSION_HEADER = "X-Transmission-Session-Id"
SESSION_REJECTED = 409
MAX_ATTEMPTS = 3

TORRENT_FIELDS = [
    "id",
    "name",
    "status",
    "rateDownload",
    "rateUpload",
    "percentDone",
    "errorString",
    "eta",
]

ACTIVE_STATES = {TorrentState.DOWNLOADING, TorrentState.SEEDING}


class TransmissionClient:
    """Minimal Transmission JSON-RPC client.

    The daemon rejects requests lacking a current session id with ``409`` and
    hands out the fresh id in that response. The last id is cached per
    endpoint; a request is attempted at most three times.
    """

    def __init__(
        self,
        url: str | None,
        username: str | None = None,
        password: str | None = None,
        timeout: float = 3.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._auth = httpx.BasicAuth(username, password or "") if username else None
        self._transport = transport
        self._tokens: dict[str, str] = {}
        self._client: httpx.AsyncClient | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def session_token(self) -> str | None:
        return self._tokens.get(self.url or "")

    # ── rpc ──────────────────────────────────────────────

    async def request(self, method: str, arguments: dict | None = None) -> dict[str, Any] | None:
        """Call an RPC method. Returns its ``arguments`` or None on any failure."""
        if not self.url:
            return None

        payload = {"method": method, "arguments": arguments or {}}
        token = self._tokens.get(self.url)

        for attempt in range(MAX_ATTEMPTS):
            headers = {SESSION_HEADER: token} if token else {}
            try:
                resp = await self._http().post(self.url, json=payload, headers=headers, auth=self._auth)
            except httpx.HTTPError:
                logger.debug("Transmission %s failed", method, exc_info=True)
                return None

            if resp.status_code != SESSION_REJECTED:
                fresh = resp.headers.get(SESSION_HEADER)
                if fresh:
                    self._tokens[self.url] = fresh
                return self._parse(method, resp)

            new_token = resp.headers.get(SESSION_HEADER)
            if not new_token or (attempt > 0 and new_token == token):
                logger.debug("Transmission rejected session without a new token")
                return None
            self._tokens[self.url] = new_token
            token = new_token

        logger.debug("Transmission session still rejected after %d attempts", MAX_ATTEMPTS)
        return None

    @staticmethod
    def _parse(method: str, resp: httpx.Response) -> dict[str, Any] | None:
        if not resp.is_success:
            logger.debug("Transmission %s returned HTTP %d", method, resp.status_code)
            return None
        try:
            data = resp.json()
        except json.JSONDecodeError:
            logger.debug("Transmission %s returned malformed JSON", method)
            return None
        if not isinstance(data, dict) or data.get("result") != "success":
            return None
        args = data.get("arguments")
        return args if isinstance(args, dict) else {}

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ── logical methods ─────────────────────────────────

    async def session_stats(self) -> TransmissionSession | None:
        args = await self.request("session-stats")
        if args is None:
            return None
        download_bps = _number(args.get("downloadSpeed")) * 8
        upload_bps = _number(args.get("uploadSpeed")) * 8
        return TransmissionSession(
            download_bps=download_bps,
            upload_bps=upload_bps,
            download=format_bandwidth(download_bps),
            upload=format_bandwidth(upload_bps),
            active_torrents=int(_number(args.get("activeTorrentCount"))),
            paused_torrents=int(_number(args.get("pausedTorrentCount"))),
            torrent_count=int(_number(args.get("torrentCount"))),
        )

    async def torrents(self) -> list[Torrent] | None:
        """Torrents currently downloading or seeding."""
        args = await self.request("torrent-get", {"fields": TORRENT_FIELDS})
        if args is None:
            return None
        items = args.get("torrents")
        if not isinstance(items, list):
            return []

        active: list[Torrent] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            state = _state(item.get("status"))
            if state not in ACTIVE_STATES:
                continue
            down = _number(item.get("rateDownload")) * 8
            up = _number(item.get("rateUpload")) * 8
            active.append(
                Torrent(
                    id=int(_number(item.get("id"))),
                    name=str(item.get("name") or ""),
                    state=state,
                    download_bps=down,
                    upload_bps=up,
                    download=format_bandwidth(down),
                    upload=format_bandwidth(up),
                    percent_done=round(_number(item.get("percentDone")) * 100, 1),
                    eta=int(_number(item.get("eta"), -1)),
                    error=str(item.get("errorString") or ""),
                )
            )
        return active

    async def status(self, call_timeout: float | None = None) -> TransmissionStatus:
        """Session summary plus the active torrents.

        ``call_timeout`` bounds each RPC call on its own, so a late torrent
        list still leaves the session summary in place.
        """
        if not self.enabled:
            return TransmissionStatus(enabled=False)
        session = await self._bounded(self.session_stats(), call_timeout, "session-stats")
        if session is None:
            return TransmissionStatus(enabled=True, error="Unable to reach Transmission")
        torrents = await self._bounded(self.torrents(), call_timeout, "torrent-get")
        return TransmissionStatus(enabled=True, session=session, torrents=torrents or [])

    async def _bounded(self, aw: Awaitable[T], timeout: float | None, name: str) -> T | None:
        if timeout is None:
            return await aw
        return await with_timeout(aw, timeout, None, f"transmission {name}")


def _number(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _state(value: Any) -> TorrentState:
    try:
        return TorrentState(int(value))
    except (TypeError, ValueError):
        return TorrentState.STOPPED
