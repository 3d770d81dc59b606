"""NapCat (OneBot 11) websocket client for the lookups the policy layer needs."""

from __future__ import annotations

import asyncio
import json
import time
import uuid
from typing import Any
from urllib.parse import urlencode, urlsplit, urlunsplit

import websockets
from loguru import logger
from websockets.exceptions import WebSocketException

ADMIN_ROLES = frozenset({"owner", "admin"})


class NapCatError(RuntimeError):
    """A NapCat action failed or timed out."""


def _with_access_token(url: str, token: str) -> str:
    if not token:
        return url
    parts = urlsplit(url)
    query = f"{parts.query}&" if parts.query else ""
    query += urlencode({"access_token": token})
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


class NapCatClient:
    """Runs OneBot actions over a short-lived websocket connection."""

    def __init__(self, ws_url: str, token: str = "", timeout_seconds: float = 10.0):
        self.ws_url = ws_url
        self._token = token
        self._timeout_seconds = timeout_seconds

    async def call(self, action: str, **params: Any) -> Any:
        """Send one action and return its ``data`` payload."""
        echo = uuid.uuid4().hex
        payload = {"action": action, "params": params, "echo": echo}
        url = _with_access_token(self.ws_url, self._token)
        try:
            async with websockets.connect(url) as ws:
                await ws.send(json.dumps(payload))
                deadline = time.monotonic() + self._timeout_seconds
                while True:
                    timeout = deadline - time.monotonic()
                    if timeout <= 0:
                        raise NapCatError(f"{action}: no reply within {self._timeout_seconds}s")
                    raw = await asyncio.wait_for(ws.recv(), timeout=timeout)
                    data = json.loads(raw)
                    if not isinstance(data, dict) or data.get("echo") != echo:
                        continue
                    if data.get("status") != "ok" or data.get("retcode", 0) != 0:
                        message = data.get("message") or data.get("wording") or data.get("retcode")
                        raise NapCatError(f"{action} failed: {message}")
                    return data.get("data")
        except NapCatError:
            raise
        except asyncio.TimeoutError as e:
            raise NapCatError(f"{action}: no reply within {self._timeout_seconds}s") from e
        except (OSError, WebSocketException, json.JSONDecodeError) as e:
            raise NapCatError(f"{action}: {e}") from e

    async def get_group_member_role(self, group_id: str, user_id: int) -> str:
        data = await self.call(
            "get_group_member_info",
            group_id=int(group_id),
            user_id=int(user_id),
            no_cache=True,
        )
        if not isinstance(data, dict):
            raise NapCatError("get_group_member_info returned no member data")
        return str(data.get("role") or "member")

    async def is_group_admin(self, group_id: str, user_id: int) -> bool:
        role = await self.get_group_member_role(group_id, user_id)
        logger.debug("group {} member {} role={}", group_id, user_id, role)
        return role in ADMIN_ROLES
