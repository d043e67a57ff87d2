"""Test doubles shared across modules: scripted transport, sleep recorder, payloads."""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime, timezone

import httpx

BASE_URL = "https://api.test/v1"


class SleepRecorder:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class ScriptedTransport:
    """Answers requests from a queue of responses/exceptions (last one repeats)."""

    def __init__(self) -> None:
        self.calls: list[httpx.Request] = []
        self._script: list[httpx.Response | Exception | Callable[[httpx.Request], httpx.Response]] = []

    def push(self, *items) -> "ScriptedTransport":
        self._script.extend(items)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        if not self._script:
            raise AssertionError(f"unexpected request {request.method} {request.url}")
        item = self._script.pop(0) if len(self._script) > 1 else self._script[0]
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(request)
        # Fresh copy per send; the scripted original is never mutated by httpx.
        return httpx.Response(item.status_code, headers=item.headers, content=item.content)

    def body(self, index: int = -1):
        return json.loads(self.calls[index].content)


def json_response(status_code: int, payload=None, headers: dict[str, str] | None = None) -> httpx.Response:
    if payload is None:
        return httpx.Response(status_code, headers=headers)
    return httpx.Response(status_code, json=payload, headers=headers)


def user_payload(user_id: str = "u1", **overrides) -> dict:
    data = {
        "id": user_id,
        "username": f"user_{user_id}",
        "email": f"{user_id}@example.com",
        "fullName": f"User {user_id}",
        "avatar": None,
        "isActive": True,
        "createdAt": "2024-01-15T10:30:00Z",
        "updatedAt": "2024-01-16T08:00:00Z",
    }
    data.update(overrides)
    return data


FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
