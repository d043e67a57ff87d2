"""Debounce y throttle sobre el event loop de asyncio.

Reglas:
- `debounce` necesita un loop en ejecución al momento de la llamada: la
  invocación real se agenda con `loop.call_later`.
- `throttle` es síncrono: decide con un reloj monotónico si deja pasar la llamada.
- Los tiempos van en segundos.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from typing import Any, Callable


class Debounced:
    """Callable que pospone `func` hasta que pasen `delay` segundos sin nuevas llamadas."""

    def __init__(self, func: Callable[..., Any], delay: float) -> None:
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self._func = func
        self._delay = delay
        self._handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        loop = asyncio.get_running_loop()
        self.cancel()
        self._handle = loop.call_later(self._delay, self._fire, args, kwargs)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
        self._handle = None
        result = self._func(*args, **kwargs)
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)


class Throttled:
    """Callable que deja pasar como mucho una llamada por ventana de `limit` segundos."""

    def __init__(
        self,
        func: Callable[..., Any],
        limit: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit < 0:
            raise ValueError("limit must be >= 0")
        self._func = func
        self._limit = limit
        self._clock = clock
        self._last_call: float | None = None

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        now = self._clock()
        if self._last_call is not None and now - self._last_call < self._limit:
            return None
        self._last_call = now
        return self._func(*args, **kwargs)


def debounce(func: Callable[..., Any], delay: float) -> Debounced:
    return Debounced(func, delay)


def throttle(
    func: Callable[..., Any],
    limit: float,
    *,
    clock: Callable[[], float] = time.monotonic,
) -> Throttled:
    return Throttled(func, limit, clock=clock)
