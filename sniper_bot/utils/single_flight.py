"""Single-flight lazy initialization.

The first caller runs the setup coroutine; callers arriving while it is in
flight await the same future. A failed setup is not cached: state goes back
to IDLE and the next caller starts over.
"""

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class InitState(enum.Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    READY = "ready"


class SingleFlight:
    def __init__(self, init: Callable[[], Awaitable[None]], name: str = "") -> None:
        self._init = init
        self._name = name or getattr(init, "__qualname__", "init")
        self._state = InitState.IDLE
        self._inflight: asyncio.Future | None = None

    @property
    def state(self) -> InitState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is InitState.READY

    async def ensure(self, force: bool = False) -> None:
        """Make sure setup has completed, running it at most once concurrently.

        ``force`` re-runs setup even when READY (e.g. the RPC target changed).
        A forced call that arrives mid-flight joins the running attempt.
        """
        if self._state is InitState.READY and not force:
            return
        if self._state is InitState.INITIALIZING:
            assert self._inflight is not None
            await asyncio.shield(self._inflight)
            return

        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()
        self._inflight = future
        self._state = InitState.INITIALIZING
        logger.debug("%s: initializing", self._name)

        try:
            await self._init()
        except BaseException as exc:
            self._state = InitState.IDLE
            self._inflight = None
            if isinstance(exc, Exception):
                future.set_exception(exc)
                # Retrieved here so an unattended failure isn't reported as unhandled
                future.exception()
            else:
                future.cancel()
            logger.warning("%s: initialization failed: %s", self._name, exc)
            raise

        self._state = InitState.READY
        self._inflight = None
        future.set_result(None)
        logger.debug("%s: ready", self._name)

    def reset(self) -> None:
        """Drop READY so the next ``ensure`` sets up from scratch."""
        if self._state is InitState.READY:
            self._state = InitState.IDLE
