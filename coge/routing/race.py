"""Race coordinator: first successful backend wins, the rest keep running.

Every selected backend gets one call, launched concurrently. The caller
gets the first success in wall-clock order and can act on it right away.
Losing calls are not cancelled: they run to completion so their latency
and success can be learned from. Once every call has settled, a detached
task hands the full outcome list to the post-race listeners (bandit update,
auto-blacklist). Listener failures are logged and never reach the caller.

Usage:
    coordinator = RaceCoordinator(
        factory=lambda name: create_backend(name, config.default_model_for(name)),
        on_settled=[recorder.record, blacklister.apply],
    )
    winner = await coordinator.race(["groq", "gemini"], system_prompt, "list files")
    print(winner.text)
    await coordinator.drain()  # before the event loop closes
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Set

from coge.backends.base import Backend, BackendError
from coge.core import constants
from coge.core.errors import AllBackendsFailedError, InvalidInputError

logger = logging.getLogger(__name__)

BackendFactory = Callable[[str], Backend]
OutcomeListener = Callable[[List["RaceOutcome"]], Any]


@dataclass
class RaceOutcome:
    """What happened to one backend's call in one race."""

    backend: str
    latency_ms: float
    success: bool
    error: Optional[str] = None


@dataclass
class RaceWinner:
    """The first successful call of a race."""

    text: str
    backend: str
    latency_ms: float


class RaceCoordinator:
    """Dispatches one generation call per backend and resolves on the first success.

    Attributes:
        factory: Builds a backend from its name; a raising factory counts as that backend failing
        on_settled: Callables receiving the outcome list after every call has settled
        straggler_timeout: Seconds before an unfinished call is cancelled and recorded
            as failed; None uses COGE_STRAGGLER_TIMEOUT, 0 disables the bound
    """

    def __init__(
        self,
        factory: BackendFactory,
        on_settled: Sequence[OutcomeListener] = (),
        straggler_timeout: Optional[float] = None,
    ):
        self.factory = factory
        self.on_settled = list(on_settled)
        if straggler_timeout is None:
            straggler_timeout = constants.STRAGGLER_TIMEOUT
        self.straggler_timeout = straggler_timeout if straggler_timeout > 0 else None
        self._pending: Set[asyncio.Task] = set()

    async def race(self, backends: Sequence[str], system_prompt: str, user_prompt: str) -> RaceWinner:
        """Race the backends and return the first success.

        Raises:
            InvalidInputError: If no backend is given
            AllBackendsFailedError: If every call failed; lists every backend's message
        """
        if not backends:
            raise InvalidInputError("backends", "at least one backend is required")

        loop = asyncio.get_running_loop()
        winner: asyncio.Future = loop.create_future()
        slots: List[Optional[RaceOutcome]] = [None] * len(backends)

        async def _run(index: int, name: str) -> None:
            start = time.perf_counter()
            try:
                text = await self._call(name, system_prompt, user_prompt)
            except asyncio.TimeoutError:
                error = f"{name} timed out after {self.straggler_timeout:g}s"
                slots[index] = RaceOutcome(name, _elapsed_ms(start), False, error)
            except Exception as e:
                slots[index] = RaceOutcome(name, _elapsed_ms(start), False, str(e) or type(e).__name__)
            else:
                latency = _elapsed_ms(start)
                slots[index] = RaceOutcome(name, latency, True)
                if not winner.done():
                    winner.set_result(RaceWinner(text=text, backend=name, latency_ms=latency))
                    logger.info("Race won by %s in %.0fms", name, latency)

            if all(slot is not None for slot in slots) and not winner.done():
                winner.set_exception(
                    AllBackendsFailedError({slot.backend: slot.error or "unknown error" for slot in slots})
                )

        tasks = [asyncio.create_task(_run(i, name), name=f"race_{name}") for i, name in enumerate(backends)]

        settle = asyncio.create_task(self._after_settled(tasks, slots), name="race_settle")
        self._pending.add(settle)
        settle.add_done_callback(self._pending.discard)

        return await winner

    async def drain(self) -> None:
        """Wait for all post-race work started by this coordinator."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _call(self, name: str, system_prompt: str, user_prompt: str) -> str:
        backend = self.factory(name)
        call = backend.generate(system_prompt, user_prompt)
        if self.straggler_timeout:
            text = await asyncio.wait_for(call, timeout=self.straggler_timeout)
        else:
            text = await call
        if not text or not text.strip():
            raise BackendError(f"Empty result from {name}.", backend=name)
        return text.strip()

    async def _after_settled(self, tasks: List[asyncio.Task], slots: List[Optional[RaceOutcome]]) -> None:
        await asyncio.gather(*tasks, return_exceptions=True)
        outcomes = [slot for slot in slots if slot is not None]
        logger.debug(
            "Race settled: %s",
            ", ".join(f"{o.backend}={'ok' if o.success else 'fail'}/{o.latency_ms:.0f}ms" for o in outcomes),
        )
        for listener in self.on_settled:
            try:
                await asyncio.to_thread(listener, outcomes)
            except Exception:
                logger.warning("Post-race update %r failed", listener, exc_info=True)


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000
