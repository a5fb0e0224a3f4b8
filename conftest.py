import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from echoes.models import GenerationFailure, GenerationRequest, StructuredResponse
from echoes.pipeline.orchestrator import Orchestrator
from echoes.session import GameState


def make_response(
    narrative: str = "You stand in the dark. Water drips somewhere close.",
    visual_cue: str = "none",
    sound_cue: str = "none",
    **delta: Any,
) -> StructuredResponse:
    """StructuredResponse with sensible defaults; keyword args fill the state delta."""
    return StructuredResponse(
        narrative=narrative,
        visual_cue=visual_cue,
        sound_cue=sound_cue,
        state_delta=delta,
    )


class StubGenerator:
    """Deterministic generator stand-in.

    Each call pops the next queued outcome: a StructuredResponse or
    GenerationFailure is returned, an exception instance is raised, anything
    else (dict, JSON text) is returned as-is. Raises if called more times
    than outcomes were queued.
    """

    def __init__(self, *outcomes: Any) -> None:
        self._queue: list[Any] = list(outcomes)
        self.calls: list[GenerationRequest] = []

    async def __call__(self, request: GenerationRequest) -> Any:
        self.calls.append(request)
        return self._next()

    def _next(self) -> Any:
        if not self._queue:
            raise AssertionError(
                f"StubGenerator: unexpected call (no outcomes queued). "
                f"commands so far: {[c.command for c in self.calls]}"
            )
        outcome = self._queue.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def assert_exhausted(self) -> None:
        """Assert every queued outcome was consumed."""
        if self._queue:
            raise AssertionError(f"StubGenerator: unused outcomes remain: {self._queue}")


class GatedGenerator(StubGenerator):
    """StubGenerator whose calls block until release() is called.

    The outcome is taken from the queue when the call arrives and handed
    back on release, so a test can interleave resets and world changes
    with in-flight round-trips in any order.
    """

    def __init__(self, *outcomes: Any) -> None:
        super().__init__(*outcomes)
        self._gates: list[asyncio.Future] = []

    async def __call__(self, request: GenerationRequest) -> Any:
        self.calls.append(request)
        gate = asyncio.get_running_loop().create_future()
        self._gates.append(gate)
        outcome = self._queue.pop(0) if self._queue else None
        await gate
        if outcome is None:
            raise AssertionError("GatedGenerator: unexpected call (no outcomes queued)")
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def wait_for_calls(self, count: int) -> None:
        """Yield to the loop until *count* calls have arrived."""
        for _ in range(100):
            if len(self.calls) >= count:
                return
            await asyncio.sleep(0)
        raise AssertionError(f"GatedGenerator: expected {count} calls, got {len(self.calls)}")

    def release(self, index: int = 0) -> None:
        """Let a waiting call return; the oldest by default."""
        self._gates.pop(index).set_result(None)

    @property
    def waiting(self) -> int:
        return len(self._gates)


class RecordingSoundPlayer:
    def __init__(self) -> None:
        self.played: list[str] = []

    def play(self, cue: str) -> None:
        self.played.append(cue)


@pytest.fixture
def response() -> Callable[..., StructuredResponse]:
    return make_response


@pytest.fixture
def stub_generator() -> Callable[..., StubGenerator]:
    return StubGenerator


@pytest.fixture
def gated_generator() -> Callable[..., GatedGenerator]:
    return GatedGenerator


@pytest.fixture
def sounds() -> RecordingSoundPlayer:
    return RecordingSoundPlayer()


@pytest.fixture
def make_orchestrator(sounds: RecordingSoundPlayer) -> Callable[..., Orchestrator]:
    """Build an Orchestrator around a generator with a fresh GameState."""

    def _make(generator: Any, **kwargs: Any) -> Orchestrator:
        kwargs.setdefault("sounds", sounds)
        kwargs.setdefault("state", GameState())
        return Orchestrator(generator, **kwargs)

    return _make


@pytest.fixture
def failure() -> Callable[..., GenerationFailure]:
    def _make(kind: str = "unknown", message: str = "boom") -> GenerationFailure:
        return GenerationFailure(kind=kind, message=message)

    return _make
