"""
Bounded polling state machine for Instagram media containers.

    created -> processing -> ready | errored

A container is polled on a fixed interval until the Graph API reports it
finished or errored. When attempts run out while still
processing, the machine settles on a degraded ``ready`` so the caller
attempts the publish call anyway.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

import structlog

logger = structlog.get_logger()

READY_STATUS_CODES = frozenset({"FINISHED", "PUBLISHED"})
ERROR_STATUS_CODES = frozenset({"ERROR", "EXPIRED"})


class ContainerState(str, Enum):
    CREATED = "created"
    PROCESSING = "processing"
    READY = "ready"
    ERRORED = "errored"


_TRANSITIONS = {
    ContainerState.CREATED: {ContainerState.PROCESSING, ContainerState.READY, ContainerState.ERRORED},
    ContainerState.PROCESSING: {ContainerState.READY, ContainerState.ERRORED},
    ContainerState.READY: set(),
    ContainerState.ERRORED: set(),
}


@dataclass
class MediaContainer:
    """Server-side staging object, owned by one publish attempt."""

    container_id: str
    state: ContainerState = ContainerState.CREATED
    attempts: int = 0
    detail: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in (ContainerState.READY, ContainerState.ERRORED)

    def transition(self, state: ContainerState, detail: str | None = None) -> None:
        if state is self.state:
            return
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Invalid container transition {self.state.value} -> {state.value}"
            )
        self.state = state
        if detail is not None:
            self.detail = detail


@dataclass(frozen=True)
class StatusReport:
    """One answer from the container status endpoint."""

    status_code: str | None
    status: str | None = None


@dataclass(frozen=True)
class PollOutcome:
    state: ContainerState
    attempts: int
    degraded: bool = False
    detail: str | None = None


def state_for(status_code: str | None) -> ContainerState:
    code = (status_code or "").upper()
    if code in READY_STATUS_CODES:
        return ContainerState.READY
    if code in ERROR_STATUS_CODES:
        return ContainerState.ERRORED
    return ContainerState.PROCESSING


class ContainerStatusPoller:
    """Drives a MediaContainer to a terminal state."""

    def __init__(self, interval: float, max_attempts: int) -> None:
        self._interval = interval
        self._max_attempts = max(max_attempts, 1)

    async def wait(
        self,
        container: MediaContainer,
        check: Callable[[], Awaitable[StatusReport]],
    ) -> PollOutcome:
        container.transition(ContainerState.PROCESSING)

        while container.attempts < self._max_attempts:
            await asyncio.sleep(self._interval)
            container.attempts += 1

            try:
                report = await check()
            except Exception as e:
                # A flaky status endpoint does not fail the post
                logger.warning(
                    "Container status check failed",
                    container_id=container.container_id,
                    attempt=container.attempts,
                    error=str(e),
                )
                continue

            state = state_for(report.status_code)
            if state is ContainerState.PROCESSING:
                logger.debug(
                    "Container still processing",
                    container_id=container.container_id,
                    attempt=container.attempts,
                    status_code=report.status_code,
                )
                continue

            container.transition(state, detail=report.status or report.status_code)
            return PollOutcome(
                state=state,
                attempts=container.attempts,
                detail=container.detail,
            )

        logger.warning(
            "Container status unresolved, publishing anyway",
            container_id=container.container_id,
            attempts=container.attempts,
        )
        container.transition(ContainerState.READY, detail="status unresolved")
        return PollOutcome(
            state=ContainerState.READY,
            attempts=container.attempts,
            degraded=True,
            detail=container.detail,
        )
