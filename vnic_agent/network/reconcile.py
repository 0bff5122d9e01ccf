"""Convergence loop for secondary VNIC host configuration.

After a VNIC is attached, the cloud fabric takes a variable amount of time
to propagate the attachment and addressing to the instance. This module
polls the network configuration agent until the interfaces it reports all
carry their expected IPs at the OS level, or the attempt budget runs out.

State machine (one attempt counter, starting at 1):

    POLLING -> RETRY_EMPTY     agent reported no interface rows
    POLLING -> RETRY_MISMATCH  rows exist but at least one is not bound yet
    POLLING -> CONVERGED       every row is bound (terminal)
    RETRY_* -> POLLING         after the wait for that retry reason
    RETRY_* -> EXHAUSTED       when the attempt was the last one (terminal)

Wait intervals are constant per retry reason. An empty table means the
control plane is still synchronizing, so it waits longer; a mismatch is
usually seconds from converging, so it polls eagerly.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable

from vnic_agent import metrics
from vnic_agent.config import Settings, settings
from vnic_agent.network.cmd import CommandResult, run_cmd
from vnic_agent.network.convergence import AddressLookup, CycleResult, evaluate
from vnic_agent.network.os_state import get_ipv4_addresses
from vnic_agent.network.report_parser import ReportTable, parse_report

logger = logging.getLogger(__name__)

AgentRunner = Callable[[], Awaitable[CommandResult]]
Sleeper = Callable[[float], Awaitable[None]]


class LoopState(str, Enum):
    """States of the convergence loop."""
    POLLING = "polling"
    RETRY_EMPTY = "retry_empty"
    RETRY_MISMATCH = "retry_mismatch"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"


class RetryReason(str, Enum):
    """Why an attempt did not converge."""
    EMPTY_TABLE = "empty_table"
    MISMATCH = "mismatch"


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt ceiling and per-reason wait table."""

    max_attempts: int = 120
    waits: dict[RetryReason, float] = field(
        default_factory=lambda: {
            RetryReason.EMPTY_TABLE: 3.0,
            RetryReason.MISMATCH: 1.0,
        }
    )

    @classmethod
    def from_settings(cls, config: Settings) -> RetryPolicy:
        return cls(
            max_attempts=config.max_attempts,
            waits={
                RetryReason.EMPTY_TABLE: config.empty_table_wait,
                RetryReason.MISMATCH: config.mismatch_wait,
            },
        )

    def wait_for(self, reason: RetryReason) -> float:
        return self.waits[reason]


@dataclass(frozen=True)
class LoopSnapshot:
    """Latest state carried from one attempt to the next."""

    attempt: int = 0
    table: ReportTable = field(default_factory=ReportTable)
    result: CycleResult = field(default_factory=CycleResult)
    exit_code: int | None = None


@dataclass(frozen=True)
class ConvergenceOutcome:
    """Terminal result of a convergence run."""

    state: LoopState
    snapshot: LoopSnapshot
    max_attempts: int
    waits: tuple[tuple[RetryReason, float], ...] = ()

    @property
    def converged(self) -> bool:
        return self.state == LoopState.CONVERGED

    @property
    def attempts(self) -> int:
        return self.snapshot.attempt

    @property
    def total_wait(self) -> float:
        return sum(seconds for _, seconds in self.waits)

    @property
    def exit_code(self) -> int:
        return 0 if self.converged else 1


def default_agent_runner(config: Settings = settings) -> AgentRunner:
    """Build a runner for the configured network configuration agent."""

    async def _run() -> CommandResult:
        return await run_cmd(
            list(config.network_config_command),
            timeout=config.command_timeout,
            merge_stderr=True,
        )

    return _run


class ConvergenceLoop:
    """Polls the network configuration agent until the host converges."""

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        runner: AgentRunner | None = None,
        lookup: AddressLookup | None = None,
        sleep: Sleeper | None = None,
    ):
        """
        Args:
            policy: Attempt budget and wait table (defaults from settings)
            runner: Async callable invoking the agent once
            lookup: Async callable returning an interface's IPv4 addresses
            sleep: Async sleep used between attempts
        """
        self.policy = policy or RetryPolicy.from_settings(settings)
        self._runner = runner or default_agent_runner()
        self._lookup = lookup or get_ipv4_addresses
        self._sleep = sleep or asyncio.sleep

    async def poll_once(self, attempt: int) -> tuple[LoopState, LoopSnapshot]:
        """Run one POLLING step.

        Returns:
            The state the attempt lands in and the snapshot it produced
        """
        logger.info(
            f"[Attempt {attempt}/{self.policy.max_attempts}] Running network configuration agent"
        )
        command = await self._runner()
        # Agent can exit non-zero and still print a usable partial report
        logger.info(f"Agent exit code: {command.returncode}")
        if command.stdout:
            logger.debug(command.stdout)

        table = parse_report(command.stdout)
        if table.is_empty:
            snapshot = LoopSnapshot(
                attempt=attempt, table=table, exit_code=command.returncode
            )
            return LoopState.RETRY_EMPTY, snapshot

        result = await evaluate(table.rows, self._lookup)
        snapshot = LoopSnapshot(
            attempt=attempt, table=table, result=result, exit_code=command.returncode
        )
        if result.converged:
            return LoopState.CONVERGED, snapshot
        return LoopState.RETRY_MISMATCH, snapshot

    async def run(self) -> ConvergenceOutcome:
        """Poll until CONVERGED or EXHAUSTED."""
        snapshot = LoopSnapshot()
        waits: list[tuple[RetryReason, float]] = []

        for attempt in range(1, self.policy.max_attempts + 1):
            state, snapshot = await self.poll_once(attempt)

            if state == LoopState.CONVERGED:
                metrics.convergence_attempts.labels(reason="converged").inc()
                metrics.convergence_runs.labels(outcome=LoopState.CONVERGED.value).inc()
                logger.info("All network interfaces have their expected IPs at OS level")
                return ConvergenceOutcome(
                    state=state,
                    snapshot=snapshot,
                    max_attempts=self.policy.max_attempts,
                    waits=tuple(waits),
                )

            reason = (
                RetryReason.EMPTY_TABLE
                if state == LoopState.RETRY_EMPTY
                else RetryReason.MISMATCH
            )
            metrics.convergence_attempts.labels(reason=reason.value).inc()

            if attempt == self.policy.max_attempts:
                break

            wait = self.policy.wait_for(reason)
            if reason == RetryReason.EMPTY_TABLE:
                logger.info(f"No OS-level interfaces yet. Retrying in {wait}s")
            else:
                logger.info(f"Not ready yet (attempt {attempt}). Waiting {wait}s")
            waits.append((reason, wait))
            await self._sleep(wait)

        metrics.convergence_runs.labels(outcome=LoopState.EXHAUSTED.value).inc()
        return ConvergenceOutcome(
            state=LoopState.EXHAUSTED,
            snapshot=snapshot,
            max_attempts=self.policy.max_attempts,
            waits=tuple(waits),
        )
