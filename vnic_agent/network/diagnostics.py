"""Operator-facing report for a finished convergence run."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from vnic_agent.network.reconcile import ConvergenceOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiagnosticReport:
    """Last-known state of a convergence run, for triage."""

    outcome: ConvergenceOutcome

    def render(self) -> str:
        outcome = self.outcome
        if outcome.converged:
            return "Network interfaces configured and verified"

        snapshot = outcome.snapshot
        result = snapshot.result
        lines = [
            f"Network configuration incomplete after {outcome.max_attempts} attempts.",
            f"Last agent exit code: {snapshot.exit_code}",
            f"Summary: {result.summary()}",
        ]
        if result.unmatched_interfaces:
            lines.append(f"Unmatched interfaces: {', '.join(result.unmatched_interfaces)}")
        if result.pending_interfaces:
            lines.append(f"Interfaces without expected IP: {', '.join(result.pending_interfaces)}")
        lines.append("Last OCI table snapshot:")
        lines.append(snapshot.table.block)
        return "\n".join(lines)

    def to_dict(self) -> dict:
        outcome = self.outcome
        snapshot = outcome.snapshot
        return {
            "state": outcome.state.value,
            "converged": outcome.converged,
            "attempts": outcome.attempts,
            "max_attempts": outcome.max_attempts,
            "total_wait_seconds": outcome.total_wait,
            "last_exit_code": snapshot.exit_code,
            "result": snapshot.result.to_dict(),
            "snapshot": snapshot.table.block,
        }


def report_outcome(outcome: ConvergenceOutcome) -> DiagnosticReport:
    """Log the outcome of a run and return its report.

    Exhaustion is logged at error level with the verbatim table snapshot,
    which may be empty if the agent never produced rows.
    """
    report = DiagnosticReport(outcome)
    if outcome.converged:
        logger.info(report.render())
    else:
        logger.error(report.render())
    return report
