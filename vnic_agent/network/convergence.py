"""Compare expected interface addresses with what the OS actually carries.

Each poll cycle produces a CycleResult from the rows of one agent report and
live address lookups. The comparison is exact string membership on the
dotted-quad form; there is no subnet-aware matching.

Duplicate rows for the same interface are checked independently, so every
address the agent lists for an interface must be present.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable

from vnic_agent.network.os_state import strip_prefix
from vnic_agent.network.report_parser import InterfaceExpectation

logger = logging.getLogger(__name__)

AddressLookup = Callable[[str], Awaitable[Iterable[str]]]


@dataclass(frozen=True)
class RowVerdict:
    """Outcome of checking one report row against the OS."""

    interface: str
    expected_ip: str | None
    observed: tuple[str, ...] = ()
    matched: bool = False

    @property
    def pending(self) -> bool:
        """The agent itself has not reported an IP for this row yet."""
        return self.expected_ip is None

    def describe(self) -> str:
        if self.pending:
            return f"{self.interface} has no expected IP yet"
        if self.matched:
            return f"{self.interface} has {self.expected_ip}"
        has = ", ".join(self.observed) if self.observed else "none"
        return f"{self.interface} missing {self.expected_ip} (has: {has})"


@dataclass(frozen=True)
class CycleResult:
    """Aggregate outcome of one poll cycle."""

    total_rows: int = 0
    missing_expected_ip_count: int = 0
    unmatched_count: int = 0
    verdicts: tuple[RowVerdict, ...] = ()

    @property
    def converged(self) -> bool:
        return (
            self.total_rows > 0
            and self.missing_expected_ip_count == 0
            and self.unmatched_count == 0
        )

    @property
    def unmatched_interfaces(self) -> list[str]:
        return [v.interface for v in self.verdicts if not v.pending and not v.matched]

    @property
    def pending_interfaces(self) -> list[str]:
        return [v.interface for v in self.verdicts if v.pending]

    def summary(self) -> str:
        return (
            f"total_rows={self.total_rows}, "
            f"no_ip_rows={self.missing_expected_ip_count}, "
            f"missing_on_os={self.unmatched_count}"
        )

    def to_dict(self) -> dict:
        return {
            "total_rows": self.total_rows,
            "missing_expected_ip_count": self.missing_expected_ip_count,
            "unmatched_count": self.unmatched_count,
            "unmatched_interfaces": self.unmatched_interfaces,
            "pending_interfaces": self.pending_interfaces,
            "converged": self.converged,
        }


async def check_row(row: InterfaceExpectation, lookup: AddressLookup) -> RowVerdict:
    """Check a single row. Rows without an expected IP skip the OS lookup."""
    if row.expected_ip is None:
        return RowVerdict(interface=row.name, expected_ip=None)

    observed = tuple(sorted({strip_prefix(a) for a in await lookup(row.name)}))
    return RowVerdict(
        interface=row.name,
        expected_ip=row.expected_ip,
        observed=observed,
        matched=row.expected_ip in observed,
    )


async def evaluate(
    rows: Iterable[InterfaceExpectation],
    lookup: AddressLookup,
) -> CycleResult:
    """Evaluate report rows against live OS state.

    Rows are checked sequentially and logged in report order.

    Args:
        rows: Parsed rows from one agent report
        lookup: Async callable returning the addresses bound to an interface

    Returns:
        CycleResult for this cycle
    """
    verdicts: list[RowVerdict] = []
    for row in rows:
        verdict = await check_row(row, lookup)
        if verdict.pending or verdict.matched:
            logger.info(f"  {verdict.describe()}")
        else:
            logger.warning(f"  {verdict.describe()}")
        verdicts.append(verdict)

    result = CycleResult(
        total_rows=len(verdicts),
        missing_expected_ip_count=sum(1 for v in verdicts if v.pending),
        unmatched_count=sum(1 for v in verdicts if not v.pending and not v.matched),
        verdicts=tuple(verdicts),
    )
    logger.info(f"Summary: {result.summary()}")
    return result
