"""Parser for the ``oci-network-config -c`` report.

The network configuration agent prints several tables. Only the one under
the ``Operating System level network configuration:`` header matters here:
it lists, per physical interface, the address the control plane expects the
OS to carry. A typical row looks like::

    0  10.0.1.25  -  24  10.0.1.1  02:00:17:0a:1b:2c  9000  ens5  ...

Column 2 is the expected IP (``-`` while the control plane has not assigned
one yet) and column 8 is the OS interface name.
"""

from __future__ import annotations

from dataclasses import dataclass

SECTION_HEADER = "Operating System level network configuration:"

# Physical NIC naming prefixes; virtual devices never appear in this table
PHYSICAL_PREFIXES: tuple[str, ...] = ("ens", "enp", "eno", "eth")

NO_IP_SENTINEL = "-"

MIN_COLUMNS = 8
IP_COLUMN = 1  # 0-indexed column 2
IFACE_COLUMN = 7  # 0-indexed column 8


@dataclass(frozen=True)
class InterfaceExpectation:
    """One accepted row of the OS-level configuration table."""

    name: str
    expected_ip: str | None  # None when the agent has no IP for it yet

    @property
    def has_expected_ip(self) -> bool:
        return self.expected_ip is not None


@dataclass(frozen=True)
class ReportTable:
    """The OS-level block of one agent report.

    ``block`` is the raw text between the section header and the first
    blank line, kept verbatim for diagnostics. ``rows`` holds only the
    lines that parsed as physical interface rows, in report order.
    """

    block: str = ""
    rows: tuple[InterfaceExpectation, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.rows

    def __len__(self) -> int:
        return len(self.rows)


def extract_block(output: str) -> list[str]:
    """Return the lines of the OS-level block, without the header line.

    The block opens after the first header line and closes at the first
    line with no tokens. Returns an empty list if the header never appears.
    """
    lines: list[str] = []
    in_block = False
    for line in output.splitlines():
        if not in_block:
            if SECTION_HEADER in line:
                in_block = True
            continue
        if not line.split():
            break
        lines.append(line)
    return lines


def parse_row(line: str) -> InterfaceExpectation | None:
    """Tokenize one block line into an InterfaceExpectation.

    Returns None for headers, separators and anything that is not a
    physical interface row.
    """
    columns = line.split()
    if len(columns) < MIN_COLUMNS:
        return None
    name = columns[IFACE_COLUMN]
    if not name.startswith(PHYSICAL_PREFIXES):
        return None
    ip = columns[IP_COLUMN]
    return InterfaceExpectation(
        name=name,
        expected_ip=None if ip == NO_IP_SENTINEL else ip,
    )


def parse_report(output: str) -> ReportTable:
    """Parse raw agent output into a ReportTable.

    A missing header yields an empty table rather than an error: the agent
    not having produced the section yet and the section being malformed are
    handled the same way by the caller.
    """
    block_lines = extract_block(output)
    rows = tuple(
        row for row in (parse_row(line) for line in block_lines) if row is not None
    )
    return ReportTable(block="\n".join(block_lines), rows=rows)
