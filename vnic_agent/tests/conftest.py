from __future__ import annotations

import os

import pytest

from vnic_agent.network.cmd import CommandResult

HEADER = "Operating System level network configuration:"
COLUMNS = (
    "CONFIG ADDR             SPREFIX     SBITS VIRTRT     NS IND IFACE VLTAG VLAN STATE MAC               VNIC ID"
)


@pytest.fixture(autouse=True)
def _clean_agent_env(monkeypatch):
    """Keep host VNIC_AGENT_* variables from leaking into Settings()."""
    for key in list(os.environ):
        if key.startswith("VNIC_AGENT_"):
            monkeypatch.delenv(key, raising=False)
    yield


def _row(ip: str, iface: str, index: int = 0) -> str:
    return (
        f"-      {ip:<16} 10.0.{index}.0 24    10.0.{index}.1 -  {index}   {iface}  -     -    UP    "
        f"02:00:17:00:00:0{index} ocid1.vnic.oc1..{iface}"
    )


@pytest.fixture
def agent_report():
    """Build ``oci-network-config -c`` style output from (ip, iface) pairs."""

    def _build(rows: list[tuple[str, str]] | None = None, trailer: str = "") -> str:
        lines = [
            "Network configuration:",
            "Instance level network configuration:",
            "NIC ADDR      SPREFIX SBITS VIRTRT VNIC ID",
            "0   10.0.0.12 10.0.0.0 24   10.0.0.1 ocid1.vnic.oc1..primary",
            "",
            HEADER,
            COLUMNS,
        ]
        for index, (ip, iface) in enumerate(rows or []):
            lines.append(_row(ip, iface, index))
        lines.append("")
        if trailer:
            lines.append(trailer)
        return "\n".join(lines) + "\n"

    return _build


@pytest.fixture
def sleeps():
    """Async sleep replacement that records requested durations."""
    recorded: list[float] = []

    async def _sleep(seconds: float) -> None:
        recorded.append(seconds)

    _sleep.calls = recorded
    return _sleep


def scripted_runner(outputs: list[str], returncode: int = 0):
    """Agent runner returning successive outputs, repeating the last one."""
    calls: list[int] = []

    async def _run() -> CommandResult:
        index = min(len(calls), len(outputs) - 1)
        calls.append(index)
        return CommandResult(returncode=returncode, stdout=outputs[index])

    _run.calls = calls
    return _run


@pytest.fixture
def make_runner():
    return scripted_runner


def static_lookup(addresses: dict[str, set[str]]):
    """Address lookup backed by a fixed interface -> addresses map."""
    seen: list[str] = []

    async def _lookup(interface: str) -> set[str]:
        seen.append(interface)
        return set(addresses.get(interface, set()))

    _lookup.seen = seen
    return _lookup


@pytest.fixture
def make_lookup():
    return static_lookup
