"""Live IPv4 address lookups against the host network stack."""

from __future__ import annotations

import json
import logging

from vnic_agent.network.cmd import run_cmd

logger = logging.getLogger(__name__)

# ``ip`` answers in milliseconds; anything slower means the host is wedged
IP_QUERY_TIMEOUT = 10.0


def strip_prefix(address: str) -> str:
    """Drop a ``/prefixlen`` suffix: ``10.0.0.12/24`` -> ``10.0.0.12``."""
    return address.split("/", 1)[0].strip()


def parse_ipv4_addresses(ip_json: str) -> frozenset[str]:
    """Extract IPv4 addresses from ``ip -j addr show`` output.

    Args:
        ip_json: JSON document printed by iproute2

    Returns:
        Dotted-quad addresses without prefix length
    """
    addresses: set[str] = set()
    for iface in json.loads(ip_json or "[]"):
        for addr_info in iface.get("addr_info", []):
            if addr_info.get("family") != "inet":
                continue
            local = addr_info.get("local")
            if local:
                addresses.add(strip_prefix(local))
    return frozenset(addresses)


async def get_ipv4_addresses(interface: str) -> frozenset[str]:
    """Return the IPv4 addresses currently bound to an interface.

    A missing interface or an interface with no addresses is a normal
    transient state while the VNIC is being plumbed, so every failure
    here collapses to the empty set.

    Args:
        interface: OS interface name (e.g. "ens5")

    Returns:
        Set of dotted-quad addresses, possibly empty
    """
    result = await run_cmd(
        ["ip", "-j", "-4", "addr", "show", "dev", interface],
        timeout=IP_QUERY_TIMEOUT,
    )
    if not result.ok:
        logger.debug(f"No address info for {interface}: {result.stderr.strip()}")
        return frozenset()

    try:
        return parse_ipv4_addresses(result.stdout)
    except (json.JSONDecodeError, AttributeError, TypeError) as e:
        logger.debug(f"Unparsable address info for {interface}: {e}")
        return frozenset()
