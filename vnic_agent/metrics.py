"""Prometheus metrics for the VNIC agent.

The agent is a one-shot process, so metrics are exported by writing a
node-exporter textfile collector file at the end of a run rather than by
serving an HTTP endpoint.
"""
from __future__ import annotations

import logging

from prometheus_client import REGISTRY, Counter, Histogram, write_to_textfile

logger = logging.getLogger(__name__)

convergence_attempts = Counter(
    "vnic_agent_convergence_attempts_total",
    "Convergence poll attempts by outcome of the attempt",
    ["reason"],
)

convergence_runs = Counter(
    "vnic_agent_convergence_runs_total",
    "Completed convergence loops by terminal state",
    ["outcome"],
)

oci_cli_duration = Histogram(
    "vnic_agent_oci_cli_seconds",
    "Duration of OCI CLI calls",
    ["operation", "status"],
    buckets=(0.5, 1, 2, 5, 10, 30, 60, 120, float("inf")),
)


def write_metrics_textfile(path: str) -> bool:
    """Write the default registry to a textfile collector file.

    Returns:
        True if the file was written
    """
    try:
        write_to_textfile(path, REGISTRY)
    except OSError as e:
        logger.warning(f"Failed to write metrics to {path}: {e}")
        return False
    return True
