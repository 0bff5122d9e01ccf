"""Command line entry point.

    vnic-agent provision SUBNET_ID [PUBLIC_IP_POOL_ID]
    vnic-agent verify

``provision`` creates the reserved IP and secondary VNIC, then waits for the
host to converge. ``verify`` only waits for convergence.

Exit codes: 0 success, 1 provisioning failure or convergence exhausted,
2 usage error, 130 interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import shlex
import sys

from pydantic import ValidationError

from vnic_agent.config import Settings
from vnic_agent.errors import ProvisioningError
from vnic_agent.logging_config import setup_logging
from vnic_agent.metadata import fetch_instance_metadata
from vnic_agent.metrics import write_metrics_textfile
from vnic_agent.network.diagnostics import report_outcome
from vnic_agent.network.reconcile import ConvergenceLoop, RetryPolicy, default_agent_runner
from vnic_agent.provisioning import ReservedIpProvisioner
from vnic_agent.version import __version__

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vnic-agent",
        description="Provision a reserved public IP on a secondary VNIC and verify host networking.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--max-attempts", type=int, help="Convergence attempt budget (default 120).")
    common.add_argument(
        "--empty-wait", type=float, help="Seconds to wait when the agent reports no interfaces."
    )
    common.add_argument(
        "--mismatch-wait", type=float, help="Seconds to wait when interfaces are not yet bound."
    )
    common.add_argument(
        "--command",
        type=shlex.split,
        help='Network configuration agent command line (default: "oci-network-config -c").',
    )
    common.add_argument("--json", action="store_true", help="Print the final report as JSON.")
    common.add_argument("--metrics-file", help="Write Prometheus metrics to this textfile.")
    common.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")

    subparsers = parser.add_subparsers(dest="action", required=True)

    provision = subparsers.add_parser(
        "provision",
        parents=[common],
        help="Create the reserved IP and secondary VNIC, then verify.",
    )
    provision.add_argument("subnet_id", help="Subnet OCID for the secondary VNIC.")
    provision.add_argument("pool_id", nargs="?", help="Optional public IP pool OCID.")
    provision.add_argument(
        "--skip-verify",
        action="store_true",
        help="Do not wait for the host interfaces to converge.",
    )

    subparsers.add_parser(
        "verify",
        parents=[common],
        help="Wait until host interfaces carry their expected IPs.",
    )
    return parser


def load_settings(args: argparse.Namespace) -> Settings:
    """Environment settings with command line overrides applied."""
    overrides = {
        "max_attempts": args.max_attempts,
        "empty_table_wait": args.empty_wait,
        "mismatch_wait": args.mismatch_wait,
        "network_config_command": args.command,
    }
    if args.verbose:
        overrides["log_level"] = "DEBUG"
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


async def _verify(config: Settings, as_json: bool) -> int:
    loop = ConvergenceLoop(
        policy=RetryPolicy.from_settings(config),
        runner=default_agent_runner(config),
    )
    outcome = await loop.run()
    report = report_outcome(outcome)
    if as_json:
        print(json.dumps(report.to_dict(), indent=2, sort_keys=True))
    return outcome.exit_code


async def _provision(args: argparse.Namespace, config: Settings) -> int:
    try:
        metadata = await fetch_instance_metadata(
            url=config.metadata_url, timeout=config.metadata_timeout
        )
        provisioner = ReservedIpProvisioner(metadata, config=config)
        result = await provisioner.provision(args.subnet_id, args.pool_id)
    except ProvisioningError as e:
        logger.error(str(e))
        return EXIT_FAILED

    logger.info("Reserved Public IP successfully assigned to the secondary VNIC")
    for line in result.summary_lines():
        logger.info(line)

    if args.skip_verify:
        if args.json:
            print(json.dumps(result.model_dump(), indent=2, sort_keys=True))
        return EXIT_OK

    logger.info("Configuring Network Interfaces")
    return await _verify(config, args.json)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_settings(args)
    except ValidationError as e:
        parser.print_usage(sys.stderr)
        print(f"vnic-agent: invalid configuration: {e}", file=sys.stderr)
        return EXIT_USAGE

    setup_logging(config.log_level, json_format=config.log_json)

    try:
        if args.action == "provision":
            code = asyncio.run(_provision(args, config))
        else:
            code = asyncio.run(_verify(config, args.json))
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return EXIT_INTERRUPTED
    finally:
        if args.metrics_file:
            write_metrics_textfile(args.metrics_file)
    return code


if __name__ == "__main__":
    sys.exit(main())
