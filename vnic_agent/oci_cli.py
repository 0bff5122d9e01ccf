"""Thin async wrapper around the ``oci`` command line interface.

Every call runs with instance principal auth and JSON output. Calls are
single-shot: a non-zero exit raises OciCliError with the CLI's stderr.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from vnic_agent import metrics
from vnic_agent.config import Settings, settings
from vnic_agent.errors import OciCliError
from vnic_agent.network.cmd import run_cmd
from vnic_agent.schemas import PrivateIp, PublicIp, Vnic, VnicAttachment

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class OciCli:
    """OCI CLI bound to one region."""

    def __init__(self, region: str, config: Settings = settings):
        self.region = region
        self._config = config

    def _build(self, args: list[str]) -> list[str]:
        return [
            self._config.oci_cli,
            *args,
            "--region", self.region,
            "--auth", self._config.oci_auth,
            "--output", "json",
        ]

    async def _call(self, operation: str, args: list[str]) -> dict[str, Any]:
        """Run one CLI command and decode its JSON document."""
        start = time.monotonic()
        result = await run_cmd(self._build(args), timeout=self._config.command_timeout)
        status = "success" if result.ok else "error"
        metrics.oci_cli_duration.labels(operation=operation, status=status).observe(
            time.monotonic() - start
        )

        if not result.ok:
            message = result.stderr.strip() or result.stdout.strip() or "no output"
            raise OciCliError(operation, message, returncode=result.returncode)

        if not result.stdout.strip():
            return {}
        try:
            doc = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise OciCliError(operation, f"invalid JSON output: {e}") from e
        return doc if isinstance(doc, dict) else {}

    @staticmethod
    def _items(doc: dict[str, Any]) -> list[dict[str, Any]]:
        data = doc.get("data")
        return [item for item in data if isinstance(item, dict)] if isinstance(data, list) else []

    @staticmethod
    def _item(operation: str, doc: dict[str, Any]) -> dict[str, Any]:
        data = doc.get("data")
        if not isinstance(data, dict):
            raise OciCliError(operation, "response has no data object")
        return data

    @staticmethod
    def _parse(operation: str, model: type[ModelT], data: dict[str, Any]) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise OciCliError(
                operation, f"unexpected {model.__name__} payload: {e.error_count()} invalid field(s)"
            ) from e

    async def create_reserved_public_ip(
        self,
        compartment_id: str,
        display_name: str,
        pool_id: str | None = None,
    ) -> PublicIp:
        args = [
            "network", "public-ip", "create",
            "--compartment-id", compartment_id,
            "--lifetime", "RESERVED",
            "--display-name", display_name,
            "--max-wait-seconds", str(self._config.public_ip_max_wait_seconds),
        ]
        if pool_id:
            args += ["--public-ip-pool-id", pool_id]
        doc = await self._call("public_ip_create", args)
        return self._parse("public_ip_create", PublicIp, self._item("public_ip_create", doc))

    async def attach_vnic(self, instance_id: str, subnet_id: str, display_name: str) -> None:
        """Attach a secondary VNIC without an ephemeral public IP."""
        await self._call(
            "attach_vnic",
            [
                "compute", "instance", "attach-vnic",
                "--instance-id", instance_id,
                "--subnet-id", subnet_id,
                "--vnic-display-name", display_name,
                "--assign-public-ip", "false",
            ],
        )

    async def list_vnics(self, instance_id: str) -> list[Vnic]:
        doc = await self._call(
            "list_vnics",
            ["compute", "instance", "list-vnics", "--instance-id", instance_id],
        )
        return [self._parse("list_vnics", Vnic, item) for item in self._items(doc)]

    async def list_vnic_attachments(
        self, compartment_id: str, instance_id: str
    ) -> list[VnicAttachment]:
        doc = await self._call(
            "list_vnic_attachments",
            [
                "compute", "vnic-attachment", "list",
                "--compartment-id", compartment_id,
                "--instance-id", instance_id,
            ],
        )
        return [
            self._parse("list_vnic_attachments", VnicAttachment, item)
            for item in self._items(doc)
        ]

    async def get_vnic_attachment(self, attachment_id: str) -> VnicAttachment:
        doc = await self._call(
            "get_vnic_attachment",
            ["compute", "vnic-attachment", "get", "--vnic-attachment-id", attachment_id],
        )
        return self._parse(
            "get_vnic_attachment", VnicAttachment, self._item("get_vnic_attachment", doc)
        )

    async def list_private_ips(self, vnic_id: str) -> list[PrivateIp]:
        doc = await self._call(
            "list_private_ips",
            ["network", "private-ip", "list", "--vnic-id", vnic_id],
        )
        return [self._parse("list_private_ips", PrivateIp, item) for item in self._items(doc)]

    async def assign_public_ip(self, public_ip_id: str, private_ip_id: str) -> None:
        await self._call(
            "public_ip_update",
            [
                "network", "public-ip", "update",
                "--public-ip-id", public_ip_id,
                "--private-ip-id", private_ip_id,
            ],
        )

    async def get_public_ip(self, public_ip_id: str) -> PublicIp:
        doc = await self._call(
            "public_ip_get",
            ["network", "public-ip", "get", "--public-ip-id", public_ip_id],
        )
        return self._parse("public_ip_get", PublicIp, self._item("public_ip_get", doc))
