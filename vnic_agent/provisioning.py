"""Reserved public IP + secondary VNIC provisioning.

Workflow for one instance:

1. Create a RESERVED public IP named ``ip-<suffix>``.
2. Attach a VNIC named ``vnic-<suffix>`` on the target subnet, with no
   ephemeral public IP.
3. Wait for the VNIC to show up in the instance's VNIC list.
4. Wait for its attachment to reach ATTACHED (skipped if the attachment
   cannot be found yet).
5. Find the VNIC's primary private IP.
6. Point the reserved public IP at that private IP and check the
   assignment.

``<suffix>`` is the last 8 characters of the instance OCID, which keeps
names short and unique per instance. Steps 1, 2, 5 and 6 are single-shot;
only the visibility waits in 3 and 4 poll.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from vnic_agent.config import Settings, settings
from vnic_agent.errors import ProvisioningError
from vnic_agent.oci_cli import OciCli
from vnic_agent.schemas import InstanceMetadata, PrivateIp, ProvisionResult

logger = logging.getLogger(__name__)

ATTACHED = "ATTACHED"


def vnic_name_for(metadata: InstanceMetadata) -> str:
    return f"vnic-{metadata.name_suffix}"


def public_ip_name_for(metadata: InstanceMetadata) -> str:
    return f"ip-{metadata.name_suffix}"


def select_primary_private_ip(private_ips: list[PrivateIp]) -> PrivateIp | None:
    """Pick the primary private IP, falling back to the first one listed."""
    for private_ip in private_ips:
        if private_ip.is_primary:
            return private_ip
    return private_ips[0] if private_ips else None


class ReservedIpProvisioner:
    """Creates and wires up the reserved IP and secondary VNIC."""

    def __init__(
        self,
        metadata: InstanceMetadata,
        cli: OciCli | None = None,
        config: Settings = settings,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ):
        self.metadata = metadata
        self.cli = cli or OciCli(metadata.region, config)
        self._config = config
        self._sleep = sleep or asyncio.sleep

    async def _wait_for_vnic(self, vnic_name: str, subnet_id: str) -> str:
        attempts = self._config.vnic_visible_attempts
        logger.info(f"Waiting for new VNIC to appear on the instance (up to {attempts} checks)...")
        for _ in range(attempts):
            for vnic in await self.cli.list_vnics(self.metadata.instance_id):
                if vnic.display_name == vnic_name and vnic.subnet_id == subnet_id:
                    logger.info(f"Found VNIC: {vnic.id}")
                    return vnic.id
            logger.info("  VNIC not visible yet")
            await self._sleep(self._config.provisioning_poll_interval)
        raise ProvisioningError(
            f"Could not find VNIC {vnic_name} after {attempts} checks; "
            "check 'Attached VNICs' in the Console to confirm it exists"
        )

    async def _wait_for_attachment(self, vnic_id: str) -> str | None:
        """Poll the VNIC attachment state. Returns the last state seen."""
        attachments = await self.cli.list_vnic_attachments(
            self.metadata.compartment_id, self.metadata.instance_id
        )
        attachment = next((a for a in attachments if a.vnic_id == vnic_id), None)
        if attachment is None:
            logger.info("Skipping attachment-state check; attachment id not found yet")
            return None

        state = None
        for _ in range(self._config.attachment_state_attempts):
            state = (await self.cli.get_vnic_attachment(attachment.id)).lifecycle_state
            logger.info(f"  Attachment state: {state}")
            if state == ATTACHED:
                return state
            await self._sleep(self._config.provisioning_poll_interval)
        logger.warning(f"VNIC attachment did not reach {ATTACHED} (last state: {state})")
        return state

    async def provision(self, subnet_id: str, pool_id: str | None = None) -> ProvisionResult:
        """Run the full provisioning workflow.

        Args:
            subnet_id: Subnet OCID for the secondary VNIC
            pool_id: Optional BYOIP public IP pool OCID

        Raises:
            ProvisioningError: If any single-shot step fails or the VNIC
                never becomes visible
        """
        meta = self.metadata
        vnic_name = vnic_name_for(meta)
        public_ip_name = public_ip_name_for(meta)
        logger.info(
            f"Provisioning in {meta.region}: instance={meta.instance_id} "
            f"compartment={meta.compartment_id} subnet={subnet_id} "
            f"vnic={vnic_name} public_ip={public_ip_name}"
        )

        if pool_id:
            logger.info(f"Creating Reserved Public IP from pool {pool_id}...")
        else:
            logger.info("Creating Reserved Public IP...")
        public_ip = await self.cli.create_reserved_public_ip(
            meta.compartment_id, public_ip_name, pool_id
        )
        logger.info(f"Reserved IP created: {public_ip.ip_address} ({public_ip.id})")

        logger.info("Attaching Secondary VNIC (no ephemeral public IP)...")
        await self.cli.attach_vnic(meta.instance_id, subnet_id, vnic_name)

        vnic_id = await self._wait_for_vnic(vnic_name, subnet_id)
        await self._wait_for_attachment(vnic_id)

        private_ip = select_primary_private_ip(await self.cli.list_private_ips(vnic_id))
        if private_ip is None:
            raise ProvisioningError("Failed to locate the VNIC's primary private IP")
        logger.info(f"Private IP ID: {private_ip.id}")

        logger.info("Associating reserved public IP to the VNIC's private IP...")
        await self.cli.assign_public_ip(public_ip.id, private_ip.id)

        assigned_to = (await self.cli.get_public_ip(public_ip.id)).assigned_entity_id
        verified = assigned_to == private_ip.id
        if verified:
            logger.info(f"Public IP is now assigned to private IP: {assigned_to}")
        else:
            # Assignment can take a moment to show up on the public IP
            logger.warning("Association verification inconclusive")

        return ProvisionResult(
            vnic_name=vnic_name,
            vnic_id=vnic_id,
            private_ip_id=private_ip.id,
            public_ip=public_ip.ip_address,
            public_ip_id=public_ip.id,
            region=meta.region,
            association_verified=verified,
        )
