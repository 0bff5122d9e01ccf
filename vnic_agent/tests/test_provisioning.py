"""Tests for the reserved IP / secondary VNIC provisioning workflow."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from vnic_agent.config import Settings
from vnic_agent.errors import OciCliError, ProvisioningError
from vnic_agent.provisioning import (
    ReservedIpProvisioner,
    public_ip_name_for,
    select_primary_private_ip,
    vnic_name_for,
)
from vnic_agent.schemas import InstanceMetadata, PrivateIp, PublicIp, Vnic, VnicAttachment

SUBNET = "ocid1.subnet.oc1..s"
META = InstanceMetadata(
    compartment_id="ocid1.compartment.oc1..c",
    instance_id="ocid1.instance.oc1.iad.example1234abcd",
    region="us-ashburn-1",
)


def _fake_cli(vnic_lists=None, attachment_states=("ATTACHED",), private_ips=None, assigned_to="ocid1.privateip.p"):
    """Build an OciCli stand-in with scripted responses."""
    cli = MagicMock()
    cli.create_reserved_public_ip = AsyncMock(
        return_value=PublicIp(id="ocid1.publicip.x", ip_address="129.1.2.3")
    )
    cli.attach_vnic = AsyncMock(return_value=None)

    target = Vnic(id="ocid1.vnic.v", display_name="vnic-1234abcd", subnet_id=SUBNET)
    cli.list_vnics = AsyncMock(side_effect=list(vnic_lists or [[target]]))

    cli.list_vnic_attachments = AsyncMock(return_value=[
        VnicAttachment(id="ocid1.vnicattachment.other", vnic_id="ocid1.vnic.primary"),
        VnicAttachment(id="ocid1.vnicattachment.a", vnic_id="ocid1.vnic.v"),
    ])
    cli.get_vnic_attachment = AsyncMock(side_effect=[
        VnicAttachment(id="ocid1.vnicattachment.a", lifecycle_state=state)
        for state in attachment_states
    ])
    cli.list_private_ips = AsyncMock(return_value=(
        private_ips if private_ips is not None
        else [PrivateIp(id="ocid1.privateip.p", is_primary=True)]
    ))
    cli.assign_public_ip = AsyncMock(return_value=None)
    cli.get_public_ip = AsyncMock(
        return_value=PublicIp(id="ocid1.publicip.x", assigned_entity_id=assigned_to)
    )
    return cli


def _provisioner(cli, sleeps, **overrides) -> ReservedIpProvisioner:
    config = Settings(**overrides)
    return ReservedIpProvisioner(META, cli=cli, config=config, sleep=sleeps)


class TestNaming:

    def test_names_use_instance_suffix(self):
        assert vnic_name_for(META) == "vnic-1234abcd"
        assert public_ip_name_for(META) == "ip-1234abcd"


class TestSelectPrimaryPrivateIp:

    def test_prefers_primary(self):
        ips = [PrivateIp(id="a"), PrivateIp(id="b", is_primary=True)]
        assert select_primary_private_ip(ips).id == "b"

    def test_falls_back_to_first(self):
        assert select_primary_private_ip([PrivateIp(id="a"), PrivateIp(id="b")]).id == "a"

    def test_none_when_empty(self):
        assert select_primary_private_ip([]) is None


class TestProvision:

    @pytest.mark.asyncio
    async def test_happy_path(self, sleeps):
        cli = _fake_cli()
        result = await _provisioner(cli, sleeps).provision(SUBNET, "ocid1.pool.p")

        cli.create_reserved_public_ip.assert_awaited_once_with(
            META.compartment_id, "ip-1234abcd", "ocid1.pool.p"
        )
        cli.attach_vnic.assert_awaited_once_with(META.instance_id, SUBNET, "vnic-1234abcd")
        cli.get_vnic_attachment.assert_awaited_once_with("ocid1.vnicattachment.a")
        cli.assign_public_ip.assert_awaited_once_with("ocid1.publicip.x", "ocid1.privateip.p")

        assert result.vnic_id == "ocid1.vnic.v"
        assert result.public_ip == "129.1.2.3"
        assert result.association_verified
        assert sleeps.calls == []

    @pytest.mark.asyncio
    async def test_waits_for_vnic_visibility(self, sleeps):
        target = Vnic(id="ocid1.vnic.v", display_name="vnic-1234abcd", subnet_id=SUBNET)
        wrong_subnet = Vnic(id="ocid1.vnic.w", display_name="vnic-1234abcd", subnet_id="other")
        cli = _fake_cli(vnic_lists=[[], [wrong_subnet], [wrong_subnet, target]])

        result = await _provisioner(cli, sleeps).provision(SUBNET)

        assert result.vnic_id == "ocid1.vnic.v"
        assert sleeps.calls == [1.0, 1.0]

    @pytest.mark.asyncio
    async def test_vnic_never_visible(self, sleeps):
        cli = _fake_cli(vnic_lists=[[], [], []])
        with pytest.raises(ProvisioningError, match="Could not find VNIC"):
            await _provisioner(cli, sleeps, vnic_visible_attempts=3).provision(SUBNET)

        cli.list_private_ips.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_polls_attachment_until_attached(self, sleeps):
        cli = _fake_cli(attachment_states=("ATTACHING", "ATTACHING", "ATTACHED"))
        await _provisioner(cli, sleeps).provision(SUBNET)

        assert cli.get_vnic_attachment.await_count == 3
        assert sleeps.calls == [1.0, 1.0]

    @pytest.mark.asyncio
    async def test_attachment_not_found_is_skipped(self, sleeps):
        cli = _fake_cli()
        cli.list_vnic_attachments = AsyncMock(return_value=[])
        result = await _provisioner(cli, sleeps).provision(SUBNET)

        cli.get_vnic_attachment.assert_not_awaited()
        assert result.private_ip_id == "ocid1.privateip.p"

    @pytest.mark.asyncio
    async def test_no_private_ip(self, sleeps):
        cli = _fake_cli(private_ips=[])
        with pytest.raises(ProvisioningError, match="primary private IP"):
            await _provisioner(cli, sleeps).provision(SUBNET)

        cli.assign_public_ip.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_attach_failure_is_fatal(self, sleeps):
        cli = _fake_cli()
        cli.attach_vnic = AsyncMock(side_effect=OciCliError("attach_vnic", "NotAuthorized", 1))
        with pytest.raises(ProvisioningError, match="NotAuthorized"):
            await _provisioner(cli, sleeps).provision(SUBNET)

        cli.list_vnics.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unverified_association_is_not_fatal(self, sleeps):
        cli = _fake_cli(assigned_to=None)
        result = await _provisioner(cli, sleeps).provision(SUBNET)
        assert not result.association_verified
