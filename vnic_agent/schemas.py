"""Schemas for instance metadata and OCI CLI payloads.

The OCI CLI prints resources with kebab-case keys (``display-name``,
``lifecycle-state``); some CLI versions and the metadata service use
camelCase. These models accept either.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class _OciModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# --- Instance metadata ---

class InstanceMetadata(_OciModel):
    """Identity of the instance we are running on."""
    compartment_id: str = Field(validation_alias=AliasChoices("compartment_id", "compartmentId"))
    instance_id: str = Field(validation_alias=AliasChoices("instance_id", "id"))
    region: str

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> InstanceMetadata:
        """Build from the raw ``/opc/v2/instance/`` document.

        Region prefers the canonical name, then the region identifier, then
        the short region key.
        """
        region_info = doc.get("regionInfo")
        if not isinstance(region_info, dict):
            region_info = {}
        region = (
            doc.get("canonicalRegionName")
            or region_info.get("regionIdentifier")
            or doc.get("region")
            or ""
        )
        return cls(
            compartment_id=doc.get("compartmentId") or "",
            instance_id=doc.get("id") or "",
            region=region,
        )

    @property
    def name_suffix(self) -> str:
        """Last 8 characters of the instance OCID, used for resource names."""
        return self.instance_id[-8:]


# --- OCI resources ---

class PublicIp(_OciModel):
    """A public IP as returned by ``oci network public-ip``."""
    id: str
    ip_address: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("ip-address", "ipAddress", "ip_address")
    )
    lifetime: Optional[str] = None
    assigned_entity_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("assigned-entity-id", "assignedEntityId", "assigned_entity_id"),
    )


class Vnic(_OciModel):
    """A VNIC as returned by ``oci compute instance list-vnics``."""
    id: str
    display_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("display-name", "displayName", "display_name")
    )
    subnet_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("subnet-id", "subnetId", "subnet_id")
    )


class VnicAttachment(_OciModel):
    """A VNIC attachment."""
    id: str
    vnic_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("vnic-id", "vnicId", "vnic_id")
    )
    lifecycle_state: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("lifecycle-state", "lifecycleState", "lifecycle_state"),
    )


class PrivateIp(_OciModel):
    """A private IP on a VNIC."""
    id: str
    ip_address: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("ip-address", "ipAddress", "ip_address")
    )
    is_primary: Optional[bool] = Field(
        default=False, validation_alias=AliasChoices("is-primary", "isPrimary", "is_primary")
    )


# --- Provisioning result ---

class ProvisionResult(BaseModel):
    """Everything created by a provisioning run."""
    vnic_name: str
    vnic_id: str
    private_ip_id: str
    public_ip: Optional[str] = None
    public_ip_id: str
    region: str
    association_verified: bool = False

    def summary_lines(self) -> list[str]:
        return [
            f"VNIC Name:        {self.vnic_name}",
            f"VNIC ID:          {self.vnic_id}",
            f"Private IP ID:    {self.private_ip_id}",
            f"Public IP:        {self.public_ip}",
            f"Public IP OCID:   {self.public_ip_id}",
            f"Region:           {self.region}",
        ]
