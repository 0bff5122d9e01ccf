"""Tests for the instance metadata client."""
from __future__ import annotations

import httpx
import pytest

from vnic_agent.errors import MetadataError
from vnic_agent.metadata import fetch_instance_metadata
from vnic_agent.schemas import InstanceMetadata

URL = "http://169.254.169.254/opc/v2/instance/"
INSTANCE_ID = "ocid1.instance.oc1.iad.anuwcljexample1234abcd"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestInstanceMetadataDocument:

    def test_prefers_canonical_region(self):
        meta = InstanceMetadata.from_document({
            "compartmentId": "ocid1.compartment.oc1..c",
            "id": INSTANCE_ID,
            "canonicalRegionName": "us-ashburn-1",
            "regionInfo": {"regionIdentifier": "us-ashburn-x"},
            "region": "iad",
        })
        assert meta.region == "us-ashburn-1"

    def test_falls_back_to_region_info_then_region(self):
        meta = InstanceMetadata.from_document({
            "compartmentId": "c", "id": INSTANCE_ID,
            "regionInfo": {"regionIdentifier": "eu-frankfurt-1"}, "region": "fra",
        })
        assert meta.region == "eu-frankfurt-1"

        meta = InstanceMetadata.from_document({"compartmentId": "c", "id": INSTANCE_ID, "region": "fra"})
        assert meta.region == "fra"

    def test_non_object_region_info_is_skipped(self):
        meta = InstanceMetadata.from_document({
            "compartmentId": "c", "id": INSTANCE_ID,
            "regionInfo": "eu-frankfurt-1", "region": "fra",
        })
        assert meta.region == "fra"

        meta = InstanceMetadata.from_document({
            "compartmentId": "c", "id": INSTANCE_ID, "regionInfo": ["x"], "region": "fra",
        })
        assert meta.region == "fra"

    def test_name_suffix_is_last_eight_chars(self):
        meta = InstanceMetadata(compartment_id="c", instance_id=INSTANCE_ID, region="r")
        assert meta.name_suffix == "1234abcd"


class TestFetchInstanceMetadata:

    @pytest.mark.asyncio
    async def test_sends_bearer_header(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={
                "compartmentId": "ocid1.compartment.oc1..c",
                "id": INSTANCE_ID,
                "canonicalRegionName": "us-ashburn-1",
            })

        async with _client(handler) as client:
            meta = await fetch_instance_metadata(URL, client=client)

        assert seen["auth"] == "Bearer Oracle"
        assert meta.compartment_id == "ocid1.compartment.oc1..c"
        assert meta.instance_id == INSTANCE_ID

    @pytest.mark.asyncio
    async def test_missing_compartment(self):
        def handler(request):
            return httpx.Response(200, json={"id": INSTANCE_ID, "region": "iad"})

        async with _client(handler) as client:
            with pytest.raises(MetadataError, match="compartment or region missing"):
                await fetch_instance_metadata(URL, client=client)

    @pytest.mark.asyncio
    async def test_http_error(self):
        def handler(request):
            return httpx.Response(404)

        async with _client(handler) as client:
            with pytest.raises(MetadataError):
                await fetch_instance_metadata(URL, client=client)

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        def handler(request):
            return httpx.Response(200, content=b"<html>")

        async with _client(handler) as client:
            with pytest.raises(MetadataError, match="not valid JSON"):
                await fetch_instance_metadata(URL, client=client)

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        async with _client(handler) as client:
            with pytest.raises(MetadataError):
                await fetch_instance_metadata(URL, client=client)

    @pytest.mark.asyncio
    async def test_own_client_uses_given_timeout(self, monkeypatch):
        created = {}
        real_client = httpx.AsyncClient

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={
                "compartmentId": "c", "id": INSTANCE_ID, "region": "iad",
            })

        def fake_client(**kwargs):
            created.update(kwargs)
            return real_client(transport=httpx.MockTransport(handler), **kwargs)

        monkeypatch.setattr("vnic_agent.metadata.httpx.AsyncClient", fake_client)
        meta = await fetch_instance_metadata(URL, timeout=2.5)

        assert meta.region == "iad"
        assert created["timeout"] == 2.5
