"""Instance metadata service client."""

from __future__ import annotations

import logging

import httpx

from vnic_agent.config import settings
from vnic_agent.errors import MetadataError
from vnic_agent.schemas import InstanceMetadata

logger = logging.getLogger(__name__)

# IMDSv2 requires this fixed header on every request
METADATA_HEADERS = {"Authorization": "Bearer Oracle"}


async def fetch_instance_metadata(
    url: str | None = None,
    client: httpx.AsyncClient | None = None,
    timeout: float | None = None,
) -> InstanceMetadata:
    """Fetch compartment, instance id and region for this instance.

    Args:
        url: Metadata endpoint (defaults to settings.metadata_url)
        client: Optional client to reuse (mainly for tests)
        timeout: Request timeout in seconds when no client is given
            (defaults to settings.metadata_timeout)

    Raises:
        MetadataError: If the service is unreachable or the document is
            missing the compartment or region
    """
    url = url or settings.metadata_url
    if timeout is None:
        timeout = settings.metadata_timeout
    logger.info("Fetching instance metadata...")
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout) as own_client:
                response = await own_client.get(url, headers=METADATA_HEADERS)
        else:
            response = await client.get(url, headers=METADATA_HEADERS)
        response.raise_for_status()
        doc = response.json()
    except httpx.HTTPError as e:
        raise MetadataError(f"Failed to fetch instance metadata from {url}: {e}") from e
    except ValueError as e:
        raise MetadataError(f"Instance metadata is not valid JSON: {e}") from e

    if not isinstance(doc, dict):
        raise MetadataError("Instance metadata is not a JSON object")

    metadata = InstanceMetadata.from_document(doc)
    if not metadata.compartment_id or not metadata.region:
        raise MetadataError("Failed to obtain metadata (compartment or region missing)")
    if not metadata.instance_id:
        raise MetadataError("Failed to obtain metadata (instance id missing)")
    return metadata
