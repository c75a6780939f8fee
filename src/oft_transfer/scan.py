"""Links for following a transfer after submission."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import backoff
import requests

from .networks import network_name

logger = logging.getLogger(__name__)

LAYERZERO_SCAN_URL = "https://layerzeroscan.com"
LAYERZERO_SCAN_TESTNET_URL = "https://testnet.layerzeroscan.com"
DEPLOYMENT_METADATA_URL = "https://metadata.layerzero-api.com/v1/metadata/deployments"

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


def scan_link(
    tx_hash: str,
    is_testnet: bool,
    mainnet_url: str = LAYERZERO_SCAN_URL,
    testnet_url: str = LAYERZERO_SCAN_TESTNET_URL,
) -> str:
    base = testnet_url if is_testnet else mainnet_url
    return f"{base.rstrip('/')}/tx/{tx_hash}"


@backoff.on_exception(
    backoff.expo,
    (requests.exceptions.RequestException, requests.exceptions.HTTPError),
    max_tries=5,
    giveup=lambda e: (
        isinstance(e, requests.exceptions.HTTPError)
        and e.response is not None
        and e.response.status_code not in RETRYABLE_STATUS_CODES
    ),
    jitter=backoff.full_jitter,
)
async def _get_with_retry(url: str) -> requests.Response:
    response = await asyncio.to_thread(requests.get, url, timeout=10.0)
    response.raise_for_status()
    return response


async def fetch_deployment_metadata(url: str = DEPLOYMENT_METADATA_URL) -> dict[str, Any]:
    response = await _get_with_retry(url)
    return response.json()


def explorer_tx_link(metadata: dict[str, Any], src_eid: int, tx_hash: str) -> str | None:
    """Pick the first block explorer listed for the source network."""
    name = network_name(src_eid)
    if name is None:
        return None
    explorers = (metadata.get(name) or {}).get("blockExplorers") or []
    if not explorers or not explorers[0].get("url"):
        return None
    return f"{explorers[0]['url'].rstrip('/')}/tx/{tx_hash}"


async def fetch_block_explorer_link(
    src_eid: int, tx_hash: str, metadata_url: str = DEPLOYMENT_METADATA_URL
) -> str | None:
    """Resolve a human block-explorer link for ``tx_hash``, or ``None``.

    The metadata service is display-only, so its failures are logged and
    reported as "no link".
    """
    if network_name(src_eid) is None:
        logger.debug("No metadata network name for eid %s", src_eid)
        return None
    try:
        metadata = await fetch_deployment_metadata(metadata_url)
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.warning("Could not fetch deployment metadata: %s", e)
        return None
    return explorer_tx_link(metadata, src_eid, tx_hash)
