"""Adapter discovery, validation and compatibility probes."""

from __future__ import annotations

import logging

from web3 import Web3

from .chain import ChainClient
from .errors import (
    ConfigurationError,
    ContractNotFound,
    InvalidAmount,
    UnsupportedNetwork,
)
from .events import Emitter, EventSink, null_sink
from .models import (
    AdapterConfig,
    AdapterValidation,
    DestinationSupport,
    NetworkCompatibility,
    SendParam,
)
from .networks import NetworkResolver
from .units import to_base_units

logger = logging.getLogger(__name__)

DEFAULT_DECIMALS = 6
DEFAULT_PROBE_DST_EID = 30101
ZERO_BYTES32 = b"\x00" * 32


def probe_send_param(dst_eid: int, amount_units: int) -> SendParam:
    """Synthetic request used only to check that ``quoteSend`` responds."""
    return SendParam(
        dst_eid=dst_eid,
        to=ZERO_BYTES32,
        amount_ld=amount_units,
        min_amount_ld=amount_units,
    )


class AdapterConfigValidator:
    """Resolves and checks the facts about an OFT adapter.

    Configs are cached per adapter address for the lifetime of the instance so a
    quote followed by a send does not repeat the discovery reads.
    """

    def __init__(
        self,
        chain: ChainClient,
        resolver: NetworkResolver | None = None,
        events: EventSink = null_sink,
        default_decimals: int = DEFAULT_DECIMALS,
        probe_dst_eid: int = DEFAULT_PROBE_DST_EID,
    ):
        self.chain = chain
        self.resolver = resolver or NetworkResolver()
        self.default_decimals = default_decimals
        self.probe_dst_eid = probe_dst_eid
        self._emit = Emitter(events, "adapter")
        self._cache: dict[str, AdapterConfig] = {}

    async def get_config(self, adapter_address: str, refresh: bool = False) -> AdapterConfig:
        """Return the adapter's config, reading the chain on first use.

        Raises:
            ContractNotFound: If the adapter has no code.
            ConfigurationError: If the underlying token cannot be read.
        """
        key = adapter_address.lower()
        if not refresh and key in self._cache:
            return self._cache[key]

        config = await self._fetch_config(adapter_address)
        self._cache[key] = config
        return config

    async def _fetch_config(self, adapter_address: str) -> AdapterConfig:
        if not Web3.is_address(adapter_address):
            raise ConfigurationError(f"Invalid adapter address: {adapter_address}")
        adapter = Web3.to_checksum_address(adapter_address)

        if not await self.chain.has_code(adapter):
            raise ContractNotFound(adapter, "OFT adapter")

        try:
            underlying = await self.chain.read_underlying_token(adapter)
        except Exception as e:
            raise ConfigurationError(
                f"Failed to read underlying token of adapter {adapter}: {e}"
            ) from e
        self._emit.debug(f"Underlying token address: {underlying}", token=underlying)

        decimals = await self.chain.read_decimals(underlying)
        if decimals is None:
            decimals = await self.chain.read_decimals(adapter)
        if decimals is None:
            self._emit.warning(
                f"decimals() unavailable on token and adapter, assuming {self.default_decimals}"
            )
            decimals = self.default_decimals

        approval_required = await self.chain.read_approval_required(adapter)
        if approval_required is None:
            self._emit.debug("approvalRequired() not implemented, treating as regular OFT")
            approval_required = False

        config = AdapterConfig(
            address=adapter,
            underlying_token=underlying,
            decimals=decimals,
            approval_required=approval_required,
        )
        logger.debug("Resolved adapter config: %s", config)
        return config

    async def _probe_quote(self, adapter: str, dst_eid: int, amount_units: int) -> str | None:
        """Return ``None`` if the quote succeeds, else the failure text."""
        try:
            await self.chain.quote_send(adapter, probe_send_param(dst_eid, amount_units))
        except Exception as e:
            return str(e) or e.__class__.__name__
        return None

    async def validate(self, adapter_address: str) -> AdapterValidation:
        """Re-derive the adapter config from scratch and sanity check it."""
        try:
            config = await self.get_config(adapter_address, refresh=True)
        except ConfigurationError as e:
            self._emit.error(f"Adapter validation failed: {e.message}")
            return AdapterValidation(is_valid=False, error=e.message)

        if not await self.chain.has_code(config.underlying_token):
            error = f"Underlying token {config.underlying_token} has no code on this network"
            self._emit.error(error)
            return AdapterValidation(is_valid=False, error=error, config=config)

        probe_error = await self._probe_quote(
            config.address, self.probe_dst_eid, 10**config.decimals
        )
        if probe_error is not None:
            # Some adapters reject placeholder recipients or amounts.
            self._emit.warning(f"quoteSend probe failed (non-fatal): {probe_error}")
        else:
            self._emit.debug("quoteSend probe succeeded")

        return AdapterValidation(
            is_valid=True, config=config, quote_probe_ok=probe_error is None
        )

    async def check_network_compatibility(self, adapter_address: str) -> NetworkCompatibility:
        chain_id = await self.chain.chain_id()
        try:
            eid = self.resolver.resolve_current_endpoint(chain_id)
        except UnsupportedNetwork as e:
            return NetworkCompatibility(
                is_compatible=False,
                chain_id=chain_id,
                error=e.message,
                recommendations=[
                    "Switch to a supported network (chain ids: "
                    + ", ".join(str(c) for c in self.resolver.supported_chain_ids)
                    + ")"
                ],
            )
        self._emit(f"Current network: chainId {chain_id} (eid {eid})")

        if not Web3.is_address(adapter_address) or not await self.chain.has_code(
            adapter_address
        ):
            return NetworkCompatibility(
                is_compatible=False,
                current_eid=eid,
                chain_id=chain_id,
                error=f"OFT adapter is not deployed on the current network (eid {eid})",
                recommendations=[
                    "Switch the wallet to the network where the adapter is deployed",
                    "Use the adapter address for this network",
                ],
            )

        validation = await self.validate(adapter_address)
        if not validation.is_valid:
            return NetworkCompatibility(
                is_compatible=False,
                current_eid=eid,
                chain_id=chain_id,
                error=validation.error,
                recommendations=["Verify the adapter and its underlying token"],
            )
        return NetworkCompatibility(is_compatible=True, current_eid=eid, chain_id=chain_id)

    async def check_destination_support(
        self, adapter_address: str, dst_eid: int, amount: str, decimals: int
    ) -> DestinationSupport:
        """Tell an unsupported destination apart from an unsupported amount."""
        adapter = Web3.to_checksum_address(adapter_address)

        minimal_error = await self._probe_quote(adapter, dst_eid, 10**decimals)
        if minimal_error is not None:
            self._emit.error(f"Minimal quote to eid {dst_eid} failed: {minimal_error}")
            return DestinationSupport(
                is_supported=False,
                error=f"Destination {dst_eid} is not supported by this adapter: {minimal_error}",
                recommendations=[
                    "Check that the adapter has a peer configured for this destination",
                    "Pick another destination network",
                ],
            )

        try:
            amount_units = to_base_units(amount, decimals)
        except InvalidAmount as e:
            return DestinationSupport(is_supported=False, error=e.message)

        actual_error = await self._probe_quote(adapter, dst_eid, amount_units)
        if actual_error is not None:
            self._emit.error(f"Quote for {amount} to eid {dst_eid} failed: {actual_error}")
            return DestinationSupport(
                is_supported=False,
                error=f"Amount {amount} is not supported for destination {dst_eid}: {actual_error}",
                recommendations=[
                    "The amount may be below the minimum transfer threshold",
                    "Try a larger amount or check rate limits on the adapter",
                ],
            )

        return DestinationSupport(is_supported=True)
