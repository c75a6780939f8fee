"""Chain id <-> LayerZero endpoint id resolution."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from .errors import UnsupportedNetwork

if TYPE_CHECKING:
    from .chain import ChainClient


class ChainFamily(str, Enum):
    EVM = "evm"
    SOLANA = "solana"
    APTOS = "aptos"
    TON = "ton"
    INITIA = "initia"
    MOVEMENT = "movement"


# chainId -> endpoint id (eid) for the networks this tool can send from.
CHAIN_ID_TO_EID: dict[int, int] = {
    1: 30101,  # Ethereum Mainnet
    56: 30102,  # BSC Mainnet
    137: 30109,  # Polygon Mainnet
    43114: 30106,  # Avalanche Mainnet
    42161: 30110,  # Arbitrum One
    10: 30111,  # Optimism
    250: 30112,  # Fantom
    11155111: 40161,  # Ethereum Sepolia
    97: 40102,  # BSC Testnet
}

EID_TO_CHAIN_ID: dict[int, int] = {eid: chain_id for chain_id, eid in CHAIN_ID_TO_EID.items()}

# Keys of the LayerZero deployment metadata document.
EID_TO_NETWORK_NAME: dict[int, str] = {
    30101: "ethereum-mainnet",
    30102: "bsc-mainnet",
    30106: "avalanche-mainnet",
    30109: "polygon-mainnet",
    30110: "arbitrum-mainnet",
    30111: "optimism-mainnet",
    30112: "fantom-mainnet",
    40102: "bsc-testnet",
    40161: "sepolia-testnet",
}

NON_EVM_EIDS: dict[int, ChainFamily] = {
    30108: ChainFamily.APTOS,
    10108: ChainFamily.APTOS,
    30168: ChainFamily.SOLANA,
    40168: ChainFamily.SOLANA,
    30343: ChainFamily.TON,
    40343: ChainFamily.TON,
    30326: ChainFamily.INITIA,
    40326: ChainFamily.INITIA,
    30325: ChainFamily.MOVEMENT,
    40325: ChainFamily.MOVEMENT,
}

TESTNET_EID_RANGE = range(40_000, 50_000)


def chain_family(eid: int) -> ChainFamily:
    return NON_EVM_EIDS.get(eid, ChainFamily.EVM)


def is_testnet_eid(eid: int) -> bool:
    return eid in TESTNET_EID_RANGE


def network_name(eid: int) -> str | None:
    return EID_TO_NETWORK_NAME.get(eid)


class NetworkResolver:
    """Fixed mapping between chain identifiers and protocol endpoint ids."""

    def __init__(self, table: dict[int, int] | None = None):
        self._table = dict(CHAIN_ID_TO_EID if table is None else table)

    @property
    def supported_chain_ids(self) -> list[int]:
        return sorted(self._table)

    def resolve_current_endpoint(self, chain_id: int) -> int:
        """Return the endpoint id for ``chain_id``.

        Raises:
            UnsupportedNetwork: If the chain is not in the table.
        """
        eid = self._table.get(chain_id)
        if eid is None:
            raise UnsupportedNetwork(chain_id)
        return eid

    async def resolve_current_endpoint_from_chain(self, chain: ChainClient) -> int:
        """Read the connected chain id and resolve it."""
        return self.resolve_current_endpoint(await chain.chain_id())
