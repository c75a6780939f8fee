"""Chain access: read capabilities and the signing wallet."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_typing import URI, ChecksumAddress
from typing_extensions import Self
from web3 import AsyncWeb3, Web3
from web3.contract import AsyncContract
from web3.exceptions import BadFunctionCallOutput, ContractLogicError, TimeExhausted
from web3.types import TxParams, TxReceipt

from .abi import load_erc20_abi, load_oft_abi
from .errors import ConfirmationTimeout, TransactionReverted, UserCancelled
from .models import SendParam, TokenInfo

logger = logging.getLogger(__name__)

# A capability is treated as absent when the call reverts or returns no data.
CAPABILITY_ABSENT_ERRORS = (ContractLogicError, BadFunctionCallOutput)

SigningPrompt = Callable[[str, TxParams], bool]


class ChainClient:
    """Read-only view of one EVM network.

    Optional capabilities (``decimals()``, ``approvalRequired()``, token
    metadata) are exposed as ``read_*`` methods returning ``None`` when the
    contract does not implement them, so callers apply their own defaults.
    """

    def __init__(self, w3: AsyncWeb3):
        self.w3 = w3

    @classmethod
    def from_rpc(cls, rpc_url: str, timeout: float = 30.0) -> Self:
        w3 = AsyncWeb3(
            AsyncWeb3.AsyncHTTPProvider(URI(rpc_url), request_kwargs={"timeout": timeout})
        )
        return cls(w3)

    async def disconnect(self) -> None:
        try:
            await self.w3.provider.disconnect()  # type: ignore[union-attr]
        except AttributeError as e:
            logger.debug(f"Provider disconnect expected (no disconnect method): {e}")

    @staticmethod
    def checksum(address: str) -> ChecksumAddress:
        return Web3.to_checksum_address(address)

    def adapter(self, address: str) -> AsyncContract:
        return self.w3.eth.contract(address=self.checksum(address), abi=load_oft_abi())

    def erc20(self, address: str) -> AsyncContract:
        return self.w3.eth.contract(address=self.checksum(address), abi=load_erc20_abi())

    async def chain_id(self) -> int:
        return int(await self.w3.eth.chain_id)

    async def has_code(self, address: str) -> bool:
        code = await self.w3.eth.get_code(self.checksum(address))
        return len(code) > 0

    async def native_balance(self, address: str) -> int:
        return int(await self.w3.eth.get_balance(self.checksum(address)))

    async def probe(self, call: Any, label: str) -> Any | None:
        """Run a view call, returning ``None`` if the capability is absent."""
        try:
            return await call.call()
        except CAPABILITY_ABSENT_ERRORS as e:
            logger.debug("Capability %s not available: %s", label, e)
            return None

    async def read_underlying_token(self, adapter: str) -> str:
        token = await self.adapter(adapter).functions.token().call()
        return self.checksum(token)

    async def read_decimals(self, address: str) -> int | None:
        value = await self.probe(self.erc20(address).functions.decimals(), f"decimals@{address}")
        return None if value is None else int(value)

    async def read_approval_required(self, adapter: str) -> bool | None:
        value = await self.probe(
            self.adapter(adapter).functions.approvalRequired(),
            f"approvalRequired@{adapter}",
        )
        return None if value is None else bool(value)

    async def read_token_info(self, address: str) -> TokenInfo | None:
        """Fetch name/symbol/decimals concurrently; ``None`` if any is missing."""
        functions = self.erc20(address).functions
        name, symbol, decimals = await asyncio.gather(
            self.probe(functions.name(), f"name@{address}"),
            self.probe(functions.symbol(), f"symbol@{address}"),
            self.probe(functions.decimals(), f"decimals@{address}"),
        )
        if name is None or symbol is None or decimals is None:
            return None
        return TokenInfo(
            name=str(name),
            symbol=str(symbol),
            decimals=int(decimals),
            address=self.checksum(address),
        )

    async def allowance(self, token: str, owner: str, spender: str) -> int:
        value = await self.erc20(token).functions.allowance(
            self.checksum(owner), self.checksum(spender)
        ).call()
        return int(value)

    async def balance_of(self, token: str, owner: str) -> int:
        value = await self.erc20(token).functions.balanceOf(self.checksum(owner)).call()
        return int(value)

    async def quote_send(
        self, adapter: str, send_param: SendParam, pay_in_lz_token: bool = False
    ) -> tuple[int, int]:
        native_fee, lz_token_fee = await self.adapter(adapter).functions.quoteSend(
            send_param.as_tuple(), pay_in_lz_token
        ).call()
        return int(native_fee), int(lz_token_fee)


class Wallet:
    """Signs and submits transactions for a single local account.

    ``prompt`` plays the part of a wallet confirmation popup: it receives a
    label and the built transaction and returns ``False`` to decline.
    """

    def __init__(
        self,
        w3: AsyncWeb3,
        account: LocalAccount,
        confirmation_timeout: float = 180.0,
        prompt: SigningPrompt | None = None,
    ):
        self.w3 = w3
        self._account = account
        self.confirmation_timeout = confirmation_timeout
        self._prompt = prompt

    @classmethod
    def from_private_key(
        cls,
        w3: AsyncWeb3,
        private_key: str,
        confirmation_timeout: float = 180.0,
        prompt: SigningPrompt | None = None,
    ) -> Self:
        account: LocalAccount = Account.from_key(private_key)
        return cls(w3, account, confirmation_timeout=confirmation_timeout, prompt=prompt)

    @property
    def address(self) -> ChecksumAddress:
        return self._account.address

    async def transact(self, function: Any, *, label: str, value: int = 0) -> str:
        """Build, sign and broadcast a contract call. Returns the tx hash.

        Raises:
            UserCancelled: If the signing prompt is declined.
        """
        nonce = await self.w3.eth.get_transaction_count(self.address, "pending")
        tx: TxParams = await function.build_transaction(
            {"from": self.address, "value": value, "nonce": nonce}
        )

        if self._prompt is not None and not self._prompt(label, tx):
            raise UserCancelled(label)

        signed = self._account.sign_transaction(tx)  # pyrefly: ignore
        tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        hex_hash = Web3.to_hex(tx_hash)
        logger.info("Submitted %s transaction: %s", label, hex_hash)
        return hex_hash

    async def wait_for_receipt(self, tx_hash: str) -> TxReceipt:
        """Wait for a receipt, bounded by ``confirmation_timeout``.

        Raises:
            ConfirmationTimeout: If no receipt arrives in time.
            TransactionReverted: If the receipt reports a failed execution.
        """
        try:
            receipt = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash,  # type: ignore[arg-type]
                timeout=self.confirmation_timeout,
            )
        except TimeExhausted as e:
            raise ConfirmationTimeout(tx_hash, self.confirmation_timeout) from e

        if receipt.get("status", 1) == 0:
            raise TransactionReverted(tx_hash)
        logger.debug("Transaction %s confirmed in block %s", tx_hash, receipt.get("blockNumber"))
        return receipt
