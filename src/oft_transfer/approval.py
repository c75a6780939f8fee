"""Spend-allowance handshake between the caller's token and the adapter."""

from __future__ import annotations

import logging

from .chain import ChainClient, Wallet
from .errors import ApprovalError, OFTTransferError
from .events import Emitter, EventSink, null_sink
from .models import AllowanceCheck, ApprovalState
from .units import format_units, to_base_units

logger = logging.getLogger(__name__)

ALLOWANCE_NOT_UPDATED = "allowance not updated after approval"


class ApprovalManager:
    """One approval attempt: ``checking -> approved | needed -> approving -> ...``.

    An approval transaction is only ever submitted while the state is
    ``needed``; an allowance that already covers the amount is left alone.
    """

    def __init__(self, chain: ChainClient, wallet: Wallet, events: EventSink = null_sink):
        self.chain = chain
        self.wallet = wallet
        self.state = ApprovalState.NONE
        self.failure_reason: str | None = None
        self.approval_tx_hash: str | None = None
        self._emit = Emitter(events, "approval")

    def _transition(self, state: ApprovalState) -> None:
        logger.debug("Approval state %s -> %s", self.state.value, state.value)
        self.state = state
        self._emit.debug(f"Approval state: {state.value}", state=state.value)

    def _fail(self, reason: str) -> None:
        self.failure_reason = reason
        self._transition(ApprovalState.FAILED)
        self._emit.error(f"Approval failed: {reason}")

    async def check_allowance(
        self, token: str, adapter: str, amount: str, decimals: int
    ) -> AllowanceCheck:
        """Compare the current allowance for the adapter with ``amount``.

        Raises:
            ApprovalError: If the allowance cannot be read.
        """
        required = to_base_units(amount, decimals)
        self.failure_reason = None
        self.approval_tx_hash = None
        self._transition(ApprovalState.CHECKING)

        try:
            allowance = await self.chain.allowance(token, self.wallet.address, adapter)
        except Exception as e:
            self._fail(f"could not check allowance: {e}")
            raise ApprovalError(f"Could not check allowance: {e}") from e

        self._emit(
            f"Current allowance: {format_units(allowance, decimals)}, "
            f"required: {format_units(required, decimals)}"
        )
        sufficient = allowance >= required
        self._transition(ApprovalState.APPROVED if sufficient else ApprovalState.NEEDED)
        return AllowanceCheck(sufficient=sufficient, allowance=allowance, required=required)

    async def approve(self, token: str, adapter: str, amount: str, decimals: int) -> bool:
        """Approve exactly ``amount`` for the adapter and confirm it landed.

        Returns:
            True once the allowance covers ``amount``; False if it still does
            not after the approval was confirmed.

        Raises:
            UserCancelled: If the signing prompt is declined.
            ExecutionError: If the approval transaction fails or times out.
        """
        if self.state is not ApprovalState.NEEDED:
            check = await self.check_allowance(token, adapter, amount, decimals)
            if check.sufficient:
                return True

        required = to_base_units(amount, decimals)
        self._transition(ApprovalState.APPROVING)
        self._emit(f"Requesting approval of {format_units(required, decimals)} for {adapter}")

        try:
            approve_call = self.chain.erc20(token).functions.approve(
                self.chain.checksum(adapter), required
            )
            tx_hash = await self.wallet.transact(approve_call, label="approve")
            self.approval_tx_hash = tx_hash
            self._emit(f"Approval transaction sent: {tx_hash}", tx_hash=tx_hash)
            receipt = await self.wallet.wait_for_receipt(tx_hash)
            self._emit(f"Approval confirmed in block: {receipt.get('blockNumber')}")
            allowance = await self.chain.allowance(token, self.wallet.address, adapter)
        except OFTTransferError as e:
            self._fail(e.message)
            raise
        except Exception as e:
            self._fail(str(e))
            raise ApprovalError(f"Approval failed: {e}") from e

        if allowance >= required:
            self._transition(ApprovalState.APPROVED)
            self._emit("Approval successful")
            return True

        self._fail(ALLOWANCE_NOT_UPDATED)
        return False
