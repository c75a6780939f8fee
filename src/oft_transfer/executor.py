"""Transfer orchestration: approval, quote, validation, submission."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

from web3 import Web3
from web3.types import TxReceipt

from .adapter_config import AdapterConfigValidator
from .approval import ApprovalManager
from .chain import ChainClient, Wallet
from .errors import (
    ApprovalError,
    ErrorCategory,
    ErrorClassifier,
    InsufficientNativeFunds,
    OFTTransferError,
    TransactionReverted,
    TransferFailed,
    UserCancelled,
    ValidationError,
)
from .events import Emitter, EventSink, null_sink
from .fees import FeeQuoter, ensure_evm_source
from .models import (
    AdapterConfig,
    FeeQuote,
    PreparedTransfer,
    TransferRequest,
    TransferResult,
)
from .networks import is_testnet_eid
from .scan import LAYERZERO_SCAN_TESTNET_URL, LAYERZERO_SCAN_URL, scan_link
from .units import format_units
from .validation import ParameterValidator

logger = logging.getLogger(__name__)


class TransferState(str, Enum):
    IDLE = "idle"
    RESOLVING_CONFIG = "resolving_config"
    CHECKING_APPROVAL = "checking_approval"
    APPROVING = "approving"
    QUOTING = "quoting"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    CONFIRMING = "confirming"
    DONE = "done"
    FAILED = "failed"


@dataclass
class TransferContext:
    request: TransferRequest
    config: AdapterConfig | None = None
    prepared: PreparedTransfer | None = None
    quote: FeeQuote | None = None
    approval_tx_hash: str | None = None
    tx_hash: str | None = None

    @property
    def config_required(self) -> AdapterConfig:
        if self.config is None:
            raise RuntimeError(
                "Adapter config has not been set. Ensure the config is resolved before accessing this property."
            )
        return self.config

    @property
    def prepared_required(self) -> PreparedTransfer:
        if self.prepared is None:
            raise RuntimeError(
                "Prepared transfer has not been set. Ensure the quote step ran before accessing this property."
            )
        return self.prepared

    @property
    def quote_required(self) -> FeeQuote:
        if self.quote is None:
            raise RuntimeError(
                "Fee quote has not been set. Ensure the quote step ran before accessing this property."
            )
        return self.quote


def _receipt_tx_hash(receipt: TxReceipt, fallback: str) -> str:
    value = receipt.get("transactionHash")
    if value is None:
        return fallback
    if isinstance(value, (bytes, bytearray)):
        return Web3.to_hex(value)
    return str(value)


class TransferExecutor:
    """Runs one transfer end to end for the wallet's account.

    The fee is always re-quoted right before submission; a quote shown to
    the user earlier is never reused.
    """

    def __init__(
        self,
        chain: ChainClient,
        wallet: Wallet,
        configs: AdapterConfigValidator | None = None,
        quoter: FeeQuoter | None = None,
        approvals: ApprovalManager | None = None,
        validator: ParameterValidator | None = None,
        classifier: ErrorClassifier | None = None,
        events: EventSink = null_sink,
        scan_mainnet_url: str = LAYERZERO_SCAN_URL,
        scan_testnet_url: str = LAYERZERO_SCAN_TESTNET_URL,
    ):
        self.chain = chain
        self.wallet = wallet
        self.configs = configs or AdapterConfigValidator(chain, events=events)
        self.quoter = quoter or FeeQuoter(self.configs, events=events)
        self.approvals = approvals or ApprovalManager(chain, wallet, events=events)
        self.validator = validator or ParameterValidator(
            chain, self.quoter, wallet.address, events=events
        )
        self.classifier = classifier or ErrorClassifier()
        self.scan_mainnet_url = scan_mainnet_url
        self.scan_testnet_url = scan_testnet_url
        self.state = TransferState.IDLE
        self._emit = Emitter(events, "transfer")

    def _transition(self, state: TransferState) -> None:
        logger.debug("Transfer state %s -> %s", self.state.value, state.value)
        self.state = state
        self._emit.debug(f"Transfer state: {state.value}", state=state.value)

    async def execute(self, request: TransferRequest) -> TransferResult:
        """Send ``request`` and wait for the source-chain confirmation.

        Raises:
            ConfigurationError: Unsupported source chain or adapter.
            ApprovalError: The allowance handshake ended failed.
            QuoteFailed: The fresh quote could not be obtained.
            ValidationError: Pre-flight checks reported problems.
            InsufficientNativeFunds: Not enough native currency for the fee.
            UserCancelled: A signing prompt was declined.
            TransferFailed: Submission or confirmation of the send failed, or an
                unexpected error occurred; carries a category and hints.
        """
        ctx = TransferContext(request=request)
        try:
            return await self._run(ctx)
        except OFTTransferError as e:
            self._transition(TransferState.FAILED)
            self._emit.error(f"Transfer failed: {e.message}")
            raise
        except Exception as e:
            self._transition(TransferState.FAILED)
            classification = self.classifier.classify_exception(e)
            self._emit.error(
                f"Transfer failed ({classification.category.value}): {e}",
                category=classification.category.value,
            )
            raise TransferFailed(
                f"Transfer failed: {e}",
                classification.category,
                classification.hints,
            ) from e

    async def _run(self, ctx: TransferContext) -> TransferResult:
        request = ctx.request
        self._transition(TransferState.RESOLVING_CONFIG)
        ensure_evm_source(request.src_eid)
        ctx.config = await self.configs.get_config(request.adapter_address)
        config = ctx.config_required
        self._emit(
            f"Adapter {config.address}: token {config.underlying_token}, "
            f"{config.decimals} decimals, approval required: {config.approval_required}"
        )

        self._transition(TransferState.CHECKING_APPROVAL)
        if config.approval_required:
            await self._ensure_approval(ctx)
        else:
            self._emit.debug("Adapter does not require approval")

        self._transition(TransferState.QUOTING)
        ctx.prepared = self.quoter.prepare(request, config)
        prepared = ctx.prepared_required
        native_fee, lz_token_fee = await self.quoter.quote_send_param(
            config.address, prepared.send_param
        )
        ctx.quote = FeeQuote(native_fee=native_fee, lz_token_fee=lz_token_fee)
        quote = ctx.quote_required
        self._emit(f"Fresh quote - native fee: {native_fee}, LZ token fee: {lz_token_fee}")

        self._transition(TransferState.VALIDATING)
        report = await self.validator.validate(
            request, prepared.amount_units, prepared.min_amount_units, quote, config
        )
        if not report.is_valid:
            raise ValidationError(report)

        native_balance = await self.chain.native_balance(self.wallet.address)
        if native_balance < quote.native_fee:
            raise InsufficientNativeFunds(native_balance, quote.native_fee)

        await self._reconfirm_balances(config, prepared.amount_units)

        self._transition(TransferState.SUBMITTING)
        send_call = self.chain.adapter(config.address).functions.send(
            prepared.send_param.as_tuple(),
            quote.as_tuple(),
            self.wallet.address,
        )
        try:
            tx_hash = await self.wallet.transact(send_call, label="send", value=quote.native_fee)
            self._emit(f"Transfer transaction sent: {tx_hash}", tx_hash=tx_hash)

            self._transition(TransferState.CONFIRMING)
            receipt = await self.wallet.wait_for_receipt(tx_hash)
        except UserCancelled:
            raise
        except Exception as e:
            raise self._submission_failed(e) from e
        ctx.tx_hash = _receipt_tx_hash(receipt, tx_hash)

        link = scan_link(
            ctx.tx_hash,
            is_testnet_eid(request.src_eid),
            mainnet_url=self.scan_mainnet_url,
            testnet_url=self.scan_testnet_url,
        )
        self._transition(TransferState.DONE)
        self._emit(f"Transfer confirmed: {link}", tx_hash=ctx.tx_hash)
        return TransferResult(
            tx_hash=ctx.tx_hash,
            scan_link=link,
            native_fee=quote.native_fee,
            approval_tx_hash=ctx.approval_tx_hash,
        )

    def _submission_failed(self, exc: Exception) -> TransferFailed:
        """Classify a failure of the send transaction, keeping its own hints first."""
        if isinstance(exc, TransactionReverted):
            category = ErrorCategory.REVERTED
        else:
            category = self.classifier.classify(str(exc))

        hints = self.classifier.hints(category)
        message = str(exc) or exc.__class__.__name__
        if isinstance(exc, OFTTransferError):
            message = exc.message
            hints = exc.recommendations + [h for h in hints if h not in exc.recommendations]
        return TransferFailed(f"Transfer failed: {message}", category, hints)

    async def _ensure_approval(self, ctx: TransferContext) -> None:
        config = ctx.config_required
        amount = ctx.request.amount
        check = await self.approvals.check_allowance(
            config.underlying_token, config.address, amount, config.decimals
        )
        if check.sufficient:
            self._emit("Allowance already covers the amount")
            return

        self._transition(TransferState.APPROVING)
        approved = await self.approvals.approve(
            config.underlying_token, config.address, amount, config.decimals
        )
        ctx.approval_tx_hash = self.approvals.approval_tx_hash
        if not approved:
            reason = self.approvals.failure_reason or "unknown reason"
            raise ApprovalError(
                f"Approval failed: {reason}",
                self.classifier.hints(ErrorCategory.APPROVAL_FAILURE),
            )

    async def _reconfirm_balances(self, config: AdapterConfig, amount_units: int) -> None:
        """Snapshot balance and allowance once more; problems are only reported."""
        owner = self.wallet.address
        reads = [self.chain.balance_of(config.underlying_token, owner)]
        if config.approval_required:
            reads.append(self.chain.allowance(config.underlying_token, owner, config.address))
        results = await asyncio.gather(*reads, return_exceptions=True)

        for label, result in zip(("balance", "allowance"), results):
            if isinstance(result, Exception):
                self._emit.warning(f"Could not re-confirm {label}: {result}")
            elif result < amount_units:
                self._emit.warning(
                    f"Token {label} {format_units(result, config.decimals)} is below "
                    f"{format_units(amount_units, config.decimals)}"
                )
            else:
                self._emit.debug(f"Token {label}: {format_units(result, config.decimals)}")
