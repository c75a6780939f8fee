"""Cross-chain token transfers through LayerZero OFT adapters."""

from .adapter_config import AdapterConfigValidator
from .approval import ApprovalManager
from .errors import ErrorCategory, ErrorClassifier, OFTTransferError
from .executor import TransferExecutor, TransferState
from .fees import FeeQuoter
from .models import FeeQuote, TransferRequest, TransferResult
from .networks import NetworkResolver
from .options import ExecutorOptionsBuilder
from .scan import scan_link
from .validation import ParameterValidator

__all__ = [
    "AdapterConfigValidator",
    "ApprovalManager",
    "ErrorCategory",
    "ErrorClassifier",
    "ExecutorOptionsBuilder",
    "FeeQuote",
    "FeeQuoter",
    "NetworkResolver",
    "OFTTransferError",
    "ParameterValidator",
    "TransferExecutor",
    "TransferRequest",
    "TransferResult",
    "TransferState",
    "scan_link",
]
