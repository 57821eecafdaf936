# antimev/errors.py
"""
AntiMEV Errors: Closed Error Taxonomy

Every failure that leaves a collaborator boundary (wallet gateway,
contract reader, protected RPC client) is translated into one of the
classes below before the transfer pipeline inspects it. The original
exception is kept as ``__cause__``.

Taxonomy:
    TransferError                  - base (kind + advice)
    ├── UserRejectedError          - wallet-level cancellation
    ├── UnknownTransportError      - unclassified wallet/RPC failure
    │   └── ReceiptTimeoutError    - receipt did not arrive in time
    ├── PreconditionViolation      - programming precondition broken
    ├── RecoverableRpcRejection    - tx cached by the protected node
    ├── ProtectedRpcError          - protected endpoint failed
    ├── MalformedCommitment        - commitment rejected by the engine
    ├── ChainConfigError           - unknown chain / missing contract
    ├── InvalidAmountError         - bad decimal amount
    └── InvalidAddressError        - malformed recipient or token address

Caller guidance (ErrorAdvice):
    RETRY         - transport/network problem, try again
    STOP          - user rejection or fatal precondition
    USE_STANDARD  - protected path unavailable, use a standard transfer

Usage:
    try:
        await provider.request(method, params)
    except Exception as e:
        raise translate_error(e) from e
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterator, Optional


# =============================================================================
# Constants
# =============================================================================

# EIP-1193 "User Rejected Request"
USER_REJECTED_CODE = 4001

# JSON-RPC 2.0 "Internal error". The protected RPC node answers a
# transaction it cached (instead of broadcasting) with this code.
INTERNAL_RPC_ERROR_CODE = -32603

USER_REJECTED_MARKERS = (
    "user rejected",
    "user denied",
    "user cancelled",
)

CONNECTION_LOST_MARKERS = (
    "could not establish connection",
    "receiving end does not exist",
)

# Longest cause chain we are willing to walk
MAX_CHAIN_DEPTH = 32


# =============================================================================
# Enums
# =============================================================================

class ErrorKind(Enum):
    """Error classification."""
    USER_REJECTED = "user_rejected"
    TRANSPORT = "transport"
    PRECONDITION = "precondition"
    RPC_REJECTION = "rpc_rejection"
    PROTECTED_PATH = "protected_path"
    CONFIGURATION = "configuration"
    INVALID_INPUT = "invalid_input"


class ErrorAdvice(Enum):
    """What a caller should do about an error."""
    RETRY = "retry"
    STOP = "stop"
    USE_STANDARD = "use_standard"


# =============================================================================
# Exceptions
# =============================================================================

class TransferError(Exception):
    """Base error for the transfer pipeline."""
    kind: ErrorKind = ErrorKind.TRANSPORT
    advice: ErrorAdvice = ErrorAdvice.RETRY

    def __init__(self, message: Optional[str] = None, cause: Optional[BaseException] = None):
        super().__init__(message or self.__class__.__doc__ or self.__class__.__name__)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    @property
    def needs_fix(self) -> bool:
        """True when the error points at a bug rather than the environment."""
        return self.kind is ErrorKind.PRECONDITION


class UserRejectedError(TransferError):
    """User rejected the request."""
    kind = ErrorKind.USER_REJECTED
    advice = ErrorAdvice.STOP


class UnknownTransportError(TransferError):
    """Unknown wallet or RPC error."""
    kind = ErrorKind.TRANSPORT
    advice = ErrorAdvice.RETRY


class ReceiptTimeoutError(UnknownTransportError):
    """Transaction receipt not available before timeout."""

    def __init__(self, tx_hash: str, timeout: float):
        super().__init__(f"No receipt for {tx_hash} after {timeout:.0f}s")
        self.tx_hash = tx_hash
        self.timeout = timeout


class PreconditionViolation(TransferError):
    """Internal precondition violated."""
    kind = ErrorKind.PRECONDITION
    advice = ErrorAdvice.STOP


class RecoverableRpcRejection(TransferError):
    """Transaction was cached by the protected RPC node."""
    kind = ErrorKind.RPC_REJECTION
    advice = ErrorAdvice.USE_STANDARD


class ProtectedRpcError(TransferError):
    """Protected RPC endpoint returned an error."""
    kind = ErrorKind.PROTECTED_PATH
    advice = ErrorAdvice.USE_STANDARD

    def __init__(
        self,
        message: str = "",
        code: Optional[int] = None,
        data: Any = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, cause)
        self.code = code
        self.data = data


class MalformedCommitment(TransferError):
    """Aggregated commitment has an invalid length or shape."""
    kind = ErrorKind.PROTECTED_PATH
    advice = ErrorAdvice.USE_STANDARD


class ChainConfigError(TransferError):
    """Chain is unknown or lacks a required setting."""
    kind = ErrorKind.CONFIGURATION
    advice = ErrorAdvice.STOP


class InvalidAmountError(TransferError, ValueError):
    """Amount is not a valid decimal for the asset."""
    kind = ErrorKind.INVALID_INPUT
    advice = ErrorAdvice.STOP


class InvalidAddressError(TransferError, ValueError):
    """Recipient or token address is not a valid account address."""
    kind = ErrorKind.INVALID_INPUT
    advice = ErrorAdvice.STOP


# =============================================================================
# Cause Chain Inspection
# =============================================================================

def iter_error_chain(error: BaseException) -> Iterator[BaseException]:
    """
    Yield ``error`` and every exception reachable through its causes.

    Follows ``TransferError.cause``, ``__cause__`` and ``__context__``;
    each exception is visited once.
    """
    seen = set()
    pending = [error]
    while pending and len(seen) < MAX_CHAIN_DEPTH:
        current = pending.pop(0)
        if not isinstance(current, BaseException) or id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        pending.append(getattr(current, "cause", None))
        pending.append(current.__cause__)
        pending.append(current.__context__)


def error_code(error: BaseException) -> Optional[int]:
    """
    Extract a JSON-RPC / EIP-1193 error code from a single exception.

    Understands ``code`` attributes (EIP-1193 provider errors),
    ``rpc_response`` dicts (web3 ``Web3RPCError``) and a dict passed
    as the first argument (older web3 ``ValueError``).
    """
    code = getattr(error, "code", None)
    if isinstance(code, int) and not isinstance(code, bool):
        return code

    response = getattr(error, "rpc_response", None)
    if isinstance(response, dict):
        inner = response.get("error")
        if isinstance(inner, dict) and isinstance(inner.get("code"), int):
            return inner["code"]

    if error.args and isinstance(error.args[0], dict):
        payload = error.args[0]
        if isinstance(payload.get("code"), int):
            return payload["code"]
        inner = payload.get("error")
        if isinstance(inner, dict) and isinstance(inner.get("code"), int):
            return inner["code"]

    return None


def _message(error: BaseException) -> str:
    return str(error).lower()


def find_in_chain(error: BaseException, kind: type) -> Optional[BaseException]:
    """Return the first exception of ``kind`` in the cause chain."""
    for item in iter_error_chain(error):
        if isinstance(item, kind):
            return item
    return None


def is_user_rejection(error: BaseException) -> bool:
    """True if any error in the chain is a wallet-level rejection."""
    for item in iter_error_chain(error):
        if isinstance(item, UserRejectedError):
            return True
        if error_code(item) == USER_REJECTED_CODE:
            return True
        message = _message(item)
        if any(marker in message for marker in USER_REJECTED_MARKERS):
            return True
    return False


def is_internal_rpc_rejection(error: BaseException) -> bool:
    """True if any error in the chain carries the internal-RPC marker."""
    for item in iter_error_chain(error):
        if isinstance(item, RecoverableRpcRejection):
            return True
        if error_code(item) == INTERNAL_RPC_ERROR_CODE:
            return True
    return False


def is_connection_lost(error: BaseException) -> bool:
    for item in iter_error_chain(error):
        message = _message(item)
        if any(marker in message for marker in CONNECTION_LOST_MARKERS):
            return True
    return False


# =============================================================================
# Translation
# =============================================================================

def translate_error(error: BaseException) -> TransferError:
    """
    Map an arbitrary transport exception onto the closed taxonomy.

    Already-classified errors are returned unchanged. Callers raise the
    result ``from`` the original so the chain stays intact.

    Order matters: a user rejection wins over an internal-RPC code found
    deeper in the chain, because a rejected prompt must never trigger
    the protected fallback.
    """
    if isinstance(error, TransferError):
        return error

    if is_user_rejection(error):
        return UserRejectedError(cause=error)

    if is_internal_rpc_rejection(error):
        return RecoverableRpcRejection(str(error) or None, cause=error)

    if is_connection_lost(error):
        return UnknownTransportError(
            "Wallet connection lost. Please reconnect your wallet.",
            cause=error,
        )

    return UnknownTransportError(str(error) or type(error).__name__, cause=error)


# =============================================================================
# Advisory Hints
# =============================================================================

_HINTS = (
    ("cache unavailable", "The protected RPC cache is unavailable. Try a standard transfer."),
    ("cached transaction not found", "The protected RPC node has no cached transaction. Try a standard transfer."),
    ("insufficient funds", "Insufficient funds to cover amount and gas."),
    ("timeout", "The request timed out. Check your connection and try again."),
    ("network", "Network error. Check your connection and try again."),
)


def friendly_hint(error: BaseException) -> Optional[str]:
    """
    Best-effort, human-readable hint for known error messages.

    Advisory only: it never replaces the structured error, it is meant
    to be displayed next to it.
    """
    for item in iter_error_chain(error):
        message = _message(item)
        for needle, hint in _HINTS:
            if needle in message:
                return hint
    return None
