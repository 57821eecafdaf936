# antimev/config.py
"""
AntiMEV Configuration

Settings are read from the process environment (a local ``.env`` file is
loaded first when present).

Environment variables:
    ANTIMEV_ENVIRONMENT            production | development (default)
    ANTIMEV_CACHED_TX_METHOD       protected RPC method returning the cached tx
                                   (eth_getCachedTransaction or
                                   eth_getEncryptedTransaction, per deployment)
    ANTIMEV_ENVELOPE_TARGET        contract role receiving envelopes
                                   (governanceReward default, or antiMev)
    ANTIMEV_RPC_TIMEOUT            HTTP timeout, seconds (30)
    ANTIMEV_RECEIPT_TIMEOUT        receipt wait, seconds (120)
    ANTIMEV_RECEIPT_POLL_INTERVAL  receipt polling interval, seconds (1.0)
    LOG_LEVEL                      logging level (INFO)

Usage:
    settings = load_settings()
    settings.apply_logging()
    wallet = ProviderWalletGateway.from_settings(provider, settings)
    orchestrator = TransferOrchestrator(wallet, contracts, engine, settings=settings)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from .chains import ContractRole, Environment

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
PACKAGE_LOGGER = "antimev"

METHOD_GET_CACHED_TRANSACTION = "eth_getCachedTransaction"
METHOD_GET_ENCRYPTED_TRANSACTION = "eth_getEncryptedTransaction"

KNOWN_CACHED_TX_METHODS = (
    METHOD_GET_CACHED_TRANSACTION,
    METHOD_GET_ENCRYPTED_TRANSACTION,
)

ENVELOPE_TARGET_ROLES = (
    ContractRole.GOVERNANCE_REWARD,
    ContractRole.ANTI_MEV,
)


# =============================================================================
# Settings
# =============================================================================

@dataclass(frozen=True)
class Settings:
    """Runtime settings for the transfer pipeline."""
    environment: Environment = Environment.DEVELOPMENT
    cached_tx_method: str = METHOD_GET_CACHED_TRANSACTION
    envelope_target: ContractRole = ContractRole.GOVERNANCE_REWARD
    rpc_timeout: float = 30.0
    receipt_timeout: float = 120.0
    receipt_poll_interval: float = 1.0
    log_level: str = "INFO"

    def __post_init__(self):
        if self.rpc_timeout <= 0:
            raise ValueError(f"rpc_timeout must be positive, got {self.rpc_timeout}")
        if self.receipt_timeout <= 0:
            raise ValueError(f"receipt_timeout must be positive, got {self.receipt_timeout}")
        if self.receipt_poll_interval <= 0:
            raise ValueError(
                f"receipt_poll_interval must be positive, got {self.receipt_poll_interval}"
            )
        if ContractRole(self.envelope_target) not in ENVELOPE_TARGET_ROLES:
            raise ValueError(
                f"envelope_target must be one of "
                f"{[r.value for r in ENVELOPE_TARGET_ROLES]}, got {self.envelope_target}"
            )
        if not self.cached_tx_method:
            raise ValueError("cached_tx_method must not be empty")

    def apply_logging(self) -> None:
        """Configure logging at ``log_level``."""
        configure_logging(self.log_level)


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def load_settings(
    env: Optional[Mapping[str, str]] = None,
    dotenv: bool = True,
) -> Settings:
    """
    Build Settings from environment variables.

    Args:
        env: Mapping to read instead of os.environ (tests)
        dotenv: Load a .env file into os.environ first

    Raises:
        ValueError: On invalid values
    """
    if env is None:
        if dotenv:
            load_dotenv()
        env = os.environ

    try:
        environment = Environment(env.get("ANTIMEV_ENVIRONMENT", "development").lower())
    except ValueError:
        raise ValueError(
            f"ANTIMEV_ENVIRONMENT must be 'production' or 'development', "
            f"got {env.get('ANTIMEV_ENVIRONMENT')!r}"
        ) from None

    try:
        envelope_target = ContractRole(env.get("ANTIMEV_ENVELOPE_TARGET", "governanceReward"))
    except ValueError:
        raise ValueError(
            f"ANTIMEV_ENVELOPE_TARGET is not a contract role: "
            f"{env.get('ANTIMEV_ENVELOPE_TARGET')!r}"
        ) from None

    cached_tx_method = env.get("ANTIMEV_CACHED_TX_METHOD", METHOD_GET_CACHED_TRANSACTION)
    if cached_tx_method not in KNOWN_CACHED_TX_METHODS:
        logger.warning("Non-standard cached transaction method: %s", cached_tx_method)

    settings = Settings(
        environment=environment,
        cached_tx_method=cached_tx_method,
        envelope_target=envelope_target,
        rpc_timeout=_float(env, "ANTIMEV_RPC_TIMEOUT", 30.0),
        receipt_timeout=_float(env, "ANTIMEV_RECEIPT_TIMEOUT", 120.0),
        receipt_poll_interval=_float(env, "ANTIMEV_RECEIPT_POLL_INTERVAL", 1.0),
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
    )
    logger.debug("Loaded settings: %s", settings)
    return settings


# =============================================================================
# Logging
# =============================================================================

def configure_logging(level: str = "INFO") -> None:
    """
    Configure root logging with the package format.

    The ``antimev`` logger gets ``level`` even when the root logger was
    already configured elsewhere.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)
    logging.getLogger(PACKAGE_LOGGER).setLevel(numeric_level)
