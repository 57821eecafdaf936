# tests/test_config.py
"""
AntiMEV: chain catalog, settings and amount conversion.

Run:
    pytest tests/test_config.py
"""

from __future__ import annotations

import logging

import pytest

from antimev.chains import (
    CHAINS,
    ChainDescriptor,
    ChainId,
    ContractRole,
    Environment,
    NativeCurrency,
    build_registry,
    get_chain,
    supported_chain_ids,
    supported_chains,
)
from antimev.config import (
    METHOD_GET_ENCRYPTED_TRANSACTION,
    Settings,
    configure_logging,
    load_settings,
)
from antimev.errors import ChainConfigError, InvalidAmountError
from antimev.utils import amount_to_raw_amount, from_hex, hex_to_int, raw_amount_to_amount, to_hex


# =============================================================================
# Chains
# =============================================================================

def test_registry_is_read_only():
    with pytest.raises(TypeError):
        CHAINS[1] = CHAINS[ChainId.SEPOLIA]


def test_environment_chain_sets():
    assert supported_chain_ids(Environment.PRODUCTION) == (1, 42161)
    assert supported_chain_ids(Environment.DEVELOPMENT) == (11155111, 421614, 12227332)
    assert [c.id for c in supported_chains("development")] == [11155111, 421614, 12227332]


def test_get_chain_unknown():
    with pytest.raises(ChainConfigError):
        get_chain(999)


def test_neox_contracts():
    chain = get_chain(ChainId.NEOX_T4)
    assert chain.supports_protected_mode
    assert chain.protected_rpc_url == "https://neoxt4seed1.ngd.network:8555"
    assert chain.contract_address(ContractRole.GOVERNANCE_REWARD) == (
        "0x1212000000000000000000000000000000000003"
    )
    with pytest.raises(ChainConfigError):
        chain.contract_address(ContractRole.ANTI_MEV)
    with pytest.raises(TypeError):
        chain.contracts[ContractRole.ANTI_MEV] = "0x" + "00" * 20


def test_add_chain_params():
    chain = get_chain(ChainId.NEOX_T4)

    protected = chain.to_add_chain_params(protected=True)
    assert protected["chainId"] == hex(12227332)
    assert protected["rpcUrls"] == ["https://neoxt4seed1.ngd.network:8555"]
    assert protected["nativeCurrency"] == {"name": "GAS", "symbol": "GAS", "decimals": 18}
    assert protected["blockExplorerUrls"] == ["https://neoxt4scan.ngd.network"]

    assert chain.to_add_chain_params(protected=False)["rpcUrls"] == [
        "https://neoxt4seed1.ngd.network"
    ]
    assert chain.rpc_urls_for(True) == ("https://neoxt4seed1.ngd.network:8555",)


def test_custom_registry():
    chain = ChainDescriptor(
        id=31337,
        name="Local",
        native_currency=NativeCurrency("Ether", "ETH", 18),
        rpc_urls=("http://127.0.0.1:8545",),
    )
    registry = build_registry(chain)
    assert get_chain(31337, registry) is chain
    assert chain.to_add_chain_params()["blockExplorerUrls"] == []
    assert not chain.supports_protected_mode


# =============================================================================
# Settings
# =============================================================================

def test_load_settings_defaults():
    settings = load_settings(env={})
    assert settings == Settings()
    assert settings.environment is Environment.DEVELOPMENT
    assert settings.cached_tx_method == "eth_getCachedTransaction"
    assert settings.envelope_target is ContractRole.GOVERNANCE_REWARD


def test_load_settings_from_env():
    settings = load_settings(env={
        "ANTIMEV_ENVIRONMENT": "PRODUCTION",
        "ANTIMEV_CACHED_TX_METHOD": METHOD_GET_ENCRYPTED_TRANSACTION,
        "ANTIMEV_ENVELOPE_TARGET": "antiMev",
        "ANTIMEV_RPC_TIMEOUT": "5",
        "ANTIMEV_RECEIPT_TIMEOUT": "60",
        "ANTIMEV_RECEIPT_POLL_INTERVAL": "0.5",
        "LOG_LEVEL": "debug",
    })
    assert settings.environment is Environment.PRODUCTION
    assert settings.cached_tx_method == "eth_getEncryptedTransaction"
    assert settings.envelope_target is ContractRole.ANTI_MEV
    assert settings.rpc_timeout == 5.0
    assert settings.receipt_timeout == 60.0
    assert settings.receipt_poll_interval == 0.5
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("env", [
    {"ANTIMEV_ENVIRONMENT": "staging"},
    {"ANTIMEV_ENVELOPE_TARGET": "keyManagement"},
    {"ANTIMEV_ENVELOPE_TARGET": "nowhere"},
    {"ANTIMEV_RPC_TIMEOUT": "soon"},
    {"ANTIMEV_RECEIPT_TIMEOUT": "0"},
])
def test_load_settings_invalid(env):
    with pytest.raises(ValueError):
        load_settings(env=env)


def test_non_standard_method_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="antimev.config"):
        settings = load_settings(env={"ANTIMEV_CACHED_TX_METHOD": "eth_getPrivateTx"})
    assert settings.cached_tx_method == "eth_getPrivateTx"
    assert "Non-standard" in caplog.text


def test_configure_logging_accepts_unknown_level():
    try:
        configure_logging("verbose")
        assert logging.getLogger("antimev").level == logging.INFO
    finally:
        logging.getLogger("antimev").setLevel(logging.NOTSET)


def test_settings_apply_logging():
    package_logger = logging.getLogger("antimev")
    try:
        Settings(log_level="DEBUG").apply_logging()
        assert package_logger.level == logging.DEBUG
        load_settings(env={"LOG_LEVEL": "warning"}).apply_logging()
        assert package_logger.level == logging.WARNING
    finally:
        package_logger.setLevel(logging.NOTSET)


# =============================================================================
# Amounts
# =============================================================================

@pytest.mark.parametrize("amount, decimals, raw", [
    ("1.5", 18, 1_500_000_000_000_000_000),
    ("0", 18, 0),
    ("100", 6, 100_000_000),
    ("0.000001", 6, 1),
    (" 2.50 ", 2, 250),
    ("115792089237316195423570985008687907853269984665640564039457.584007913129639935", 18, 2**256 - 1),
])
def test_amount_to_raw_amount(amount, decimals, raw):
    assert amount_to_raw_amount(amount, decimals) == raw


@pytest.mark.parametrize("amount, decimals", [
    ("0.0000001", 6),
    ("-1", 18),
    ("abc", 18),
    ("NaN", 18),
    ("Infinity", 18),
    ("", 18),
    (None, 18),
    ("1", -1),
    ("1." + "0" * 99 + "1", 18),
    ("1." + "0" * 200 + "1", 18),
    (str(2**256), 0),
    ("1e80", 0),
    ("1e999999999", 18),
])
def test_amount_to_raw_amount_invalid(amount, decimals):
    with pytest.raises(InvalidAmountError):
        amount_to_raw_amount(amount, decimals)


@pytest.mark.parametrize("raw, decimals, amount", [
    (1_500_000_000_000_000_000, 18, "1.5"),
    (0, 18, "0"),
    (100_000_000, 6, "100"),
    (1, 6, "0.000001"),
])
def test_raw_amount_to_amount(raw, decimals, amount):
    assert raw_amount_to_amount(raw, decimals) == amount


def test_hex_helpers():
    assert to_hex(5) == "0x5"
    assert to_hex(b"\x01\xff") == "0x01ff"
    assert from_hex("0x01ff") == b"\x01\xff"
    assert from_hex("01ff") == b"\x01\xff"
    assert hex_to_int("0x10") == 16
    assert hex_to_int(16) == 16
