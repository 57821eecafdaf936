# tests/test_provider_gateway.py
"""
AntiMEV Adapters: EIP-1193 provider gateway and local account gateway.

Run:
    pytest tests/test_provider_gateway.py
"""

from __future__ import annotations

import asyncio

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct

from antimev.adapters import (
    LocalAccountGateway,
    MockEthereumProvider,
    ProviderRpcError,
    ProviderWalletGateway,
    TransactionReceipt,
    TransactionRequest,
)
from antimev.chains import CHAINS, ChainId
from antimev.config import Settings
from antimev.errors import (
    PreconditionViolation,
    ReceiptTimeoutError,
    RecoverableRpcRejection,
    UnknownTransportError,
    UserRejectedError,
)
from antimev.crypto import SymmetricThresholdEngine
from antimev.registry import MockContractReader
from antimev.transfer import TransferOrchestrator, TransferRequest
from antimev.transport import MockHTTPTransport, ProtectedRPCClient


ACCOUNT = "0x" + "11" * 20
RECIPIENT = "0x" + "22" * 20
NEOX = CHAINS[ChainId.NEOX_T4]


def make_gateway(**provider_kwargs):
    provider = MockEthereumProvider(accounts=[ACCOUNT], **provider_kwargs)
    return ProviderWalletGateway(provider, poll_interval=0.001), provider


# =============================================================================
# Chain switching
# =============================================================================

def test_switch_protected_chain_registers_endpoint():
    gateway, provider = make_gateway()

    asyncio.run(gateway.switch_chain(NEOX, protected=True))

    assert [m for m, _ in provider.requests] == [
        "wallet_addEthereumChain",
        "wallet_switchEthereumChain",
    ]
    assert provider.added_chains[0]["rpcUrls"] == ["https://neoxt4seed1.ngd.network:8555"]
    assert provider.chain_id == ChainId.NEOX_T4


def test_switch_default_endpoint_on_protected_chain():
    gateway, provider = make_gateway()

    asyncio.run(gateway.switch_chain(NEOX, protected=False))

    assert provider.added_chains[0]["rpcUrls"] == ["https://neoxt4seed1.ngd.network"]


def test_switch_plain_chain_skips_add():
    gateway, provider = make_gateway(chain_id=ChainId.NEOX_T4)

    asyncio.run(gateway.switch_chain(CHAINS[ChainId.MAINNET]))

    assert [m for m, _ in provider.requests] == ["wallet_switchEthereumChain"]
    assert provider.requests[0][1] == [{"chainId": "0x1"}]


# =============================================================================
# Requests
# =============================================================================

def test_nonce_sign_estimate_send():
    gateway, provider = make_gateway(nonce=9, gas_estimate=50_000)
    tx = TransactionRequest(
        chain_id=ChainId.NEOX_T4,
        account=ACCOUNT,
        to=RECIPIENT,
        value=10**18,
        data=b"\xa9\x05\x9c\xbb",
        nonce=9,
    )

    assert asyncio.run(gateway.get_nonce(ChainId.NEOX_T4, ACCOUNT)) == 9
    assert provider.requests[-1] == ("eth_getTransactionCount", [ACCOUNT, "latest"])

    signature = asyncio.run(gateway.sign_message("9", ACCOUNT))
    assert signature.startswith("0x") and len(signature) == 2 + 130
    assert provider.requests[-1] == ("personal_sign", ["0x39", ACCOUNT])

    assert asyncio.run(gateway.estimate_gas(tx)) == 50_000

    tx_hash = asyncio.run(gateway.send_transaction(tx))
    assert tx_hash.startswith("0x")
    assert provider.sent[0] == {
        "from": ACCOUNT,
        "to": RECIPIENT,
        "value": hex(10**18),
        "chainId": hex(ChainId.NEOX_T4),
        "data": "0xa9059cbb",
        "nonce": "0x9",
    }


def test_rpc_params_omit_unset_fields():
    params = TransactionRequest(chain_id=1, account=ACCOUNT, to=RECIPIENT).to_rpc_params()
    assert params == {"from": ACCOUNT, "to": RECIPIENT, "value": "0x0", "chainId": "0x1"}


def test_errors_are_translated():
    gateway, provider = make_gateway()

    provider.reject_next("eth_sendTransaction")
    with pytest.raises(UserRejectedError) as exc_info:
        asyncio.run(gateway.send_transaction(TransactionRequest(1, ACCOUNT, RECIPIENT)))
    assert isinstance(exc_info.value.__cause__, ProviderRpcError)

    provider.cache_next_send()
    with pytest.raises(RecoverableRpcRejection):
        asyncio.run(gateway.send_transaction(TransactionRequest(1, ACCOUNT, RECIPIENT)))

    provider.fail_next("personal_sign", RuntimeError("Receiving end does not exist."))
    with pytest.raises(UnknownTransportError):
        asyncio.run(gateway.sign_message("1", ACCOUNT))


# =============================================================================
# Receipts
# =============================================================================

def test_wait_for_receipt_polls():
    gateway, provider = make_gateway(receipt_after_polls=2)

    receipt = asyncio.run(gateway.wait_for_receipt(1, "0xabc", timeout=5.0))

    assert isinstance(receipt, TransactionReceipt)
    assert receipt.succeeded
    assert receipt.transaction_hash == "0xabc"
    assert receipt.block_number == 102
    assert [m for m, _ in provider.requests].count("eth_getTransactionReceipt") == 3


def test_wait_for_receipt_timeout():
    provider = MockEthereumProvider(receipt_after_polls=10**6)
    ticks = iter(range(100))
    gateway = ProviderWalletGateway(provider, poll_interval=0, clock=lambda: next(ticks))

    with pytest.raises(ReceiptTimeoutError) as exc_info:
        asyncio.run(gateway.wait_for_receipt(1, "0xabc", timeout=3))
    assert exc_info.value.tx_hash == "0xabc"


def test_receipt_from_rpc():
    receipt = TransactionReceipt.from_rpc({
        "transactionHash": b"\x01" * 32,
        "blockNumber": 12,
        "gasUsed": "0x5208",
        "status": "0x0",
    })
    assert receipt.transaction_hash == "0x" + "01" * 32
    assert receipt.gas_used == 21_000
    assert not receipt.succeeded


# =============================================================================
# End-to-end through the provider
# =============================================================================

def test_protected_fallback_through_provider(raw_eip1559_tx, commitment):
    gateway, provider = make_gateway(nonce=4)
    provider.cache_next_send()
    transport = MockHTTPTransport()
    transport.queue_result("0x" + raw_eip1559_tx.hex())

    orchestrator = TransferOrchestrator(
        wallet=gateway,
        contracts=MockContractReader(commitments={3: commitment}),
        engine=SymmetricThresholdEngine(),
        rpc_factory=lambda chain: ProtectedRPCClient(chain.protected_rpc_url, transport=transport),
    )
    tx_hash = asyncio.run(orchestrator.submit(TransferRequest(
        chain_id=ChainId.NEOX_T4,
        token_address=None,
        account=ACCOUNT,
        to=RECIPIENT,
        amount="0.25",
        decimals=18,
        protected=True,
    )))

    methods = [m for m, _ in provider.requests]
    assert methods == [
        "wallet_addEthereumChain",
        "wallet_switchEthereumChain",
        "eth_getTransactionCount",
        "eth_sendTransaction",
        "personal_sign",
        "wallet_addEthereumChain",
        "wallet_switchEthereumChain",
        "eth_sendTransaction",
    ]
    direct = provider.requests[3][1][0]
    (envelope,) = provider.sent
    assert direct["value"] == hex(25 * 10**16)
    assert direct["nonce"] == envelope["nonce"] == "0x4"
    assert envelope["to"] == "0x1212000000000000000000000000000000000003"
    assert envelope["value"] == "0x0"
    assert envelope["data"].startswith("0xffffffff00000003")
    assert tx_hash.startswith("0x")
    assert transport.last_request["params"][0] == "0x4"
    assert provider.requests[4][1][0] == "0x34"


# =============================================================================
# LocalAccountGateway
# =============================================================================

def test_local_gateway_signs_messages():
    key = "0x" + "42" * 32
    gateway = LocalAccountGateway(key)
    address = Account.from_key(key).address

    signature = asyncio.run(gateway.sign_message("7", address))

    recovered = Account.recover_message(encode_defunct(text="7"), signature=signature)
    assert recovered == address


def test_local_gateway_rejects_foreign_account():
    gateway = LocalAccountGateway("0x" + "42" * 32)
    with pytest.raises(PreconditionViolation):
        asyncio.run(gateway.sign_message("7", ACCOUNT))


def test_local_gateway_protected_switch_falls_back_without_endpoint():
    gateway = LocalAccountGateway("0x" + "42" * 32)
    asyncio.run(gateway.switch_chain(CHAINS[ChainId.SEPOLIA], protected=True))
    assert gateway._active == (ChainId.SEPOLIA, False)


def test_local_gateway_from_settings():
    gateway = LocalAccountGateway.from_settings("0x" + "42" * 32, Settings(rpc_timeout=7.5))
    assert gateway._request_timeout == 7.5


# =============================================================================
# Settings
# =============================================================================

def test_provider_gateway_polls_at_configured_interval():
    provider = MockEthereumProvider(receipt_after_polls=10**6)
    gateway = ProviderWalletGateway.from_settings(
        provider, Settings(receipt_poll_interval=0.25, receipt_timeout=1.0)
    )
    ticks = iter(range(100))
    gateway._clock = lambda: next(ticks) * 0.25
    assert gateway._poll_interval == 0.25

    with pytest.raises(ReceiptTimeoutError):
        asyncio.run(gateway.wait_for_receipt(1, "0xabc", timeout=1.0))
