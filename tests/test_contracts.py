# tests/test_contracts.py
"""
AntiMEV Registry: contract reader and ERC-20 encoding tests.

Run:
    pytest tests/test_contracts.py
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest
from eth_abi import decode as abi_decode

from antimev.chains import CHAINS, ChainId
from antimev.errors import ChainConfigError, RecoverableRpcRejection, UnknownTransportError
from antimev.registry import (
    ERC20_TRANSFER_SELECTOR,
    GOVERNANCE_ABI,
    KEY_MANAGEMENT_ABI,
    MockContractReader,
    Web3ContractReader,
    encode_erc20_transfer,
)


NEOX = CHAINS[ChainId.NEOX_T4]


# =============================================================================
# ERC-20
# =============================================================================

def test_erc20_transfer_encoding():
    recipient = "0x" + "ab" * 20
    data = encode_erc20_transfer(recipient, 2_500_000)

    assert ERC20_TRANSFER_SELECTOR == bytes.fromhex("a9059cbb")
    assert data[:4] == ERC20_TRANSFER_SELECTOR
    assert len(data) == 4 + 64
    to, amount = abi_decode(["address", "uint256"], data[4:])
    assert to.lower() == recipient
    assert amount == 2_500_000


@pytest.mark.parametrize("to, amount", [
    ("0x1234", 1),
    ("0x" + "ab" * 20, -1),
    ("0x" + "ab" * 20, 2**256),
])
def test_erc20_transfer_invalid(to, amount):
    with pytest.raises(ValueError):
        encode_erc20_transfer(to, amount)


def test_abis_loaded():
    names = {item["name"] for item in GOVERNANCE_ABI + KEY_MANAGEMENT_ABI if "name" in item}
    assert {"consensusSize", "roundNumber", "aggregatedCommitments"} <= names


# =============================================================================
# MockContractReader
# =============================================================================

def test_mock_reader_key_round():
    reader = MockContractReader(consensus_size=7, round_number=3, commitments={3: b"\x01" * 48})

    material = asyncio.run(reader.read_key_round(NEOX))

    assert material.round_number == 3
    assert material.aggregated_commitment == b"\x01" * 48
    assert reader.calls == [
        ("round_number", ChainId.NEOX_T4, ()),
        ("aggregated_commitment", ChainId.NEOX_T4, (3,)),
    ]


def test_mock_reader_requires_contracts():
    reader = MockContractReader()
    with pytest.raises(ChainConfigError):
        asyncio.run(reader.consensus_size(CHAINS[ChainId.MAINNET]))


# =============================================================================
# Web3ContractReader
# =============================================================================

class FakeFunction:
    def __init__(self, result=None, error=None):
        self._result = result
        self._error = error

    async def call(self):
        if self._error is not None:
            raise self._error
        return self._result


def fake_web3(functions):
    def contract(address, abi):
        return SimpleNamespace(functions=SimpleNamespace(**functions))
    return SimpleNamespace(eth=SimpleNamespace(contract=contract))


def test_web3_reader_reads(monkeypatch):
    reader = Web3ContractReader()
    w3 = fake_web3({
        "consensusSize": lambda: FakeFunction(7),
        "roundNumber": lambda: FakeFunction(3),
        "aggregatedCommitments": lambda round_number: FakeFunction(bytes([round_number]) * 48),
    })
    monkeypatch.setattr(reader, "_web3", lambda chain: w3)

    assert asyncio.run(reader.consensus_size(NEOX)) == 7
    material = asyncio.run(reader.read_key_round(NEOX))
    assert material.round_number == 3
    assert material.aggregated_commitment == b"\x03" * 48


def test_web3_reader_translates_errors(monkeypatch):
    reader = Web3ContractReader()
    w3 = fake_web3({
        "consensusSize": lambda: FakeFunction(error=ConnectionError("connection refused")),
        "roundNumber": lambda: FakeFunction(error=ValueError({"code": -32603, "message": "x"})),
    })
    monkeypatch.setattr(reader, "_web3", lambda chain: w3)

    with pytest.raises(UnknownTransportError):
        asyncio.run(reader.consensus_size(NEOX))
    with pytest.raises(RecoverableRpcRejection):
        asyncio.run(reader.round_number(NEOX))


def test_web3_reader_unknown_contract():
    with pytest.raises(ChainConfigError):
        asyncio.run(Web3ContractReader().consensus_size(CHAINS[ChainId.MAINNET]))
