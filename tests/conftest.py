# tests/conftest.py
"""
Shared fixtures: raw signed transactions, commitments, and a fully mocked
orchestrator wiring.
"""

from __future__ import annotations

import pytest
import rlp

from antimev.adapters import MockWalletGateway
from antimev.chains import CHAINS, ChainId
from antimev.crypto import DEFAULT_COMMITMENT_SIZE, SymmetricThresholdEngine
from antimev.registry import MockContractReader
from antimev.transfer import StepRecorder, TransferOrchestrator
from antimev.transport import MockHTTPTransport, ProtectedRPCClient


LEGACY_GAS = 21_000
EIP1559_GAS = 65_000


def legacy_tx(gas: int = LEGACY_GAS) -> bytes:
    """RLP legacy tx: [nonce, gasPrice, gas, to, value, data, v, r, s]."""
    return rlp.encode([
        5,
        20 * 10**9,
        gas,
        bytes.fromhex("22" * 20),
        10**18,
        b"",
        27,
        1,
        2,
    ])


def eip1559_tx(gas: int = EIP1559_GAS) -> bytes:
    """0x02 || RLP([chainId, nonce, tip, maxFee, gas, to, value, data, accessList, y, r, s])."""
    return b"\x02" + rlp.encode([
        ChainId.NEOX_T4,
        5,
        10**9,
        40 * 10**9,
        gas,
        bytes.fromhex("33" * 20),
        0,
        bytes.fromhex("a9059cbb") + b"\x00" * 64,
        [],
        1,
        3,
        4,
    ])


@pytest.fixture
def raw_legacy_tx() -> bytes:
    return legacy_tx()


@pytest.fixture
def raw_eip1559_tx() -> bytes:
    return eip1559_tx()


@pytest.fixture
def commitment() -> bytes:
    return bytes(range(1, DEFAULT_COMMITMENT_SIZE + 1))


@pytest.fixture
def neox():
    return CHAINS[ChainId.NEOX_T4]


class Harness:
    """Orchestrator wired to mock collaborators."""

    def __init__(self, commitment: bytes, cached_tx: bytes, nonce=5, settings=None):
        self.wallet = MockWalletGateway(nonce=nonce)
        self.contracts = MockContractReader(
            consensus_size=7,
            round_number=3,
            commitments={3: commitment},
        )
        self.engine = SymmetricThresholdEngine()
        self.transport = MockHTTPTransport()
        self.transport.queue_result("0x" + cached_tx.hex())
        self.recorder = StepRecorder()
        self.rpc_endpoints = []
        self.orchestrator = TransferOrchestrator(
            wallet=self.wallet,
            contracts=self.contracts,
            engine=self.engine,
            settings=settings,
            observer=self.recorder,
            rpc_factory=self._rpc_client,
        )

    def _rpc_client(self, chain):
        self.rpc_endpoints.append(chain.protected_rpc_url)
        return ProtectedRPCClient(chain.protected_rpc_url, transport=self.transport)


@pytest.fixture
def harness(commitment, raw_eip1559_tx) -> Harness:
    return Harness(commitment, raw_eip1559_tx)


@pytest.fixture
def make_harness(commitment, raw_eip1559_tx):
    """Factory for harness variants (nonce, settings, cached tx)."""
    def _make(nonce=5, settings=None, cached_tx=None):
        return Harness(commitment, cached_tx or raw_eip1559_tx, nonce=nonce, settings=settings)
    return _make
