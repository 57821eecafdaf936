# antimev/transfer/orchestrator.py
"""
AntiMEV Transfer: Orchestrator

Submits a native or ERC-20 transfer, optionally through a chain's
MEV-protected RPC endpoint.

Architecture:
    TransferOrchestrator
        ├── WalletGateway            (switch chain, nonce, sign, send)
        ├── ProtectedRPCClient       (cached transaction retrieval)
        ├── ContractReader           (consensus size, key round)
        ├── ThresholdEncryptionEngine
        └── TxEnvelope               (wire format)

Standard transfer:
    switch chain → [estimate gas (ERC-20)] → send → tx hash

Protected transfer:
    switch chain (protected RPC) → read nonce → send with that nonce
        ├── success                   → tx hash
        ├── RecoverableRpcRejection   → fallback (below)
        └── anything else             → raised unchanged

    The protected node answers a transaction it decided to cache, rather
    than broadcast, with a JSON-RPC internal error. The fallback recovers
    the cached bytes and resubmits them threshold-encrypted:

    sign str(nonce) → get cached tx (hex nonce, signature)
        → consensusSize → roundNumber → aggregatedCommitments(round)
        → derive round key → encrypt cached tx
        → envelope [marker][round][gas][keccak(tx)][key ct][msg ct]
        → switch chain → send envelope (value 0, same nonce) to the
          governance reward contract → envelope tx hash

There is no retry, cancellation or rollback: a failure in the fallback
propagates as-is. The directly-sent transaction and the envelope share a
nonce, so at most one of them is mined.

Usage:
    orchestrator = TransferOrchestrator(
        wallet=ProviderWalletGateway.from_settings(provider, settings),
        contracts=Web3ContractReader(),
        engine=engine,
        settings=settings,
    )
    tx_hash = await orchestrator.submit(TransferRequest(
        chain_id=12227332,
        token_address=None,
        account=account,
        to=recipient,
        amount="1.5",
        decimals=18,
        protected=True,
    ))

Updated: 2026-10-19
Version: 0.1.0
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from eth_utils import is_address

from ..adapters.base import TransactionReceipt, TransactionRequest, WalletGateway
from ..chains import ChainDescriptor, get_chain, supported_chain_ids
from ..config import Settings
from ..crypto.tpke import ThresholdEncryptionEngine
from ..errors import (
    ChainConfigError,
    InvalidAddressError,
    PreconditionViolation,
    ProtectedRpcError,
    RecoverableRpcRejection,
)
from ..registry.contracts import ContractReader, encode_erc20_transfer
from ..transport.rpc import ProtectedRPCClient
from ..utils import amount_to_raw_amount, to_hex
from ..wire.envelope import EnvelopeError, TxEnvelope
from ..wire.transaction import TransactionParseError
from .steps import StepObserver, TransferState, TransferStep, notify

logger = logging.getLogger(__name__)


RPCClientFactory = Callable[[ChainDescriptor], ProtectedRPCClient]


# =============================================================================
# Data Classes
# =============================================================================

@dataclass(frozen=True)
class TransferRequest:
    """
    A transfer to submit.

    ``token_address`` None means the chain's native asset. ``amount`` is a
    decimal string in whole units, scaled by ``decimals``.
    """
    chain_id: int
    token_address: Optional[str]
    account: str
    to: str
    amount: str
    decimals: int
    protected: bool = False

    @property
    def is_native(self) -> bool:
        return self.token_address is None


@dataclass
class PendingProtectedState:
    """State carried through one fallback flow."""
    nonce: int
    signature: Optional[str] = None
    cached_transaction: Optional[bytes] = None

    def __post_init__(self):
        if not isinstance(self.nonce, int) or isinstance(self.nonce, bool) or self.nonce < 0:
            raise PreconditionViolation(
                f"Protected fallback requires the nonce read before sending, got {self.nonce!r}"
            )


# =============================================================================
# TransferOrchestrator
# =============================================================================

class TransferOrchestrator:
    """
    Runs the transfer pipeline for one request at a time.

    A second ``submit`` while one is in flight raises
    ``PreconditionViolation``; concurrent transfers use separate
    orchestrators. Callers must not submit concurrently from the same
    account either: the protected path depends on the nonce it read
    staying current.
    """

    def __init__(
        self,
        wallet: WalletGateway,
        contracts: ContractReader,
        engine: ThresholdEncryptionEngine,
        settings: Optional[Settings] = None,
        registry: Optional[Mapping[int, ChainDescriptor]] = None,
        observer: Optional[StepObserver] = None,
        rpc_factory: Optional[RPCClientFactory] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            wallet: Wallet gateway used for every account interaction
            contracts: Governance / key-management reader
            engine: Threshold encryption engine
            settings: Runtime settings (defaults if None)
            registry: Chain registry (built-in chains if None)
            observer: Optional step observer
            rpc_factory: Builds the protected RPC client for a chain
        """
        self._wallet = wallet
        self._contracts = contracts
        self._engine = engine
        self._settings = settings or Settings()
        self._registry = registry
        self._observer = observer
        self._rpc_factory = rpc_factory or self._default_rpc_client
        self._state = TransferState.IDLE
        self._running = False

    @property
    def state(self) -> TransferState:
        """State of the current (or last) submission."""
        return self._state

    @property
    def settings(self) -> Settings:
        return self._settings

    def _default_rpc_client(self, chain: ChainDescriptor) -> ProtectedRPCClient:
        return ProtectedRPCClient(
            endpoint=chain.protected_rpc_url,
            cached_tx_method=self._settings.cached_tx_method,
            timeout=self._settings.rpc_timeout,
        )

    async def _enter(self, state: TransferState, **data: Any) -> None:
        self._state = state
        if state is TransferState.ENTERING_FALLBACK:
            logger.warning("Direct submission cached by protected RPC; entering fallback")
        elif state is TransferState.FAILED:
            logger.info("→ %s (%s)", state.name, data.get("error"))
        else:
            logger.info("→ %s", state.name)
        await notify(self._observer, TransferStep(state=state, data=data))

    # =========================================================================
    # Public API
    # =========================================================================

    async def submit(self, request: TransferRequest) -> str:
        """
        Submit ``request``.

        Returns:
            Hash of the direct transaction, or of the envelope transaction
            when the protected fallback ran

        Raises:
            InvalidAmountError: Amount cannot be represented
            InvalidAddressError: Malformed recipient or token address
            ChainConfigError: Unknown chain, chain outside the configured
                environment, or no protected endpoint
            PreconditionViolation: Fallback entered without a nonce, or a
                submission is already running on this orchestrator
            ProtectedRpcError: Cached transaction cannot be enveloped
            TransferError: Anything raised by a collaborator, unchanged
        """
        self._acquire()
        try:
            return await self._run(request)
        finally:
            self._running = False

    async def submit_and_confirm(
        self,
        request: TransferRequest,
        timeout: Optional[float] = None,
    ) -> TransactionReceipt:
        """
        Submit ``request`` and wait for the resulting transaction's receipt.

        Raises:
            ReceiptTimeoutError: No receipt within ``timeout`` seconds
                (``settings.receipt_timeout`` if None)
        """
        self._acquire()
        try:
            tx_hash = await self._run(request)
            timeout = timeout if timeout is not None else self._settings.receipt_timeout
            try:
                await self._enter(TransferState.WAITING_FOR_RECEIPT, tx_hash=tx_hash, timeout=timeout)
                receipt = await self._wallet.wait_for_receipt(request.chain_id, tx_hash, timeout)
            except Exception as e:
                await self._enter(TransferState.FAILED, error=repr(e))
                raise

            if not receipt.succeeded:
                logger.warning("Transaction %s mined with status %d", tx_hash, receipt.status)
            await self._enter(
                TransferState.CONFIRMED,
                tx_hash=tx_hash,
                block_number=receipt.block_number,
                status=receipt.status,
            )
            return receipt
        finally:
            self._running = False

    def _acquire(self) -> None:
        # No await between the check and the flag, so this holds within one event loop
        if self._running:
            raise PreconditionViolation(
                "A submission is already running; use one orchestrator per concurrent transfer"
            )
        self._running = True

    async def _run(self, request: TransferRequest) -> str:
        self._state = TransferState.IDLE
        try:
            return await self._submit(request)
        except Exception as e:
            await self._enter(TransferState.FAILED, error=repr(e))
            raise

    # =========================================================================
    # Pipeline
    # =========================================================================

    def _direct_transaction(
        self,
        request: TransferRequest,
        raw_amount: int,
        nonce: Optional[int],
    ) -> TransactionRequest:
        if request.is_native:
            return TransactionRequest(
                chain_id=request.chain_id,
                account=request.account,
                to=request.to,
                value=raw_amount,
                nonce=nonce,
            )
        return TransactionRequest(
            chain_id=request.chain_id,
            account=request.account,
            to=request.token_address,
            value=0,
            data=encode_erc20_transfer(request.to, raw_amount),
            nonce=nonce,
        )

    async def _submit(self, request: TransferRequest) -> str:
        raw_amount = amount_to_raw_amount(request.amount, request.decimals)
        if not is_address(request.to):
            raise InvalidAddressError(f"Invalid recipient address: {request.to!r}")
        if not request.is_native and not is_address(request.token_address):
            raise InvalidAddressError(f"Invalid token address: {request.token_address!r}")

        chain = get_chain(request.chain_id, self._registry)
        # A custom registry is its own chain set
        if self._registry is None and chain.id not in supported_chain_ids(self._settings.environment):
            raise ChainConfigError(
                f"Chain \"{chain.name}\" is not enabled for the "
                f"{self._settings.environment.value} environment"
            )
        if request.protected and not chain.supports_protected_mode:
            raise ChainConfigError(f"Chain \"{chain.name}\" has no protected RPC endpoint")

        await self._enter(TransferState.SWITCHING_CHAIN, chain_id=chain.id, protected=request.protected)
        await self._wallet.switch_chain(chain, protected=request.protected)

        nonce = None
        if request.protected:
            await self._enter(TransferState.READING_NONCE, account=request.account)
            nonce = await self._wallet.get_nonce(chain.id, request.account)

        tx = self._direct_transaction(request, raw_amount, nonce)
        await self._enter(
            TransferState.ATTEMPTING_DIRECT,
            nonce=nonce,
            to=tx.to,
            value=tx.value,
            native=request.is_native,
        )
        try:
            if not request.is_native:
                tx.gas = await self._wallet.estimate_gas(tx)
            tx_hash = await self._wallet.send_transaction(tx)
        except RecoverableRpcRejection as e:
            if not request.protected:
                raise
            await self._enter(TransferState.ENTERING_FALLBACK, nonce=nonce, error=str(e))
            tx_hash = await self._fallback(request, chain, nonce)

        await self._enter(TransferState.DONE, tx_hash=tx_hash)
        return tx_hash

    async def _fallback(
        self,
        request: TransferRequest,
        chain: ChainDescriptor,
        nonce: Optional[int],
    ) -> str:
        pending = PendingProtectedState(nonce=nonce)
        target = chain.contract_address(self._settings.envelope_target)

        await self._enter(TransferState.ACQUIRING_SIGNATURE, nonce=pending.nonce)
        pending.signature = await self._wallet.sign_message(str(pending.nonce), request.account)

        await self._enter(TransferState.FETCHING_CACHED_TRANSACTION, signature=pending.signature)
        client = self._rpc_factory(chain)
        pending.cached_transaction = await client.get_cached_transaction(
            pending.nonce, pending.signature
        )
        raw_tx = pending.cached_transaction

        await self._enter(TransferState.READING_CONSENSUS, cached_tx_size=len(raw_tx))
        consensus_size = await self._contracts.consensus_size(chain)
        params = self._engine.consensus_parameters(consensus_size)

        await self._enter(
            TransferState.READING_ROUND,
            consensus_size=params.consensus_size,
            threshold=params.threshold,
        )
        round_number = await self._contracts.round_number(chain)

        await self._enter(TransferState.READING_COMMITMENT, round_number=round_number)
        commitment = await self._contracts.aggregated_commitment(chain, round_number)

        await self._enter(TransferState.DERIVING_KEY, commitment_size=len(commitment))
        public_key = self._engine.derive_key(commitment, params.scaler)

        await self._enter(TransferState.ENCRYPTING, plaintext_size=len(raw_tx))
        payload = self._engine.encrypt(public_key, raw_tx)

        await self._enter(
            TransferState.BUILDING_ENVELOPE,
            key_ciphertext_size=len(payload.key_ciphertext),
            message_ciphertext_size=len(payload.message_ciphertext),
        )
        try:
            envelope = TxEnvelope.from_cached_transaction(round_number, raw_tx, payload)
            wire = envelope.to_bytes()
        except (TransactionParseError, EnvelopeError) as e:
            raise ProtectedRpcError(
                f"Cached transaction cannot be enveloped: {e}", data=to_hex(raw_tx), cause=e
            ) from e

        await self._enter(TransferState.RESWITCHING_CHAIN, chain_id=chain.id)
        await self._wallet.switch_chain(chain, protected=True)

        await self._enter(
            TransferState.SUBMITTING_ENVELOPE,
            target=target,
            envelope_size=len(wire),
            round_number=envelope.round_number,
            gas_limit=envelope.gas_limit,
            cached_tx_hash=to_hex(envelope.tx_hash),
        )
        return await self._wallet.send_transaction(TransactionRequest(
            chain_id=chain.id,
            account=request.account,
            to=target,
            value=0,
            data=wire,
            nonce=pending.nonce,
        ))
