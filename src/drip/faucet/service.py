"""Faucet Service for DRIP.

Coordinates the issuance pipeline for every ingress channel:
- Address validation
- Single-claim checks against the claim ledger
- Nonce, gas and broadcast under one send gate per funding account
- Claim recording after a successful broadcast
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum

from drip.blockchain.client import JsonRpcClient
from drip.blockchain.transaction import SignedTransaction, TransactionSigner, validate_address
from drip.errors import FaucetError, StoreError
from drip.observability.logging import bind_request_context
from drip.observability.metrics import (
    CLAIM_RECORD_FAILURES,
    FAUCET_BALANCE,
    GATE_WAIT_DURATION,
    REQUESTS,
    TOKENS_DISTRIBUTED,
    TRANSACTION_DURATION,
)

from .store import ClaimStore

logger = logging.getLogger(__name__)


class DispatchStatus(str, Enum):
    """Outcome of a claim request."""

    SUCCESS = "success"
    INVALID_ADDRESS = "invalid_address"
    ALREADY_CLAIMED = "already_claimed"
    CLAIM_IN_PROGRESS = "claim_in_progress"
    USER_ALREADY_CLAIMED = "user_already_claimed"
    STORE_UNAVAILABLE = "store_unavailable"
    TRANSACTION_FAILED = "transaction_failed"


class DispatchStage(str, Enum):
    """Pipeline stage a request reached."""

    VALIDATING = "validating"
    CHECKING_CLAIM = "checking_claim"
    AWAITING_GATE = "awaiting_gate"
    FETCHING_PARAMS = "fetching_params"
    SIGNING = "signing"
    BROADCASTING = "broadcasting"
    RECORDING_CLAIM = "recording_claim"
    DONE = "done"


@dataclass
class DispatchResult:
    """Result of a claim request."""

    success: bool
    status: DispatchStatus
    address: str
    amount_wei: int
    message: str
    tx_hash: str | None = None
    stage: DispatchStage = DispatchStage.DONE
    claim_recorded: bool = False
    nonce: int | None = None


@dataclass
class FaucetStatus:
    """Current faucet status."""

    healthy: bool
    address: str
    balance_wei: int | None
    amount_wei: int
    message: str


class _Attempt:
    """Mutable progress marker for one dispatch."""

    def __init__(self, address: str, channel: str, user_id: str | None = None):
        self.address = address
        self.channel = channel
        self.user_id = user_id
        self.stage = DispatchStage.VALIDATING


class FaucetService:
    """Dispatch coordinator shared by the HTTP and chat channels.

    Every nonce-dependent step (nonce fetch, gas lookup, signing, broadcast)
    runs under a single ``asyncio.Lock``, so concurrent requests for one
    funding account never receive the same nonce. Claim checks run before
    the gate so repeat requests never contend for it.

    Parameters
    ----------
    client : JsonRpcClient
        Chain client.
    signer : TransactionSigner
        Signer bound to the funding wallet and chain id.
    store : ClaimStore
        Claim ledger.
    amount_wei : int
        Fixed amount sent per claim, in wei.
    """

    def __init__(
        self,
        client: JsonRpcClient,
        signer: TransactionSigner,
        store: ClaimStore,
        amount_wei: int,
    ):
        if amount_wei <= 0:
            raise ValueError(f"amount_wei must be positive, got {amount_wei}")
        self._client = client
        self._signer = signer
        self._store = store
        self._amount_wei = amount_wei
        self._send_gate = asyncio.Lock()
        self._addresses_in_flight: set[str] = set()
        self._users_in_flight: set[str] = set()
        self._issuing: set[asyncio.Task] = set()

    @property
    def faucet_address(self) -> str:
        """Checksummed funding address."""
        return self._signer.address

    @property
    def amount_wei(self) -> int:
        return self._amount_wei

    @property
    def chain_id(self) -> int:
        return self._signer.chain_id

    @property
    def store(self) -> ClaimStore:
        return self._store

    async def verify_chain_id(self) -> int:
        """Check the node serves the chain the signer is bound to.

        Returns
        -------
        int
            The node's chain id.

        Raises
        ------
        ValueError
            If the node reports a different chain id.
        """
        remote_chain_id = await self._client.get_chain_id()
        if remote_chain_id != self._signer.chain_id:
            raise ValueError(
                f"RPC endpoint serves chain {remote_chain_id}, "
                f"but DRIP_CHAIN_ID is {self._signer.chain_id}"
            )
        return remote_chain_id

    async def get_status(self) -> FaucetStatus:
        """Get current faucet status.

        Returns
        -------
        FaucetStatus
            Funding balance and whether it covers at least one more claim.
        """
        try:
            balance = await self._client.get_balance(self.faucet_address)
        except FaucetError as e:
            logger.warning("Balance lookup failed", extra={"error": str(e)})
            return FaucetStatus(
                healthy=False,
                address=self.faucet_address,
                balance_wei=None,
                amount_wei=self._amount_wei,
                message=f"Chain node unavailable: {e}",
            )

        FAUCET_BALANCE.set(balance)
        if balance < self._amount_wei:
            return FaucetStatus(
                healthy=False,
                address=self.faucet_address,
                balance_wei=balance,
                amount_wei=self._amount_wei,
                message="Faucet balance is too low to serve claims",
            )
        return FaucetStatus(
            healthy=True,
            address=self.faucet_address,
            balance_wei=balance,
            amount_wei=self._amount_wei,
            message="Faucet operational",
        )

    async def dispatch(self, address: str, channel: str = "http") -> DispatchResult:
        """Send the configured amount to an address, once per address.

        Parameters
        ----------
        address : str
            Destination address (any casing).
        channel : str
            Ingress channel label for metrics.

        Returns
        -------
        DispatchResult
            Outcome; ``tx_hash`` is set when funds were sent.
        """
        return await self._dispatch(address, channel)

    async def precheck_chat_user(self, user_id: str) -> DispatchResult | None:
        """Refuse early if a chat user has claimed or has a claim running.

        Lets chat handlers answer a repeat user without announcing a send.
        :meth:`handle_chat_request` repeats the check, so a ``None`` here is
        not a promise that the claim will go through.

        Returns
        -------
        DispatchResult | None
            The refusal, or None when the user may proceed.
        """
        user_id = str(user_id)
        refusal = None
        if user_id in self._users_in_flight:
            refusal = self._user_in_progress()
        else:
            try:
                if await self._store.has_user_claimed(user_id):
                    refusal = self._user_already_claimed()
            except StoreError as e:
                refusal = self._store_unavailable("", e)
        if refusal is not None:
            self._count(refusal, "chat")
        return refusal

    async def handle_chat_request(self, user_id: str, address: str) -> DispatchResult:
        """Handle a claim from a chat user.

        Enforces one claim per chat user on top of one claim per address.

        Parameters
        ----------
        user_id : str
            Chat platform user identifier.
        address : str
            Destination address.

        Returns
        -------
        DispatchResult
            Outcome of the request.
        """
        user_id = str(user_id)
        address = address.strip() if isinstance(address, str) else ""
        if not validate_address(address):
            return self._count(self._invalid_address(address), "chat")

        if user_id in self._users_in_flight:
            return self._count(self._user_in_progress(address), "chat")

        self._users_in_flight.add(user_id)
        try:
            try:
                if await self._store.has_user_claimed(user_id):
                    logger.info("Chat user already claimed", extra={"user_id": user_id})
                    return self._count(self._user_already_claimed(address), "chat")
            except StoreError as e:
                return self._count(self._store_unavailable(address, e), "chat")

            return await self._dispatch(address, "chat", user_id)
        finally:
            self._users_in_flight.discard(user_id)

    async def drain(self) -> None:
        """Wait for sends already past the gate to finish recording their claims.

        Call before closing the client or the store on shutdown.
        """
        if not self._issuing:
            return
        logger.info("Waiting for in-flight sends", extra={"count": len(self._issuing)})
        await asyncio.gather(*self._issuing, return_exceptions=True)

    async def _dispatch(
        self, address: str, channel: str, user_id: str | None = None
    ) -> DispatchResult:
        attempt = _Attempt(address.strip() if isinstance(address, str) else "", channel, user_id)
        address = attempt.address
        if not validate_address(address):
            return self._count(self._invalid_address(address), channel)
        bind_request_context(address=address)

        key = address.lower()
        if key in self._addresses_in_flight:
            logger.info("Claim already in progress")
            return self._count(
                self._result(
                    DispatchStatus.CLAIM_IN_PROGRESS,
                    address,
                    "A request for this address is already being processed",
                    DispatchStage.CHECKING_CLAIM,
                ),
                channel,
            )

        self._addresses_in_flight.add(key)
        handed_off = False
        try:
            attempt.stage = DispatchStage.CHECKING_CLAIM
            try:
                claimed = await self._store.has_claimed(address)
            except StoreError as e:
                return self._count(self._store_unavailable(address, e), channel)
            if claimed:
                logger.info("Address already claimed")
                return self._count(
                    self._result(
                        DispatchStatus.ALREADY_CLAIMED,
                        address,
                        "This address has already received tokens from the faucet",
                        DispatchStage.CHECKING_CLAIM,
                    ),
                    channel,
                )

            attempt.stage = DispatchStage.AWAITING_GATE
            wait_started = time.monotonic()
            await self._send_gate.acquire()
            GATE_WAIT_DURATION.observe(time.monotonic() - wait_started)

            # Past this point the send runs to completion even if the caller goes away
            issue = asyncio.ensure_future(self._issue(attempt))
            self._issuing.add(issue)
            issue.add_done_callback(self._issuing.discard)
            handed_off = True
            return await asyncio.shield(issue)
        finally:
            if not handed_off:
                self._addresses_in_flight.discard(key)

    async def _issue(self, attempt: _Attempt) -> DispatchResult:
        """Send under the already-acquired gate, then record the claim(s)."""
        address = attempt.address
        try:
            started = time.monotonic()
            try:
                signed, tx_hash = await self._send_locked(attempt)
            except Exception as e:
                logger.error(
                    "Dispatch failed",
                    extra={"stage": attempt.stage.value, "error": str(e)},
                    exc_info=not isinstance(e, FaucetError),
                )
                return self._count(
                    self._result(
                        DispatchStatus.TRANSACTION_FAILED,
                        address,
                        f"Transaction failed: {e}",
                        attempt.stage,
                    ),
                    attempt.channel,
                )
            finally:
                self._send_gate.release()
            TRANSACTION_DURATION.observe(time.monotonic() - started)
            TOKENS_DISTRIBUTED.inc(self._amount_wei)

            attempt.stage = DispatchStage.RECORDING_CLAIM
            claim_recorded = True
            try:
                await self._store.mark_claimed(address)
            except StoreError as e:
                # Funds already moved; the caller still gets the hash
                claim_recorded = False
                CLAIM_RECORD_FAILURES.inc()
                logger.critical(
                    "Transaction sent but claim record failed; ledger is out of sync",
                    extra={"tx_hash": tx_hash, "error": str(e)},
                )
            if attempt.user_id is not None:
                try:
                    await self._store.mark_user_claimed(attempt.user_id)
                except StoreError as e:
                    CLAIM_RECORD_FAILURES.inc()
                    logger.error(
                        "Failed to record chat user claim",
                        extra={"user_id": attempt.user_id, "tx_hash": tx_hash, "error": str(e)},
                    )

            attempt.stage = DispatchStage.DONE
            logger.info(
                "Claim served",
                extra={
                    "tx_hash": tx_hash,
                    "nonce": signed.transaction.nonce,
                    "amount_wei": str(self._amount_wei),
                },
            )
            return self._count(
                DispatchResult(
                    success=True,
                    status=DispatchStatus.SUCCESS,
                    address=address,
                    amount_wei=self._amount_wei,
                    message="Tokens sent successfully",
                    tx_hash=tx_hash,
                    stage=DispatchStage.DONE,
                    claim_recorded=claim_recorded,
                    nonce=signed.transaction.nonce,
                ),
                attempt.channel,
            )
        finally:
            self._addresses_in_flight.discard(address.lower())

    async def _send_locked(self, attempt: _Attempt) -> tuple[SignedTransaction, str]:
        """Nonce fetch through broadcast. Caller must hold the send gate."""
        address = attempt.address
        faucet_address = self._signer.address

        attempt.stage = DispatchStage.FETCHING_PARAMS
        nonce = await self._client.get_transaction_count(faucet_address, "pending")
        gas_price = await self._client.get_gas_price()
        gas_limit = await self._client.estimate_gas(faucet_address, address, self._amount_wei)
        logger.info(
            "Building transaction",
            extra={"nonce": nonce, "gas_price": gas_price, "gas_limit": gas_limit},
        )

        attempt.stage = DispatchStage.SIGNING
        signed = self._signer.build_and_sign(
            to=address,
            value=self._amount_wei,
            nonce=nonce,
            gas_price=gas_price,
            gas_limit=gas_limit,
        )

        attempt.stage = DispatchStage.BROADCASTING
        tx_hash = await self._client.send_raw_transaction(signed.raw)
        if tx_hash.lower() != signed.hash:
            logger.warning(
                "Node returned unexpected transaction hash",
                extra={"tx_hash": tx_hash, "expected": signed.hash},
            )
        logger.info("Transaction broadcast", extra={"tx_hash": tx_hash, "nonce": nonce})
        return signed, tx_hash

    def _count(self, result: DispatchResult, channel: str) -> DispatchResult:
        REQUESTS.labels(channel=channel, status=result.status.value).inc()
        return result

    def _user_in_progress(self, address: str = "") -> DispatchResult:
        return self._result(
            DispatchStatus.CLAIM_IN_PROGRESS,
            address,
            "Your previous request is still being processed",
            DispatchStage.CHECKING_CLAIM,
        )

    def _user_already_claimed(self, address: str = "") -> DispatchResult:
        return self._result(
            DispatchStatus.USER_ALREADY_CLAIMED,
            address,
            "You have already received tokens from this faucet",
            DispatchStage.CHECKING_CLAIM,
        )

    def _result(
        self,
        status: DispatchStatus,
        address: str,
        message: str,
        stage: DispatchStage,
    ) -> DispatchResult:
        return DispatchResult(
            success=False,
            status=status,
            address=address,
            amount_wei=self._amount_wei,
            message=message,
            stage=stage,
        )

    def _invalid_address(self, address: str) -> DispatchResult:
        return self._result(
            DispatchStatus.INVALID_ADDRESS,
            address,
            f"Invalid address format: {address}",
            DispatchStage.VALIDATING,
        )

    def _store_unavailable(self, address: str, error: StoreError) -> DispatchResult:
        logger.error("Claim ledger unavailable", extra={"error": str(error)})
        return self._result(
            DispatchStatus.STORE_UNAVAILABLE,
            address,
            "Claim ledger unavailable, please try again later",
            DispatchStage.CHECKING_CLAIM,
        )
