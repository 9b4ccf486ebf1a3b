"""
Nonce management for concurrent transactions.

Handles nonce tracking so that many in-flight trade requests against the
same wallet never collide or skip.

Reservation is a synchronous critical section: on a single event loop no
other coroutine can run between reading and bumping the counter. Chain
reconciliation suspends, but only ever raises the counter, so it happens
outside the critical section.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Optional, Set

import structlog

from ..errors import StaleNonceError

logger = structlog.stdlib.get_logger(__name__)

TransactionCountFetcher = Callable[[str], Awaitable[int]]


@dataclass
class NonceState:
    """Tracks nonce state for one address on one chain."""
    address: str
    confirmed_nonce: int = 0                    # On-chain transaction count at last sync
    next_nonce: int = 0                         # Local counter
    reserved: Set[int] = field(default_factory=set)     # Allocated, not yet broadcast
    committed: Set[int] = field(default_factory=set)    # Broadcast, not yet confirmed
    skipped: Set[int] = field(default_factory=set)      # Released below the counter
    synced_at: Optional[float] = None           # time.monotonic() of last sync

    @property
    def last_assigned(self) -> Optional[int]:
        """Highest nonce handed out that is still reserved or pending."""
        return max(self.reserved | self.committed, default=None)

    @property
    def pending_count(self) -> int:
        return len(self.reserved) + len(self.committed)


class NonceManager:
    """
    Manages nonces for every address of one chain.

    Features:
    - Serialized allocation per address, fully concurrent across addresses
    - Explicit nonces for replacements / manual retries
    - Releases that never reintroduce gaps below outstanding reservations
    - Lazy reconciliation with the on-chain transaction count
    """

    def __init__(
        self,
        fetch_transaction_count: TransactionCountFetcher,
        resync_interval_seconds: float = 300.0,
    ):
        self._fetch_transaction_count = fetch_transaction_count
        self._resync_interval = resync_interval_seconds
        self._states: Dict[str, NonceState] = {}
        self._sync_locks: Dict[str, asyncio.Lock] = {}

    @staticmethod
    def _get_key(address: str) -> str:
        return address.lower()

    def _get_lock(self, key: str) -> asyncio.Lock:
        if key not in self._sync_locks:
            self._sync_locks[key] = asyncio.Lock()
        return self._sync_locks[key]

    def _needs_sync(self, state: Optional[NonceState]) -> bool:
        if state is None or state.synced_at is None:
            return True
        return time.monotonic() - state.synced_at >= self._resync_interval

    async def _ensure_synced(self, key: str) -> NonceState:
        if self._needs_sync(self._states.get(key)):
            async with self._get_lock(key):
                # Another caller may have synced while we waited
                if self._needs_sync(self._states.get(key)):
                    await self.sync(key)
        return self._states[key]

    async def sync(self, address: str) -> int:
        """
        Reconcile with the chain's confirmed transaction count.

        Absorbs nonces consumed by transactions sent outside this process.
        Returns the on-chain count.
        """
        key = self._get_key(address)
        on_chain = await self._fetch_transaction_count(address)

        # No awaits below: applied atomically with respect to allocate()
        state = self._states.get(key)
        if state is None:
            state = self._states[key] = NonceState(address=key)
        state.confirmed_nonce = on_chain
        if on_chain > state.next_nonce:
            state.next_nonce = on_chain
        state.committed = {n for n in state.committed if n >= on_chain}
        state.skipped = {n for n in state.skipped if n >= on_chain}
        state.synced_at = time.monotonic()

        logger.debug("nonce_synced", address=key, on_chain=on_chain, next_nonce=state.next_nonce)
        return on_chain

    async def allocate(self, address: str, explicit_nonce: Optional[int] = None) -> int:
        """
        Reserve a nonce for a transaction from `address`.

        Args:
            address: The wallet address
            explicit_nonce: Caller-supplied nonce (replacement / manual retry).
                Bypasses the counter, but must not already be confirmed.

        Returns:
            The reserved nonce

        Raises:
            StaleNonceError: explicit_nonce is below the confirmed count
        """
        key = self._get_key(address)
        state = await self._ensure_synced(key)

        if explicit_nonce is not None:
            return self._reserve_explicit(state, explicit_nonce)
        return self._reserve_next(state)

    def _reserve_next(self, state: NonceState) -> int:
        nonce = max(state.next_nonce, state.confirmed_nonce)
        # Step over slots already taken by explicit allocations
        while nonce in state.reserved or nonce in state.committed:
            nonce += 1
        state.next_nonce = nonce + 1
        state.reserved.add(nonce)
        logger.debug("nonce_allocated", address=state.address, nonce=nonce)
        return nonce

    def _reserve_explicit(self, state: NonceState, nonce: int) -> int:
        if nonce < state.confirmed_nonce:
            raise StaleNonceError(
                f"Nonce {nonce} for {state.address} is already confirmed "
                f"(on-chain count {state.confirmed_nonce})",
                address=state.address,
                nonce=nonce,
                confirmed_nonce=state.confirmed_nonce,
            )
        state.skipped.discard(nonce)
        state.reserved.add(nonce)
        logger.debug("nonce_allocated_explicit", address=state.address, nonce=nonce)
        return nonce

    def commit(self, address: str, nonce: int) -> None:
        """Mark a reservation as consumed by a broadcast transaction."""
        state = self._states.get(self._get_key(address))
        if state is None:
            return
        state.reserved.discard(nonce)
        if nonce >= state.confirmed_nonce:
            state.committed.add(nonce)
        logger.debug("nonce_committed", address=state.address, nonce=nonce)

    def release(self, address: str, nonce: int) -> None:
        """
        Return a reservation whose transaction was never broadcast.

        The highest outstanding nonce goes back to the pool (the counter rolls
        back to it). Anything lower becomes a skipped nonce that a later
        explicit-nonce transaction has to fill.
        """
        state = self._states.get(self._get_key(address))
        if state is None or nonce not in state.reserved:
            return
        state.reserved.discard(nonce)

        if nonce in state.committed or nonce < state.confirmed_nonce:
            # Failed replacement of a pending tx, or consumed externally
            return

        if nonce == state.next_nonce - 1:
            state.next_nonce = nonce
            while (
                state.next_nonce - 1 in state.skipped
                and state.next_nonce - 1 >= state.confirmed_nonce
            ):
                state.skipped.discard(state.next_nonce - 1)
                state.next_nonce -= 1
            logger.debug("nonce_released", address=state.address, nonce=nonce, next_nonce=state.next_nonce)
        elif nonce < state.next_nonce:
            state.skipped.add(nonce)
            logger.warning("nonce_skipped", address=state.address, nonce=nonce, next_nonce=state.next_nonce)

    def invalidate(self, address: str) -> None:
        """Force a chain resync on the next allocation."""
        state = self._states.get(self._get_key(address))
        if state is not None:
            state.synced_at = None

    async def peek_next(self, address: str) -> int:
        """The nonce the next allocate() would return, without reserving it."""
        state = await self._ensure_synced(self._get_key(address))
        nonce = max(state.next_nonce, state.confirmed_nonce)
        while nonce in state.reserved or nonce in state.committed:
            nonce += 1
        return nonce

    def get_state(self, address: str) -> Optional[NonceState]:
        """Get the current nonce state for an address."""
        return self._states.get(self._get_key(address))

    def clear_state(self, address: str) -> None:
        """Drop cached state for an address."""
        self._states.pop(self._get_key(address), None)
