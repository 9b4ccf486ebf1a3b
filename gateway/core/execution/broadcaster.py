"""
Transaction broadcaster.

Signs a contract call with a reserved nonce, hands it to the chain and
reconciles the nonce bookkeeping with the outcome:
- accepted into the pool (hash returned) -> commit
- no acknowledgement within the timeout -> commit + resync + BroadcastRejectedError
- anything else that fails before a hash exists -> release + BroadcastRejectedError

Confirmation polling is the caller's concern; submit() returns as soon as
the node has accepted the transaction.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from ..errors import BroadcastRejectedError
from .calldata import ContractCall
from .models import GasOverride, TransactionHandle
from .nonce_manager import NonceManager

if TYPE_CHECKING:
    from ...chains.base import Chain, Signer

logger = structlog.stdlib.get_logger(__name__)

# Node error fragments meaning our local counter is behind the chain
NONCE_TOO_LOW_PATTERNS = ("nonce too low", "already known", "nonce has already been used")


class TxBroadcaster:
    """Submits signed transactions for one chain."""

    def __init__(
        self,
        chain: "Chain",
        nonce_manager: NonceManager,
        submit_timeout_seconds: float = 30.0,
    ):
        self.chain = chain
        self.nonce_manager = nonce_manager
        self.submit_timeout_seconds = submit_timeout_seconds

    async def submit(
        self,
        signer: "Signer",
        call: ContractCall,
        gas: GasOverride,
        nonce: int,
    ) -> TransactionHandle:
        """
        Sign and send `call` under `nonce`.

        Args:
            signer: Wallet signer bound to the sending address
            call: Target, calldata and value
            gas: Legacy or fee-market gas override
            nonce: Nonce previously reserved through the NonceManager

        Returns:
            TransactionHandle for the accepted transaction

        Raises:
            BroadcastRejectedError: the transaction never entered the pool
        """
        address = signer.address
        log = logger.bind(address=address.lower(), nonce=nonce, chain_id=self.chain.chain_id)

        try:
            tx = call.to_transaction(
                chain_id=self.chain.chain_id,
                sender=address,
                nonce=nonce,
                gas=gas,
            )
            raw = signer.sign_transaction(tx)
            tx_hash = await asyncio.wait_for(
                self.chain.send_raw_transaction(raw),
                timeout=self.submit_timeout_seconds,
            )
        except asyncio.CancelledError:
            self.nonce_manager.release(address, nonce)
            log.warning("broadcast_cancelled")
            raise
        except asyncio.TimeoutError as exc:
            # The node may still have accepted it: keep the nonce spent and
            # let the next allocation reconcile with the chain
            self.nonce_manager.commit(address, nonce)
            self.nonce_manager.invalidate(address)
            log.error("broadcast_timeout", timeout_s=self.submit_timeout_seconds)
            raise BroadcastRejectedError(
                f"Transaction not acknowledged within {self.submit_timeout_seconds}s; "
                f"nonce {nonce} stays in use until the chain confirms or replaces it",
                address=address,
                nonce=nonce,
            ) from exc
        except Exception as exc:
            self.nonce_manager.release(address, nonce)
            message = str(exc)
            if any(pattern in message.lower() for pattern in NONCE_TOO_LOW_PATTERNS):
                self.nonce_manager.invalidate(address)
            log.error("broadcast_rejected", error=message)
            raise BroadcastRejectedError(
                f"Transaction rejected before entering the pool: {message}",
                address=address,
                nonce=nonce,
            ) from exc

        self.nonce_manager.commit(address, nonce)
        log.info(
            "transaction_broadcast",
            tx_hash=tx_hash,
            to=tx["to"],
            fee_market=gas.is_fee_market,
        )
        return TransactionHandle(
            hash=tx_hash,
            nonce=nonce,
            from_address=address,
            to_address=tx["to"],
            raw=raw,
            chain_id=self.chain.chain_id,
        )
