"""Faucet components for DRIP."""

from .service import DispatchResult, DispatchStage, DispatchStatus, FaucetService, FaucetStatus
from .store import ClaimStore, RedisClaimStore, SqliteClaimStore, create_claim_store

__all__ = [
    "ClaimStore",
    "DispatchResult",
    "DispatchStage",
    "DispatchStatus",
    "FaucetService",
    "FaucetStatus",
    "RedisClaimStore",
    "SqliteClaimStore",
    "create_claim_store",
]
