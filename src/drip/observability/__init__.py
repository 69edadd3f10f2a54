"""Observability module for DRIP faucet."""

from .health import FaucetHealthCheck, HealthCheck, HealthServer, HealthStatus
from .logging import (
    bind_request_context,
    clear_request_id,
    configure_logging,
    get_request_id,
    new_request_id,
)
from .metrics import (
    CLAIM_RECORD_FAILURES,
    FAUCET_BALANCE,
    GATE_WAIT_DURATION,
    REQUESTS,
    TOKENS_DISTRIBUTED,
    TRANSACTION_DURATION,
)

__all__ = [
    # Health
    "FaucetHealthCheck",
    "HealthCheck",
    "HealthServer",
    "HealthStatus",
    # Logging
    "bind_request_context",
    "clear_request_id",
    "configure_logging",
    "get_request_id",
    "new_request_id",
    # Metrics
    "CLAIM_RECORD_FAILURES",
    "FAUCET_BALANCE",
    "GATE_WAIT_DURATION",
    "REQUESTS",
    "TOKENS_DISTRIBUTED",
    "TRANSACTION_DURATION",
]
