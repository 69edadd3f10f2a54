"""Prometheus metrics for DRIP faucet.

Metrics:
- drip_requests_total: Counter of claim requests by channel and outcome
- drip_tokens_distributed_wei_total: Counter of wei sent
- drip_claim_record_failures_total: Counter of sends whose claim record failed
- drip_faucet_balance_wei: Gauge of the funding account balance
- drip_gate_wait_seconds: Histogram of time spent waiting for the send gate
- drip_transaction_duration_seconds: Histogram of nonce-fetch to broadcast time
"""

from prometheus_client import Counter, Gauge, Histogram

# Counters
REQUESTS = Counter(
    "drip_requests_total",
    "Total number of faucet claim requests",
    ["channel", "status"],
)

TOKENS_DISTRIBUTED = Counter(
    "drip_tokens_distributed_wei_total",
    "Total native currency distributed, in wei",
)

CLAIM_RECORD_FAILURES = Counter(
    "drip_claim_record_failures_total",
    "Broadcast transactions whose claim record could not be written",
)

# Gauges
FAUCET_BALANCE = Gauge(
    "drip_faucet_balance_wei",
    "Funding account balance in wei",
)

# Histograms
GATE_WAIT_DURATION = Histogram(
    "drip_gate_wait_seconds",
    "Time spent waiting for the send gate",
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

TRANSACTION_DURATION = Histogram(
    "drip_transaction_duration_seconds",
    "Nonce fetch through broadcast duration",
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)
