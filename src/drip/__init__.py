"""DRIP - Dispenser for Request-Issued Payouts."""

__version__ = "0.1.0"
