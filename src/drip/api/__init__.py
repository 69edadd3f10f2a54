"""HTTP ingress for DRIP."""

from .server import FaucetServer

__all__ = ["FaucetServer"]
