"""Slack chat channel for DRIP faucet."""

from .commands import register_commands
from .formatter import MessageFormatter
from .ingress import SlackIngress

__all__ = ["SlackIngress", "register_commands", "MessageFormatter"]
