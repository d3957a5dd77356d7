"""Offer/answer signaling."""
from .client import SignalingClient
from .relay import SignalingRelay

__all__ = ["SignalingClient", "SignalingRelay"]
