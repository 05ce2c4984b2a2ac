"""
COORDINATION - Reply Policy
===========================

Question this layer answers:
"Does this reply count?"
"""

from .policy import AuctionPolicy, PolicyResult, ReplyViolation

__all__ = ["AuctionPolicy", "PolicyResult", "ReplyViolation"]
