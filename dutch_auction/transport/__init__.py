"""
TRANSPORT - Discovery and Delivery
==================================

Question this layer answers:
"How do participants find and reach each other?"

Transport does NOT:
- Know auction state
- Know rounds or prices
- Decide winners
"""

from .channel import (
    Directory,
    InMemoryDirectory,
    MessageChannel,
    InMemoryChannel,
    MatchPredicate,
    match_types,
)

__all__ = [
    "Directory",
    "InMemoryDirectory",
    "MessageChannel",
    "InMemoryChannel",
    "MatchPredicate",
    "match_types",
]
