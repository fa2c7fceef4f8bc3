"""
Access-control decisions for blob requests and event ingestion.

Components:
- verdict: allow/deny outcome carrying a reason and status code
- chain: ordered, first-reject-wins gate sequences
- ownership: latest-event-per-author resolution of download rights
- engine: the four authorization operations built from gate chains
"""

from .chain import GateFn, PolicyChain
from .engine import PolicyEngine
from .ownership import OwnershipResolver, is_pubkey_tagged, latest_per_author
from .verdict import Verdict

__all__ = [
    "GateFn",
    "OwnershipResolver",
    "PolicyChain",
    "PolicyEngine",
    "Verdict",
    "is_pubkey_tagged",
    "latest_per_author",
]
