"""
Channel layer returning response envelopes.
"""

from satire_engine.api.channels import APIResponse, ChannelRegistry, to_jsonable

__all__ = [
    "APIResponse",
    "ChannelRegistry",
    "to_jsonable",
]
