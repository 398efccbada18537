"""Topology document shapes and key names.

The patching itself lives in topology_patcher.py.
"""

from .types import InboundEntry, LegacyGroup, ModernNode, classify_inbound_entry, get_path

__all__ = [
    'InboundEntry',
    'LegacyGroup',
    'ModernNode',
    'classify_inbound_entry',
    'get_path',
]
