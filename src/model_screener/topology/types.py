"""Shapes of inbound connection entries."""

from collections.abc import Mapping
from typing import Any, List, NamedTuple, Optional, Union

from .constants import ARG_HISTORY_PATH, NODE_ARGS_KEY


class LegacyGroup(NamedTuple):
    """Connection group already in legacy form: a list of history tuples."""

    connections: list


class ModernNode(NamedTuple):
    """Call node with positional arguments, each possibly carrying a history record."""

    args: list

    def histories(self) -> List[Any]:
        """Origin-history records of every argument that has one, in argument order."""
        found = []
        for arg in self.args:
            history = get_path(arg, ARG_HISTORY_PATH)
            if history is not None:
                found.append(history)
        return found


InboundEntry = Union[LegacyGroup, ModernNode]


def get_path(value: Any, path: tuple) -> Optional[Any]:
    """Follow ``path`` through nested mappings, returning None at the first missing link."""
    for key in path:
        if not isinstance(value, Mapping):
            return None
        value = value.get(key)
        if value is None:
            return None
    return value


def classify_inbound_entry(entry: Any) -> Optional[InboundEntry]:
    """
    Inspect an ``inbound_nodes`` entry once and return its variant.

    Returns:
        LegacyGroup for a raw list, ModernNode for a mapping holding a list of
        ``args``, None for anything else
    """
    if isinstance(entry, list):
        return LegacyGroup(entry)
    if isinstance(entry, Mapping) and isinstance(entry.get(NODE_ARGS_KEY), list):
        return ModernNode(entry[NODE_ARGS_KEY])
    return None
