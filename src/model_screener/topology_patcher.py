"""Topology Patcher - rewrites newer-exporter topology documents for the layers-model runtime.

A model exported by the Keras 3 pipeline differs from what the runtime's
deserializer accepts in exactly four places per layer:

- the input shape is stored under ``batch_shape`` instead of ``batchInputShape``
- ``dtype`` is a policy object instead of a plain string
- ``inbound_nodes`` holds call nodes with embedded ``keras_history`` records
  instead of lists of connection tuples
- initializers, regularizers and constraints carry ``module``/``class_name``
  tags instead of the flat ``{className, config}`` form

Every rewrite is guarded independently. Anything missing or of an unexpected
shape is left alone, so the patcher never raises.
"""

import copy
import logging
from collections.abc import Mapping
from typing import Any

from model_screener.artifacts import ModelArtifacts
from model_screener.topology.constants import (
    DEFAULT_DTYPE,
    DESCRIPTOR_CONFIG_KEY,
    DTYPE_KEY,
    DTYPE_NAME_PATH,
    INBOUND_NODES_KEY,
    LAYER_CONFIG_KEY,
    LAYERS_PATH,
    LEGACY_CLASS_NAME_TAG,
    LEGACY_SHAPE_KEY,
    MODERN_CLASS_NAME_TAG,
    MODERN_SHAPE_KEY,
    MODULE_TAG,
    NESTED_DESCRIPTOR_KEYS,
)
from model_screener.topology.types import LegacyGroup, ModernNode, classify_inbound_entry, get_path

logger = logging.getLogger(__name__)

__all__ = ['patch_topology', 'patch_layer', 'patch_model_artifacts', 'needs_patch']


def _rename_shape(config: dict) -> bool:
    if config.get(MODERN_SHAPE_KEY) is None:
        return False
    config[LEGACY_SHAPE_KEY] = config.pop(MODERN_SHAPE_KEY)
    return True


def _normalize_dtype(config: dict) -> bool:
    dtype = config.get(DTYPE_KEY)
    if not isinstance(dtype, Mapping):
        return False
    config[DTYPE_KEY] = get_path(dtype, DTYPE_NAME_PATH) or DEFAULT_DTYPE
    return True


def _convert_inbound_nodes(layer: dict) -> bool:
    inbound = layer.get(INBOUND_NODES_KEY)
    if not isinstance(inbound, list):
        return False

    rebuilt = []
    changed = False
    for entry in inbound:
        variant = classify_inbound_entry(entry)
        if isinstance(variant, LegacyGroup):
            rebuilt.append(entry)
            continue

        changed = True
        if isinstance(variant, ModernNode):
            histories = variant.histories()
            if histories:
                rebuilt.append(histories)
            else:
                logger.debug(f"Dropping call node without history records in layer {layer.get('name')!r}")
        else:
            logger.debug(f"Dropping unrecognised inbound entry in layer {layer.get('name')!r}: {entry!r}")

    if changed:
        layer[INBOUND_NODES_KEY] = rebuilt
    return changed


def _flatten_descriptors(config: dict) -> bool:
    changed = False
    for key in NESTED_DESCRIPTOR_KEYS:
        value = config.get(key)
        if not isinstance(value, Mapping):
            continue
        if value.get(MODULE_TAG) and value.get(MODERN_CLASS_NAME_TAG):
            config[key] = {
                LEGACY_CLASS_NAME_TAG: value[MODERN_CLASS_NAME_TAG],
                DESCRIPTOR_CONFIG_KEY: value.get(DESCRIPTOR_CONFIG_KEY) or {},
            }
            changed = True
    return changed


def patch_layer(layer: Any) -> bool:
    """
    Rewrite a single layer descriptor in place.

    Args:
        layer: Layer descriptor from the topology's layer list

    Returns:
        True if any field was rewritten
    """
    if not isinstance(layer, dict):
        return False

    changed = False
    config = layer.get(LAYER_CONFIG_KEY)
    if isinstance(config, dict):
        for fix in (_rename_shape, _normalize_dtype, _flatten_descriptors):
            if fix(config):
                logger.debug(f"{fix.__name__.lstrip('_')} applied to layer {layer.get('name')!r}")
                changed = True

    if _convert_inbound_nodes(layer):
        logger.debug(f"Converted inbound nodes of layer {layer.get('name')!r}")
        changed = True

    return changed


def _layers(document: Any):
    layers = get_path(document, LAYERS_PATH)
    return layers if isinstance(layers, list) else None


def patch_topology(document: Any, in_place: bool = False) -> Any:
    """
    Repair a topology document so the layers-model runtime can deserialize it.

    Args:
        document: Decoded topology document (the ``modelTopology`` value)
        in_place: Mutate and return ``document`` itself instead of a corrected copy

    Returns:
        The corrected document. Documents without a layer list are returned as is.
    """
    layers = _layers(document)
    if layers is None:
        logger.debug("No layer list found in topology document, nothing to patch")
        return document

    if not in_place:
        document = copy.deepcopy(document)
        layers = _layers(document)

    patched = sum(1 for layer in layers if patch_layer(layer))
    logger.info(f"Patched {patched} of {len(layers)} layers")
    return document


def needs_patch(document: Any) -> bool:
    """Check whether any layer of ``document`` would be rewritten by patch_topology."""
    layers = _layers(document)
    if layers is None:
        return False
    return any(patch_layer(copy.deepcopy(layer)) for layer in layers)


def patch_model_artifacts(artifacts: ModelArtifacts) -> ModelArtifacts:
    """Return a copy of ``artifacts`` whose topology has been patched."""
    return artifacts._replace(model_topology=patch_topology(artifacts.model_topology))
