"""Shared fixtures: topology documents and fake runtime collaborators."""

import io
import json

import numpy as np
import pytest
from PIL import Image

from model_screener.exceptions import LoadError


def make_topology(*layers):
    """Wrap layer descriptors in a functional-model topology document."""
    return {
        "class_name": "Functional",
        "keras_version": "3.1.0",
        "model_config": {
            "class_name": "Functional",
            "config": {"name": "detector", "layers": list(layers)},
        },
    }


def modern_input_layer():
    return {
        "class_name": "InputLayer",
        "name": "input_1",
        "config": {
            "batch_shape": [None, 10],
            "dtype": {"module": "keras", "class_name": "DTypePolicy", "config": {"name": "float32"}},
            "name": "input_1",
        },
        "inbound_nodes": [],
    }


def modern_dense_layer():
    return {
        "class_name": "Dense",
        "name": "dense",
        "config": {
            "units": 1,
            "activation": "sigmoid",
            "dtype": {"module": "keras", "class_name": "DTypePolicy", "config": {"name": "float32"}},
            "kernel_initializer": {
                "module": "keras.initializers",
                "class_name": "GlorotUniform",
                "config": {"seed": None},
                "registered_name": None,
            },
            "bias_initializer": {"module": "keras.initializers", "class_name": "Zeros", "registered_name": None},
            "kernel_regularizer": None,
        },
        "inbound_nodes": [
            {
                "args": [
                    {
                        "class_name": "__keras_tensor__",
                        "config": {"shape": [None, 10], "dtype": "float32", "keras_history": ["input_1", 0, 0]},
                    }
                ],
                "kwargs": {},
            }
        ],
    }


def legacy_input_layer():
    return {
        "class_name": "InputLayer",
        "name": "input_1",
        "config": {"batchInputShape": [None, 10], "dtype": "float32", "name": "input_1"},
        "inbound_nodes": [],
    }


def legacy_dense_layer():
    return {
        "class_name": "Dense",
        "name": "dense",
        "config": {
            "units": 1,
            "activation": "sigmoid",
            "dtype": "float32",
            "kernel_initializer": {"className": "GlorotUniform", "config": {"seed": None}},
            "bias_initializer": {"className": "Zeros", "config": {}},
            "kernel_regularizer": None,
        },
        "inbound_nodes": [[["input_1", 0, 0, {}]]],
    }


@pytest.fixture
def modern_topology():
    """Topology as written by the newer exporter."""
    return make_topology(modern_input_layer(), modern_dense_layer())


@pytest.fixture
def legacy_topology():
    """Topology already in the shape the runtime accepts."""
    return make_topology(legacy_input_layer(), legacy_dense_layer())


class FakeModel:
    """Returns a fixed score and records disposal."""

    def __init__(self, score=0.82):
        self.score = score
        self.disposed = False
        self.batches = []

    def predict(self, batch):
        if self.disposed:
            raise RuntimeError("model used after dispose")
        self.batches.append(batch)
        return np.array([[self.score]], dtype=np.float32)

    def dispose(self):
        self.disposed = True


class FakeRuntime:
    """
    Accepts only topologies without newer-exporter fields, like the real runtime.

    ``fail_always`` makes every load fail.
    """

    def __init__(self, score=0.82, fail_always=False):
        self.score = score
        self.fail_always = fail_always
        self.loaded = []
        self.attempts = []

    def load_from_artifacts(self, artifacts):
        self.attempts.append(artifacts)
        if self.fail_always:
            raise LoadError("Unknown layer format")
        for layer in artifacts.model_topology["model_config"]["config"]["layers"]:
            config = layer.get("config", {})
            if "batch_shape" in config or isinstance(config.get("dtype"), dict):
                raise LoadError(f"Improperly formatted config for layer {layer.get('name')}")
            for node in layer.get("inbound_nodes", []):
                if not isinstance(node, list):
                    raise LoadError("Corrupted configuration, expected array for nodeData")
        model = FakeModel(self.score)
        self.loaded.append(model)
        return model


@pytest.fixture
def fake_runtime():
    return FakeRuntime()


def write_model_dir(directory, topology, shards=(b"\x00\x01", b"\x02\x03")):
    """Write a model.json with weight shards, returning the model.json path."""
    directory.mkdir(parents=True, exist_ok=True)
    paths = []
    for i, data in enumerate(shards, 1):
        name = f"group1-shard{i}of{len(shards)}.bin"
        (directory / name).write_bytes(data)
        paths.append(name)
    model_json = directory / "model.json"
    model_json.write_text(json.dumps({
        "format": "layers-model",
        "generatedBy": "keras v3.1.0",
        "modelTopology": topology,
        "weightsManifest": [{"paths": paths, "weights": [{"name": "dense/kernel", "shape": [10, 1], "dtype": "float32"}]}],
    }))
    return model_json


@pytest.fixture
def modern_model_path(tmp_path, modern_topology):
    return write_model_dir(tmp_path / "modern", modern_topology)


@pytest.fixture
def legacy_model_path(tmp_path, legacy_topology):
    return write_model_dir(tmp_path / "legacy", legacy_topology)


@pytest.fixture
def png_bytes():
    img = Image.new("RGB", (64, 48), color=(255, 128, 0))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
