"""Tests for artifact fetching."""

import json

import httpx
import pytest

from model_screener.artifacts import (
    FileFetcher,
    HttpFetcher,
    fetcher_for,
    load_artifacts,
    parse_model_json,
)
from model_screener.exceptions import ArtifactFormatError


def test_load_artifacts_from_disk(modern_model_path, modern_topology):
    """Test model.json and its shards are read and concatenated in order."""
    artifacts = load_artifacts(modern_model_path)

    assert artifacts.model_topology == modern_topology
    assert artifacts.weight_data == b"\x00\x01\x02\x03"
    assert artifacts.weights_manifest[0]["paths"] == ["group1-shard1of2.bin", "group1-shard2of2.bin"]
    assert artifacts.source == str(modern_model_path)


def test_load_artifacts_without_weights(modern_model_path):
    """Test load_weights=False skips the shards."""
    artifacts = load_artifacts(modern_model_path, load_weights=False)
    assert artifacts.weight_data is None


def test_load_artifacts_missing_file(tmp_path):
    """Test a missing model.json raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        load_artifacts(tmp_path / "model.json")


def test_load_artifacts_missing_shard(modern_model_path):
    """Test a missing weight shard raises FileNotFoundError."""
    (modern_model_path.parent / "group1-shard2of2.bin").unlink()
    with pytest.raises(FileNotFoundError):
        load_artifacts(modern_model_path)


def test_parse_model_json_rejects_invalid_json():
    """Test non-JSON payloads raise ArtifactFormatError."""
    with pytest.raises(ArtifactFormatError, match="not valid JSON"):
        parse_model_json(b"<html>", source="model.json")


def test_parse_model_json_requires_topology():
    """Test payloads without modelTopology raise ArtifactFormatError."""
    with pytest.raises(ArtifactFormatError, match="modelTopology"):
        parse_model_json(json.dumps({"weightsManifest": []}).encode())


def test_fetcher_for():
    """Test URLs get the HTTP fetcher and paths the file fetcher."""
    assert isinstance(fetcher_for("https://example.com/models/a/model.json"), HttpFetcher)
    assert isinstance(fetcher_for("models/a/model.json"), FileFetcher)


def test_load_artifacts_over_http(modern_topology):
    """Test shards are resolved relative to the model.json URL."""
    model_json = json.dumps({
        "modelTopology": modern_topology,
        "weightsManifest": [{"paths": ["shard1.bin"], "weights": []}],
    }).encode()
    served = {
        "https://example.com/models/a/model.json": model_json,
        "https://example.com/models/a/shard1.bin": b"\xff",
    }
    requested = []

    def handler(request):
        requested.append(str(request.url))
        return httpx.Response(200, content=served[str(request.url)])

    client = httpx.Client(transport=httpx.MockTransport(handler))
    artifacts = load_artifacts("https://example.com/models/a/model.json", HttpFetcher(client=client))

    assert artifacts.weight_data == b"\xff"
    assert requested == list(served)


def test_http_fetcher_raises_on_error_status():
    """Test HTTP errors propagate."""
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
    with pytest.raises(httpx.HTTPStatusError):
        HttpFetcher(client=client).fetch("https://example.com/missing/model.json")


def test_http_fetcher_keeps_client_timeout():
    """Test the client's timeout is only overridden when one is given."""
    seen = []

    def handler(request):
        seen.append(request.extensions["timeout"]["read"])
        return httpx.Response(200, content=b"{}")

    client = httpx.Client(transport=httpx.MockTransport(handler), timeout=3.0)
    HttpFetcher(client=client).fetch("https://example.com/model.json")
    HttpFetcher(timeout=1.5, client=client).fetch("https://example.com/model.json")

    assert seen == [3.0, 1.5]
