"""Fetching layers-model artifacts (model.json plus weight shards)."""

import json
import logging
from pathlib import Path
from typing import List, NamedTuple, Optional, Protocol, Union
from urllib.parse import urljoin

import httpx

from model_screener.exceptions import ArtifactFormatError
from model_screener.topology.constants import MODEL_TOPOLOGY_KEY, WEIGHTS_MANIFEST_KEY

logger = logging.getLogger(__name__)

__all__ = [
    'ModelArtifacts',
    'ArtifactFetcher',
    'FileFetcher',
    'HttpFetcher',
    'fetcher_for',
    'load_artifacts',
]


class ModelArtifacts(NamedTuple):
    """Everything a runtime needs to build a model."""

    model_topology: dict
    weights_manifest: List[dict]
    weight_data: Optional[bytes]  # Shards concatenated in manifest order
    source: str


class ArtifactFetcher(Protocol):
    def fetch(self, path: str) -> bytes:
        ...


class FileFetcher:
    """Reads artifacts from the local filesystem."""

    def fetch(self, path: str) -> bytes:
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Model artifact not found: {path}")
        logger.debug(f"Reading {file_path}")
        return file_path.read_bytes()


class HttpFetcher:
    """Fetches artifacts over HTTP(S). No timeout unless one is given."""

    def __init__(self, timeout: Optional[float] = None, client: Optional[httpx.Client] = None):
        self.timeout = timeout
        self.client = client

    def fetch(self, path: str) -> bytes:
        logger.debug(f"GET {path}")
        if self.client is not None:
            # Keep the client's own timeout unless one was given here
            if self.timeout is None:
                response = self.client.get(path)
            else:
                response = self.client.get(path, timeout=self.timeout)
        else:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.get(path)
        response.raise_for_status()
        return response.content


def _is_url(path: str) -> bool:
    return path.startswith(('http://', 'https://'))


def fetcher_for(path: Union[str, Path]) -> ArtifactFetcher:
    """Pick an HTTP fetcher for URLs and a filesystem fetcher otherwise."""
    return HttpFetcher() if _is_url(str(path)) else FileFetcher()


def _sibling(path: str, name: str) -> str:
    if _is_url(path):
        return urljoin(path, name)
    return str(Path(path).parent / name)


def parse_model_json(raw: bytes, source: str = "<memory>") -> dict:
    """Decode a model.json payload and check it carries a topology."""
    try:
        document = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ArtifactFormatError(f"{source} is not valid JSON: {e}") from e

    if not isinstance(document, dict) or not isinstance(document.get(MODEL_TOPOLOGY_KEY), dict):
        raise ArtifactFormatError(f"{source} has no '{MODEL_TOPOLOGY_KEY}' object")
    return document


def load_artifacts(
    path: Union[str, Path],
    fetcher: Optional[ArtifactFetcher] = None,
    load_weights: bool = True,
) -> ModelArtifacts:
    """
    Fetch a model.json and its weight shards.

    Args:
        path: Path or URL of the model.json
        fetcher: Fetcher to use (picked from the path when omitted)
        load_weights: Also fetch the weight shards listed in the manifest

    Returns:
        ModelArtifacts with the raw (unpatched) topology
    """
    path = str(path)
    fetcher = fetcher or fetcher_for(path)

    document = parse_model_json(fetcher.fetch(path), source=path)
    manifest = document.get(WEIGHTS_MANIFEST_KEY) or []
    if not isinstance(manifest, list):
        raise ArtifactFormatError(f"{path} has a malformed '{WEIGHTS_MANIFEST_KEY}'")

    weight_data = None
    if load_weights and manifest:
        shards = []
        for group in manifest:
            if not isinstance(group, dict):
                raise ArtifactFormatError(f"{path} has a malformed weight group: {group!r}")
            for shard in group.get('paths', []):
                shards.append(fetcher.fetch(_sibling(path, shard)))
        weight_data = b"".join(shards)
        logger.debug(f"Fetched {len(shards)} weight shards ({len(weight_data)} bytes)")

    logger.info(f"Fetched model artifacts from {path}")
    return ModelArtifacts(
        model_topology=document[MODEL_TOPOLOGY_KEY],
        weights_manifest=manifest,
        weight_data=weight_data,
        source=path,
    )
