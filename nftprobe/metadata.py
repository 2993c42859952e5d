"""Token URI normalization and off-chain metadata retrieval."""

from __future__ import annotations

import base64
import json
import logging
import urllib.parse
from typing import Optional

import requests

from .models import MetadataDocument


IPFS_SCHEME = "ipfs://"
IPFS_GATEWAY = "https://ipfs.io/ipfs/"
DATA_SCHEME = "data:"

_LOGGER = logging.getLogger("nftprobe.metadata")


def normalize_uri(uri: str, gateway: str = IPFS_GATEWAY) -> str:
    """Rewrite ``ipfs://<cid>/<path>`` to an HTTP gateway URL; leave anything else alone."""

    if uri.startswith(IPFS_SCHEME):
        return gateway + uri[len(IPFS_SCHEME):]
    return uri


def expand_id_template(uri: str, token_id: int) -> str:
    # ERC-1155 clients substitute {id} with the zero-padded lowercase hex id.
    return uri.replace("{id}", format(token_id, "064x"))


def _decode_data_uri(uri: str) -> bytes:
    header, sep, payload = uri[len(DATA_SCHEME):].partition(",")
    if not sep:
        raise ValueError("data URI without payload separator")
    if header.endswith(";base64"):
        return base64.b64decode(payload, validate=True)
    return urllib.parse.unquote_to_bytes(payload)


class MetadataFetcher:
    """Fetch a token's metadata document; every failure collapses to ``None``."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: int = 10) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch(self, uri: str) -> Optional[MetadataDocument]:
        try:
            if uri.startswith(DATA_SCHEME):
                payload = json.loads(_decode_data_uri(uri).decode("utf-8"))
            else:
                resp = self.session.get(
                    uri,
                    headers={"accept": "application/json"},
                    timeout=self.timeout,
                )
                resp.raise_for_status()
                payload = resp.json()
        except (requests.RequestException, ValueError) as exc:
            _LOGGER.debug("metadata fetch failed uri=%s error=%s", uri[:200], exc)
            return None
        document = MetadataDocument.from_json(payload)
        if document is None:
            _LOGGER.debug("metadata not an object uri=%s", uri[:200])
        return document
