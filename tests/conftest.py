import sys
import threading
import time
from pathlib import Path

import pytest
import requests

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from nftprobe.rpc import ContractCallError

CONTRACT = "0xbc4ca0eda7647a8ab7c2061c2e118a18a936f13d"
OWNER = "0x000000000000000000000000000000000000dEaD"

_NO_JSON = object()


class FakeContract:
    """In-memory token contract; missing entries revert like a real node."""

    def __init__(self, supply=None, token_uris=None, owners=None, uris=None, delay=0.0, broken=None):
        self.supply = supply
        self.token_uris = token_uris or {}
        self.owners = owners or {}
        self.uris = uris or {}
        self.delay = delay
        self.broken = broken or {}
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def _enter(self, name, token_id):
        with self._lock:
            self.calls.append((name, token_id))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            if token_id in self.broken:
                raise self.broken[token_id]
        finally:
            with self._lock:
                self.in_flight -= 1

    def total_supply(self):
        if self.supply is None:
            raise ContractCallError("call reverted: execution reverted")
        if isinstance(self.supply, Exception):
            raise self.supply
        return self.supply

    def _lookup(self, name, table, token_id):
        self._enter(name, token_id)
        if token_id not in table:
            raise ContractCallError("call reverted: execution reverted")
        return table[token_id]

    def token_uri(self, token_id):
        return self._lookup("tokenURI", self.token_uris, token_id)

    def owner_of(self, token_id):
        return self._lookup("ownerOf", self.owners, token_id)

    def uri(self, token_id):
        return self._lookup("uri", self.uris, token_id)

    def attempted_ids(self):
        return sorted({token_id for name, token_id in self.calls if name == "tokenURI"})


class FakeResponse:
    def __init__(self, status_code=200, json_data=_NO_JSON):
        self.status_code = status_code
        self._json = json_data

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._json is _NO_JSON:
            raise ValueError("no JSON body")
        return self._json


class FakeSession:
    """Records requests and answers from a queue or a callable."""

    def __init__(self, responder):
        self.responder = responder
        self.requests = []

    def _respond(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        outcome = self.responder(method, url, kwargs)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def get(self, url, **kwargs):
        return self._respond("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._respond("POST", url, **kwargs)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch, tmp_path):
    monkeypatch.delenv("ALCHEMY_API_KEY", raising=False)
    monkeypatch.chdir(tmp_path)
