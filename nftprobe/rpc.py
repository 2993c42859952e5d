"""Read-only token contract calls over Ethereum JSON-RPC."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Optional, Sequence

import requests
from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector, to_checksum_address
from requests.adapters import HTTPAdapter


_URL_RE = re.compile(r"https?://\S+")
_ALCHEMY_KEY_RE = re.compile(r"(https?://[^\s]*/v2/)([^/?#\s]+)")
_ALCHEMY_MAINNET = "https://eth-mainnet.g.alchemy.com/v2/{}"

# JSON-RPC error code used by geth-style nodes for reverted calls.
_REVERT_CODE = 3

TOTAL_SUPPLY = function_signature_to_4byte_selector("totalSupply()")
TOKEN_URI = function_signature_to_4byte_selector("tokenURI(uint256)")
URI = function_signature_to_4byte_selector("uri(uint256)")
OWNER_OF = function_signature_to_4byte_selector("ownerOf(uint256)")


class RpcError(RuntimeError):
    """Transport-level failure talking to the node."""


class ContractCallError(RpcError):
    """The node answered, but the contract call itself failed."""


def _load_dotenv(path: str = ".env") -> None:
    if os.getenv("ALCHEMY_API_KEY"):
        return
    env_file = Path(path)
    if not env_file.exists():
        return
    for line in env_file.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _endpoint_from_notes(notes_path: str) -> str:
    notes_file = Path(notes_path)
    if not notes_file.exists():
        raise FileNotFoundError(f"Missing {notes_path}")

    content = notes_file.read_text(encoding="utf-8")
    match = _URL_RE.search(content)
    if not match:
        raise ValueError(f"No Ethereum RPC endpoint found in {notes_path}")
    endpoint = match.group(0)
    env_key = os.getenv("ALCHEMY_API_KEY")
    if env_key:
        endpoint = endpoint.replace("${ALCHEMY_API_KEY}", env_key).replace("$ALCHEMY_API_KEY", env_key)
        endpoint = _ALCHEMY_KEY_RE.sub(r"\g<1>" + env_key, endpoint)
    return endpoint


def resolve_endpoint(endpoint: Optional[str] = None, notes_path: str = ".notes/notes.txt") -> str:
    """Pick the RPC endpoint: explicit value, then ALCHEMY_API_KEY, then the notes file."""

    _load_dotenv()
    if endpoint:
        return endpoint
    api_key = os.getenv("ALCHEMY_API_KEY")
    if api_key:
        return _ALCHEMY_MAINNET.format(api_key)
    return _endpoint_from_notes(notes_path)


def build_session(pool_size: int = 10) -> requests.Session:
    session = requests.Session()
    adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


class ContractClient:
    """Minimal ERC-721 / ERC-1155 reader bound to one contract address.

    Each method performs a single ``eth_call`` and raises ``ContractCallError``
    when the contract rejects the call, or ``RpcError`` when the node could
    not be reached.
    """

    def __init__(
        self,
        endpoint: str,
        contract_address: str,
        timeout: int = 10,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not endpoint:
            raise ValueError("RPC endpoint is required")
        if timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {timeout}")
        self.endpoint = endpoint
        self.contract_address = to_checksum_address(contract_address)
        self.timeout = timeout
        self.session = session or build_session()

    def _post_json(self, payload: dict) -> dict:
        try:
            resp = self.session.post(
                self.endpoint,
                json=payload,
                headers={"accept": "application/json"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise RpcError(f"{payload.get('method')} request failed: {exc}") from exc
        try:
            return resp.json()
        except ValueError as exc:
            raise RpcError(f"{payload.get('method')} returned a non-JSON body") from exc

    def _eth_call(self, selector: bytes, arg_types: Sequence[str], args: Sequence[Any]) -> bytes:
        data = selector + encode(list(arg_types), list(args)) if arg_types else selector
        payload = {
            "id": 1,
            "jsonrpc": "2.0",
            "method": "eth_call",
            "params": [{"to": self.contract_address, "data": "0x" + data.hex()}, "latest"],
        }
        response = self._post_json(payload)
        error = response.get("error")
        if error:
            message = error.get("message", "") if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            if code == _REVERT_CODE or "revert" in message.lower():
                raise ContractCallError(f"call reverted: {message}")
            raise RpcError(f"eth_call error: {message}")
        result = response.get("result")
        if not result or result == "0x":
            raise ContractCallError("empty return data")
        return bytes.fromhex(result[2:] if result.startswith("0x") else result)

    def _call(self, selector: bytes, out_type: str, token_id: Optional[int] = None) -> Any:
        if token_id is None:
            raw = self._eth_call(selector, (), ())
        else:
            raw = self._eth_call(selector, ("uint256",), (token_id,))
        try:
            (value,) = decode([out_type], raw)
        except (DecodingError, ValueError) as exc:
            raise ContractCallError(f"cannot decode {out_type} return data") from exc
        return value

    def total_supply(self) -> int:
        return self._call(TOTAL_SUPPLY, "uint256")

    def token_uri(self, token_id: int) -> str:
        return self._call(TOKEN_URI, "string", token_id)

    def uri(self, token_id: int) -> str:
        return self._call(URI, "string", token_id)

    def owner_of(self, token_id: int) -> str:
        return to_checksum_address(self._call(OWNER_OF, "address", token_id))
