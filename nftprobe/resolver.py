"""Per-token resolution across the ERC-721 and ERC-1155 interfaces."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .metadata import IPFS_GATEWAY, expand_id_template, normalize_uri
from .models import NO_SINGLE_OWNER, MetadataDocument, TokenRecord
from .rpc import ContractCallError


RESOLVED = "resolved"
NOT_FOUND = "not_found"
ERRORED = "error"

_LOGGER = logging.getLogger("nftprobe.resolver")

MetadataFetch = Callable[[str], Optional[MetadataDocument]]


@dataclass(frozen=True)
class Outcome:
    """Result of one remote call: a value, or the error that replaced it."""

    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def attempt(call: Callable[..., Any], *args: Any) -> Outcome:
    try:
        return Outcome(value=call(*args))
    except Exception as exc:
        return Outcome(error=exc)


@dataclass(frozen=True)
class TokenResolution:
    token_id: int
    status: str
    record: Optional[TokenRecord] = None


def _primary(client, token_id: int) -> Outcome:
    # tokenURI and ownerOf succeed or fail together.
    uri = attempt(client.token_uri, token_id)
    if not uri.ok:
        return uri
    owner = attempt(client.owner_of, token_id)
    if not owner.ok:
        return owner
    return Outcome(value=(uri.value, owner.value))


def _fallback(client, token_id: int, expand_template: bool) -> Outcome:
    uri = attempt(client.uri, token_id)
    if not uri.ok:
        return uri
    value = expand_id_template(uri.value, token_id) if expand_template else uri.value
    return Outcome(value=(value, NO_SINGLE_OWNER))


def _absent_status(*outcomes: Outcome) -> str:
    if all(isinstance(outcome.error, ContractCallError) for outcome in outcomes):
        return NOT_FOUND
    return ERRORED


def resolve(
    client,
    token_id: int,
    fetch_metadata: MetadataFetch,
    gateway: str = IPFS_GATEWAY,
    expand_template: bool = False,
) -> TokenResolution:
    """Resolve one token index into a record, or an absent resolution.

    Never raises: remote failures select the next interface, and anything
    unexpected while assembling the record drops the token.
    """

    primary = _primary(client, token_id)
    if primary.ok:
        chosen = primary
    else:
        fallback = _fallback(client, token_id, expand_template)
        if not fallback.ok:
            status = _absent_status(primary, fallback)
            _LOGGER.debug(
                "token unavailable token_id=%s status=%s primary=%s fallback=%s",
                token_id,
                status,
                primary.error,
                fallback.error,
            )
            return TokenResolution(token_id=token_id, status=status)
        chosen = fallback

    raw_uri, owner = chosen.value
    try:
        token_uri = normalize_uri(str(raw_uri), gateway)
        metadata = fetch_metadata(token_uri)
    except Exception:
        _LOGGER.exception("error processing token token_id=%s", token_id)
        return TokenResolution(token_id=token_id, status=ERRORED)

    record = TokenRecord(token_id=token_id, owner=owner, token_uri=token_uri, metadata=metadata)
    return TokenResolution(token_id=token_id, status=RESOLVED, record=record)
