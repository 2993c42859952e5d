"""Token records and metadata documents produced by a collection scan."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Tuple, Union


# ERC-1155 has no single-owner accessor.
NO_SINGLE_OWNER = "ERC1155_Token"


@dataclass(frozen=True)
class Attribute:
    trait_type: str
    value: Union[str, int, float, None]


@dataclass(frozen=True)
class MetadataDocument:
    """Best-effort view of an off-chain metadata JSON object.

    ``raw`` is a read-only copy of the document as retrieved; the named fields are
    extracted when present and left as ``None`` otherwise.
    """

    raw: Mapping[str, Any] = field(hash=False)
    name: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    attributes: Tuple[Attribute, ...] = field(default_factory=tuple)

    @classmethod
    def from_json(cls, payload: Any) -> Optional["MetadataDocument"]:
        if not isinstance(payload, dict):
            return None
        return cls(
            raw=MappingProxyType(copy.deepcopy(payload)),
            name=_text(payload.get("name")),
            description=_text(payload.get("description")),
            image=_text(payload.get("image") or payload.get("image_url")),
            attributes=_attributes(payload.get("attributes")),
        )


@dataclass(frozen=True)
class TokenRecord:
    token_id: int
    owner: str
    token_uri: str
    metadata: Optional[MetadataDocument] = None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return str(value)


def _attributes(value: Any) -> Tuple[Attribute, ...]:
    if not isinstance(value, list):
        return ()
    items: List[Attribute] = []
    for item in value:
        if not isinstance(item, dict):
            continue
        trait = item.get("trait_type", item.get("trait"))
        raw_value = item.get("value")
        if isinstance(raw_value, bool) or not isinstance(raw_value, (str, int, float)):
            raw_value = _text(raw_value)
        items.append(Attribute(trait_type=_text(trait) or "", value=raw_value))
    return tuple(items)


def record_to_dict(record: TokenRecord) -> dict:
    return {
        "tokenId": str(record.token_id),
        "owner": record.owner,
        "tokenURI": record.token_uri,
        "metadata": copy.deepcopy(dict(record.metadata.raw)) if record.metadata else None,
    }
