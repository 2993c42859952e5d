"""Iteration bound discovery for a token collection."""

from __future__ import annotations

import logging
from dataclasses import dataclass


DEFAULT_FALLBACK_SUPPLY = 100

_LOGGER = logging.getLogger("nftprobe.supply")


@dataclass(frozen=True)
class SupplyBound:
    value: int
    is_fallback: bool = False


def discover_supply(client, fallback: int = DEFAULT_FALLBACK_SUPPLY) -> SupplyBound:
    """Return the exclusive upper bound for token index iteration.

    Uses the contract's ``totalSupply()``. Any failure degrades to ``fallback``,
    which only guesses at the collection size.
    """

    try:
        value = max(0, int(client.total_supply()))
    except Exception as exc:
        _LOGGER.warning(
            "totalSupply unavailable, scanning first %s token ids error=%s",
            fallback,
            exc,
        )
        return SupplyBound(value=fallback, is_fallback=True)
    _LOGGER.info("totalSupply=%s", value)
    return SupplyBound(value=value)
