"""Batched enumeration of a token collection."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

import requests
from eth_utils import is_address

from .metadata import IPFS_GATEWAY, MetadataFetcher
from .models import TokenRecord
from .resolver import ERRORED, NOT_FOUND, RESOLVED, MetadataFetch, TokenResolution, resolve
from .rpc import ContractClient, build_session
from .supply import DEFAULT_FALLBACK_SUPPLY, discover_supply


DEFAULT_BATCH_SIZE = 10

_LOGGER = logging.getLogger("nftprobe.collection")


@dataclass(frozen=True)
class ScanConfig:
    contract_address: str
    endpoint: str
    batch_size: int = DEFAULT_BATCH_SIZE
    fallback_supply: int = DEFAULT_FALLBACK_SUPPLY
    timeout: int = 10
    ipfs_gateway: str = IPFS_GATEWAY
    expand_id_template: bool = False

    def __post_init__(self) -> None:
        if not is_address(self.contract_address):
            raise ValueError(f"Invalid contract address: {self.contract_address!r}")
        if not self.endpoint:
            raise ValueError("RPC endpoint is required")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.fallback_supply < 0:
            raise ValueError(f"fallback_supply must be >= 0, got {self.fallback_supply}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {self.timeout}")


@dataclass
class ScanStats:
    attempted: int = 0
    resolved: int = 0
    not_found: int = 0
    errored: int = 0
    metadata_missing: int = 0

    def add(self, resolution: TokenResolution) -> None:
        self.attempted += 1
        if resolution.status == RESOLVED:
            self.resolved += 1
            if resolution.record is not None and resolution.record.metadata is None:
                self.metadata_missing += 1
        elif resolution.status == NOT_FOUND:
            self.not_found += 1
        else:
            self.errored += 1


@dataclass
class ScanResult:
    records: List[TokenRecord]
    supply: int
    supply_is_fallback: bool = False
    stats: ScanStats = field(default_factory=ScanStats)


def windows(total: int, width: int) -> Iterator[Tuple[int, int]]:
    for start in range(0, total, width):
        yield start, min(start + width, total)


def _resolve_isolated(client, token_id, fetch_metadata, gateway, expand_template) -> TokenResolution:
    try:
        return resolve(client, token_id, fetch_metadata, gateway, expand_template)
    except Exception:
        _LOGGER.exception("unhandled error resolving token_id=%s", token_id)
        return TokenResolution(token_id=token_id, status=ERRORED)


def scan_collection(
    client,
    fetch_metadata: MetadataFetch,
    batch_size: int = DEFAULT_BATCH_SIZE,
    fallback_supply: int = DEFAULT_FALLBACK_SUPPLY,
    gateway: str = IPFS_GATEWAY,
    expand_template: bool = False,
) -> ScanResult:
    """Resolve every token index below the discovered supply.

    Indices are processed in windows of ``batch_size``; each window is fanned
    out to a thread pool and fully joined before the next one starts, so at
    most ``batch_size`` resolutions are ever in flight.
    """

    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    bound = discover_supply(client, fallback=fallback_supply)
    _LOGGER.info("fetching metadata for %s tokens batch_size=%s", bound.value, batch_size)

    result = ScanResult(records=[], supply=bound.value, supply_is_fallback=bound.is_fallback)
    with ThreadPoolExecutor(max_workers=batch_size, thread_name_prefix="nftprobe") as executor:
        for start, end in windows(bound.value, batch_size):
            futures = [
                executor.submit(_resolve_isolated, client, token_id, fetch_metadata, gateway, expand_template)
                for token_id in range(start, end)
            ]
            wait(futures)
            for future in futures:
                resolution = future.result()
                result.stats.add(resolution)
                if resolution.record is not None:
                    result.records.append(resolution.record)
            _LOGGER.info("processed tokens %s to %s", start, end - 1)

    _LOGGER.info(
        "scan complete supply=%s resolved=%s not_found=%s errored=%s metadata_missing=%s",
        result.supply,
        result.stats.resolved,
        result.stats.not_found,
        result.stats.errored,
        result.stats.metadata_missing,
    )
    return result


def get_collection_metadata(config: ScanConfig, session: Optional[requests.Session] = None) -> ScanResult:
    """Build the contract client and metadata fetcher from ``config`` and run a scan."""

    owns_session = session is None
    if owns_session:
        session = build_session(config.batch_size)
    try:
        client = ContractClient(
            endpoint=config.endpoint,
            contract_address=config.contract_address,
            timeout=config.timeout,
            session=session,
        )
        fetcher = MetadataFetcher(session=session, timeout=config.timeout)
        return scan_collection(
            client,
            fetcher.fetch,
            batch_size=config.batch_size,
            fallback_supply=config.fallback_supply,
            gateway=config.ipfs_gateway,
            expand_template=config.expand_id_template,
        )
    finally:
        if owns_session:
            session.close()
