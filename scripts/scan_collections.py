#!/usr/bin/env python3
"""Scan token metadata for every collection contract listed in a file."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import List

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from nftprobe.collection import DEFAULT_BATCH_SIZE, ScanConfig, ScanResult, get_collection_metadata
from nftprobe.models import record_to_dict
from nftprobe.rpc import RpcError, resolve_endpoint
from nftprobe.supply import DEFAULT_FALLBACK_SUPPLY


def _read_addresses(path: Path) -> List[str]:
    addresses = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        addresses.append(line)
    return addresses


def _payload(address: str, result: ScanResult) -> dict:
    return {
        "contract": address,
        "supply": result.supply,
        "supply_is_fallback": result.supply_is_fallback,
        "stats": asdict(result.stats),
        "tokens": [record_to_dict(record) for record in result.records],
    }


def _write_json(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")


def main() -> int:
    parser = argparse.ArgumentParser(description="Scan NFT collection metadata for a list of contracts.")
    parser.add_argument("addresses_path", help="Text file with one contract address per line.")
    parser.add_argument(
        "--output-dir",
        default="data/collections",
        help="Directory for per-contract JSON output.",
    )
    parser.add_argument("--timeout", type=int, default=10, help="Request timeout.")
    parser.add_argument("--batch-size", type=int, default=DEFAULT_BATCH_SIZE, help="Tokens per window.")
    parser.add_argument(
        "--fallback-supply",
        type=int,
        default=DEFAULT_FALLBACK_SUPPLY,
        help="Token ids to scan when totalSupply is unavailable.",
    )
    parser.add_argument(
        "--notes-path",
        default=".notes/notes.txt",
        help="Notes file that includes the Alchemy endpoint.",
    )
    parser.add_argument(
        "--endpoint",
        default=None,
        help="Override RPC endpoint (optional).",
    )
    args = parser.parse_args()

    endpoint = resolve_endpoint(args.endpoint, args.notes_path)
    addresses = _read_addresses(Path(args.addresses_path))
    if not addresses:
        raise SystemExit("No addresses found to process.")

    output_dir = Path(args.output_dir)
    failures = 0
    for address in addresses:
        try:
            config = ScanConfig(
                contract_address=address,
                endpoint=endpoint,
                batch_size=args.batch_size,
                fallback_supply=args.fallback_supply,
                timeout=args.timeout,
            )
            result = get_collection_metadata(config)
        except (ValueError, RpcError) as exc:
            failures += 1
            print(f"Failed {address}: {exc}", file=sys.stderr)
            continue
        out_path = output_dir / f"{address.lower()}.json"
        _write_json(out_path, _payload(address, result))
        print(f"Wrote {out_path} ({len(result.records)} tokens)")
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
