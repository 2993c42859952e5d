"""CLI for nftprobe."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .collection import DEFAULT_BATCH_SIZE, ScanConfig, get_collection_metadata
from .metadata import IPFS_GATEWAY
from .models import record_to_dict
from .report import DEFAULT_OUTPUT, render_report, write_json
from .rpc import RpcError, resolve_endpoint
from .supply import DEFAULT_FALLBACK_SUPPLY


DEFAULT_CONTRACT = "0xBC4CA0EdA7647A8aB7C2061c2E118A18a936f13D"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="nftprobe")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser("collection", help="Fetch token metadata for an NFT collection")
    scan_parser.add_argument("--contract", default=DEFAULT_CONTRACT, help="Collection contract address")
    scan_parser.add_argument("--endpoint", help="Override RPC endpoint URL")
    scan_parser.add_argument(
        "--notes-path",
        default=".notes/notes.txt",
        help="Path to notes file containing the RPC endpoint",
    )
    scan_parser.add_argument("--timeout", type=int, default=10, help="Request timeout in seconds")
    scan_parser.add_argument(
        "--batch-size",
        type=int,
        default=DEFAULT_BATCH_SIZE,
        help="Tokens resolved concurrently per window",
    )
    scan_parser.add_argument(
        "--fallback-supply",
        type=int,
        default=DEFAULT_FALLBACK_SUPPLY,
        help="Token ids to scan when totalSupply is unavailable",
    )
    scan_parser.add_argument("--gateway", default=IPFS_GATEWAY, help="HTTP gateway for ipfs:// URIs")
    scan_parser.add_argument(
        "--expand-id-template",
        action="store_true",
        help="Substitute {id} in ERC-1155 URIs",
    )
    scan_parser.add_argument("--output", default=DEFAULT_OUTPUT, help="JSON output path")
    scan_parser.add_argument("--no-save", action="store_true", help="Skip writing the JSON file")
    scan_parser.add_argument(
        "--json",
        action="store_true",
        help="Print records as JSON instead of the text report",
    )

    return parser


def _run_collection(args: argparse.Namespace) -> int:
    try:
        config = ScanConfig(
            contract_address=args.contract,
            endpoint=resolve_endpoint(args.endpoint, args.notes_path),
            batch_size=args.batch_size,
            fallback_supply=args.fallback_supply,
            timeout=args.timeout,
            ipfs_gateway=args.gateway,
            expand_id_template=args.expand_id_template,
        )
        if not args.json:
            print(f"Fetching NFTs from contract: {config.contract_address}")
        result = get_collection_metadata(config)
    except (FileNotFoundError, ValueError, RpcError) as exc:
        print(f"Error fetching NFT metadata: {exc}", file=sys.stderr)
        return 1

    if not result.records:
        print("[]" if args.json else "No NFTs found")
        return 0

    if args.json:
        print(json.dumps([record_to_dict(record) for record in result.records], indent=2))
    else:
        print()
        print(render_report(result.records))
    if not args.no_save:
        write_json(Path(args.output), result.records)
        if not args.json:
            print(f"\nMetadata saved to {args.output}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    if args.command == "collection":
        return _run_collection(args)

    parser.error("Unknown command")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
