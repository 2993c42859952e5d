"""Console rendering and JSON output for scanned token records."""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Sequence

from .models import TokenRecord, record_to_dict


DEFAULT_OUTPUT = "nft-metadata.json"


def render_report(records: Sequence[TokenRecord]) -> str:
    lines: List[str] = ["NFT Collection Details:", f"Total NFTs found: {len(records)}"]
    for position, record in enumerate(records, 1):
        lines.append("")
        lines.append(f"--- NFT #{position} ---")
        lines.append(f"Token ID: {record.token_id}")
        lines.append(f"Owner: {record.owner}")
        lines.append(f"Token URI: {record.token_uri}")
        metadata = record.metadata
        if metadata is None:
            continue
        lines.append("Metadata:")
        lines.append(f"  Name: {metadata.name or 'N/A'}")
        lines.append(f"  Description: {metadata.description or 'N/A'}")
        if metadata.attributes:
            lines.append("  Attributes:")
            for attr in metadata.attributes:
                lines.append(f"    {attr.trait_type}: {attr.value}")
        if metadata.image:
            lines.append(f"  Image: {metadata.image}")
    return "\n".join(lines)


def write_json(path: Path, records: Sequence[TokenRecord]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = [record_to_dict(record) for record in records]
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
