from __future__ import annotations

import logging
import os
from dataclasses import asdict
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum
from pydantic import BaseModel, Field

from nftprobe.collection import DEFAULT_BATCH_SIZE, ScanConfig, get_collection_metadata
from nftprobe.metadata import IPFS_GATEWAY
from nftprobe.models import record_to_dict
from nftprobe.rpc import RpcError, _load_dotenv, resolve_endpoint
from nftprobe.supply import DEFAULT_FALLBACK_SUPPLY

PROJECT_ROOT = Path(__file__).resolve().parents[1]

_MAX_BATCH_SIZE = int(os.getenv("NFTPROBE_MAX_BATCH_SIZE", "25"))
_MAX_FALLBACK_SUPPLY = int(os.getenv("NFTPROBE_MAX_FALLBACK_SUPPLY", "1000"))
_LOGGER = logging.getLogger("nftprobe.api")
_LOGGER.setLevel(logging.INFO)


class CollectionRequest(BaseModel):
    contract_address: str = Field(
        description="Collection contract address to enumerate.",
    )
    endpoint: Optional[str] = Field(
        default=None,
        description="Override RPC endpoint for contract calls.",
    )
    notes_path: str = Field(
        default=str(PROJECT_ROOT / ".notes" / "notes.txt"),
        description="Notes path containing the default Alchemy endpoint.",
    )
    timeout: int = Field(
        default=10,
        description="Timeout in seconds for RPC and metadata requests.",
    )
    batch_size: int = Field(
        default=DEFAULT_BATCH_SIZE,
        description="Tokens resolved concurrently per window.",
    )
    fallback_supply: int = Field(
        default=DEFAULT_FALLBACK_SUPPLY,
        description="Token ids to scan when totalSupply is unavailable.",
    )
    ipfs_gateway: str = Field(
        default=IPFS_GATEWAY,
        description="HTTP gateway prefix used for ipfs:// URIs.",
    )
    expand_id_template: bool = Field(
        default=False,
        description="Substitute {id} in ERC-1155 URIs.",
    )


def _build_config(req: CollectionRequest) -> ScanConfig:
    if req.batch_size > _MAX_BATCH_SIZE:
        raise HTTPException(status_code=400, detail=f"batch_size exceeds {_MAX_BATCH_SIZE}.")
    if req.fallback_supply > _MAX_FALLBACK_SUPPLY:
        raise HTTPException(status_code=400, detail=f"fallback_supply exceeds {_MAX_FALLBACK_SUPPLY}.")
    try:
        return ScanConfig(
            contract_address=req.contract_address,
            endpoint=resolve_endpoint(req.endpoint, req.notes_path),
            batch_size=req.batch_size,
            fallback_supply=req.fallback_supply,
            timeout=req.timeout,
            ipfs_gateway=req.ipfs_gateway,
            expand_id_template=req.expand_id_template,
        )
    except (FileNotFoundError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


app = FastAPI(
    title="nftprobe API",
    version="0.1",
    root_path=os.getenv("NFTPROBE_ROOT_PATH", ""),
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_http_request(request, call_next):
    _LOGGER.info(
        "http request method=%s path=%s client=%s",
        request.method,
        request.url.path,
        request.client.host if request.client else "unknown",
    )
    response = await call_next(request)
    _LOGGER.info("http response status=%s path=%s", response.status_code, request.url.path)
    return response

_load_dotenv()


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/ping")
def ping() -> dict:
    return {"status": "ok"}


@app.post("/collection")
def collection(req: CollectionRequest) -> dict:
    _LOGGER.info(
        "collection start contract=%s batch_size=%s fallback_supply=%s",
        req.contract_address.lower(),
        req.batch_size,
        req.fallback_supply,
    )
    config = _build_config(req)
    try:
        result = get_collection_metadata(config)
    except (ValueError, RpcError) as exc:
        _LOGGER.exception("collection failed contract=%s", req.contract_address.lower())
        raise HTTPException(status_code=502, detail=f"Collection scan failed: {exc}") from exc
    _LOGGER.info(
        "collection complete contract=%s supply=%s count=%s",
        req.contract_address.lower(),
        result.supply,
        len(result.records),
    )
    return {
        "contract": req.contract_address,
        "supply": result.supply,
        "supply_is_fallback": result.supply_is_fallback,
        "stats": asdict(result.stats),
        "count": len(result.records),
        "tokens": [record_to_dict(record) for record in result.records],
    }


_MANGUM_HANDLER = Mangum(app)


def handler(event, context):
    request_context = event.get("requestContext", {}) if isinstance(event, dict) else {}
    http_ctx = request_context.get("http", {}) if isinstance(request_context, dict) else {}
    _LOGGER.info(
        "lambda event method=%s path=%s stage=%s source=%s",
        http_ctx.get("method"),
        event.get("rawPath") if isinstance(event, dict) else None,
        request_context.get("stage"),
        http_ctx.get("sourceIp"),
    )
    return _MANGUM_HANDLER(event, context)
