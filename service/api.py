"""
EPCIS Event Hash Generator API Service

This FastAPI service exposes the event hash generator over HTTP.

Endpoints:
- POST /api/generate/event-hash/document - Hash every event of an EPCIS document (XML or JSON)
- POST /api/generate/event-hash/events - Hash a bare JSON array of events
- GET /health - Health check
- GET / - Root health check

Query parameters (both POST endpoints):
- hashAlgorithm: sha-1, sha-224, sha-256, sha-384, sha-512, sha3-224,
  sha3-256, sha3-384, sha3-512 or md5 (default sha-256)
- prehash: also return the pre-hash string of each event
- beautifyPreHash: join pre-hash lines with newlines
- ignoreFields: comma-separated fields to exclude from the pre-hash
- cbvVersion: 2.0.0 or 2.1.0
"""

import io
import logging
import os
from typing import Any, Dict, Iterator, List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from epcis.constants import PREHASH
from epcis.context import HashContext
from epcis.document_wrapper import wrapped_document
from epcis.exceptions import (
    ConfigurationError,
    DocumentParseError,
    DocumentStructureError,
    EventFormatError,
    EventHashError,
)
from epcis.hash_event import EventHashGenerator

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_ALGORITHM = os.getenv("EPCIS_HASH_ALGORITHM", "sha-256")
CORS_ORIGINS = [o.strip() for o in os.getenv("EPCIS_HASH_CORS_ORIGINS", "*").split(",") if o.strip()]
SERVICE_NAME = "EPCIS Event Hash Generator API"
SERVICE_VERSION = "0.1.0"

app = FastAPI(
    title=SERVICE_NAME,
    description="Generate GS1 event hash identifiers for EPCIS 2.0 events in XML or JSON-LD",
    version=SERVICE_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class HealthResponse(BaseModel):
    """Health check response."""
    service: str
    status: str
    version: str


def build_context(ignore_fields: Optional[str], cbv_version: str, beautify: bool) -> HashContext:
    context = HashContext().with_cbv_version(cbv_version).with_excluded_fields(ignore_fields)
    return context.with_prehash_join("\\n") if beautify else context


def _outputs(algorithm: str, prehash: bool) -> List[str]:
    return [PREHASH, algorithm] if prehash else [algorithm]


def _respond(results: Iterator[Dict[str, str]], request: Request):
    """Collect results; text/plain clients get one value per line."""
    try:
        collected = list(results)
    except (DocumentParseError, DocumentStructureError, ConfigurationError) as e:
        logger.error("Rejected EPCIS input: %s", e)
        raise HTTPException(status_code=400, detail=str(e))
    except EventFormatError as e:
        logger.error("Unable to canonicalise event: %s", e)
        raise HTTPException(status_code=422, detail=str(e))
    except EventHashError as e:
        logger.error("Event hash generation failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))

    if "text/plain" in request.headers.get("accept", ""):
        lines = [value for result in collected for value in result.values()]
        return PlainTextResponse("\n".join(lines))
    return collected


@app.get("/", response_model=dict)
async def root():
    """Root health check endpoint."""
    return {
        "service": SERVICE_NAME,
        "status": "operational",
        "version": SERVICE_VERSION,
        "endpoints": [
            "GET /health",
            "POST /api/generate/event-hash/document",
            "POST /api/generate/event-hash/events",
        ],
    }


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return {"service": SERVICE_NAME, "status": "healthy", "version": SERVICE_VERSION}


@app.post("/api/generate/event-hash/document", response_model=List[Dict[str, str]])
async def generate_document_hashes(
    request: Request,
    hash_algorithm: str = Query(DEFAULT_ALGORITHM, alias="hashAlgorithm"),
    prehash: bool = Query(False),
    beautify_prehash: bool = Query(False, alias="beautifyPreHash"),
    ignore_fields: Optional[str] = Query(None, alias="ignoreFields"),
    cbv_version: str = Query("2.0.0", alias="cbvVersion"),
) -> Any:
    """
    Generate hash identifiers for all events of an EPCIS document.

    The body is parsed as XML when the Content-Type mentions xml, otherwise
    as JSON/JSON-LD.

    Returns:
        [
            {"prehash": "eventType=ObjectEvent...", "sha-256": "ni:///sha-256;...?ver=CBV2.0"},
            ...
        ]
    """
    try:
        generator = EventHashGenerator(build_context(ignore_fields, cbv_version, beautify_prehash))
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    body = io.BytesIO(await request.body())
    outputs = _outputs(hash_algorithm, prehash)
    if "xml" in request.headers.get("content-type", "").lower():
        results = generator.from_xml(body, *outputs)
    else:
        results = generator.from_json(body, *outputs)
    return _respond(results, request)


@app.post("/api/generate/event-hash/events", response_model=List[Dict[str, str]])
async def generate_event_list_hashes(
    request: Request,
    hash_algorithm: str = Query(DEFAULT_ALGORITHM, alias="hashAlgorithm"),
    prehash: bool = Query(False),
    beautify_prehash: bool = Query(False, alias="beautifyPreHash"),
    ignore_fields: Optional[str] = Query(None, alias="ignoreFields"),
    cbv_version: str = Query("2.0.0", alias="cbvVersion"),
) -> Any:
    """
    Generate hash identifiers for a JSON array of EPCIS events.

    The array is wrapped into an EPCISDocument before hashing.
    """
    try:
        generator = EventHashGenerator(build_context(ignore_fields, cbv_version, beautify_prehash))
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    document = wrapped_document(io.BytesIO(await request.body()))
    results = generator.from_json(document, *_outputs(hash_algorithm, prehash))
    return _respond(results, request)


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        app,
        host=os.getenv("EPCIS_HASH_HOST", "0.0.0.0"),
        port=int(os.getenv("EPCIS_HASH_PORT", "8080")),
    )
