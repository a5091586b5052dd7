"""
Server - Video Scraper

FastAPI application exposing extraction, relay and proxy-relay endpoints.

Usage:
    python run.py
"""

import asyncio
import logging
from typing import Awaitable, Dict, Optional, TypeVar

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel
from starlette.background import BackgroundTask

from . import __version__, config
from .errors import InputError, ScraperError
from .extract_module.strategy_runner import StrategyRunner, build_runner
from .models import ExtractionRequest
from .relay import DirectRelay, MergeRelay, ProxyRelay

logger = logging.getLogger(__name__)

# nginx's "client closed request"; never actually seen by the client
CLIENT_CLOSED_REQUEST = 499

T = TypeVar('T')

app = FastAPI(title="Video Scraper", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=['*'],
    allow_headers=['*'],
    expose_headers=['Content-Disposition'],
)


# === Request bodies ===

class ExtractBody(BaseModel):
    url: Optional[str] = None
    debug: bool = False
    proxyEndpoint: Optional[str] = None
    filterUnplayable: bool = False


class ProxyRelayBody(BaseModel):
    targetUrl: Optional[str] = None
    method: str = 'GET'
    headers: Dict[str, str] = {}
    body: Optional[str] = None


# === Dependencies ===

_runner: Optional[StrategyRunner] = None


def get_runner() -> StrategyRunner:
    """Get or create the strategy runner singleton"""
    global _runner
    if _runner is None:
        _runner = build_runner()
    return _runner


def get_direct_relay() -> DirectRelay:
    return DirectRelay()


def get_merge_relay() -> MergeRelay:
    return MergeRelay()


def get_proxy_relay() -> ProxyRelay:
    return ProxyRelay()


async def run_until_disconnected(request: Request, work: Awaitable[T],
                                 poll_interval: float = config.DISCONNECT_POLL_INTERVAL) -> Optional[T]:
    """
    Await work, cancelling it if the client goes away first.

    Returns:
        The work's result, or None when the client disconnected
    """
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info(f"Client disconnected, cancelling {request.url.path}")
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
                return None
    finally:
        if not task.done():
            task.cancel()


# === Error handling ===

@app.exception_handler(ScraperError)
async def scraper_error_handler(request: Request, exc: ScraperError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and query strings answer like any other bad input."""
    problems = '; '.join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    )
    logger.info(f"Rejected malformed request to {request.url.path}: {problems}")
    error = InputError(f"Malformed request: {problems}")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# === Routes ===

@app.get('/api/health')
async def health():
    return {'status': 'ok'}


@app.post('/api/extract')
async def extract(body: ExtractBody, request: Request,
                  runner: StrategyRunner = Depends(get_runner)):
    """Find downloadable video URLs on a page."""
    extraction = ExtractionRequest(
        url=(body.url or '').strip(),
        debug=body.debug,
        proxy=body.proxyEndpoint or None,
        filter_unplayable=body.filterUnplayable,
    )

    result = await run_until_disconnected(request, runner.run(extraction))
    if result is None:
        return Response(status_code=CLIENT_CLOSED_REQUEST)
    return result.to_dict()


@app.get('/api/relay')
async def relay(sourceUrl: Optional[str] = None, filename: Optional[str] = None,
                audioUrl: Optional[str] = None,
                direct: DirectRelay = Depends(get_direct_relay),
                merge: MergeRelay = Depends(get_merge_relay)):
    """Stream a chosen source to the caller as an attachment."""
    if audioUrl:
        stream = await merge.open(sourceUrl, audioUrl, filename)
    else:
        stream = await direct.open(sourceUrl, filename)

    # The close task also covers a body that is never iterated
    return StreamingResponse(stream.body, media_type=stream.content_type,
                             headers=stream.headers,
                             background=BackgroundTask(stream.close))


@app.post('/api/proxy-relay')
async def proxy_relay(body: ProxyRelayBody,
                      proxy: ProxyRelay = Depends(get_proxy_relay)):
    """Forward a request server-side and return the body as text."""
    upstream = await proxy.forward(body.targetUrl, body.method, body.headers, body.body)
    return Response(content=upstream.text, status_code=upstream.status,
                    media_type=upstream.content_type)


def main():
    """Start the HTTP server"""
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    )
    logger.info(f"Starting Video Scraper on {config.HOST}:{config.PORT}")
    uvicorn.run(app, host=config.HOST, port=config.PORT)


if __name__ == '__main__':
    main()
