"""
FastAPI Application - Binance Funding Board API

Serves the funding board to the browser view: the top USDT-margined
perpetuals by absolute funding rate, with open-interest trends and
long/short ratios, refreshed every 30 seconds in the background.

Usage:
    uvicorn app.main:app --reload --host 0.0.0.0 --port 8000

Docs:
    - Swagger: http://localhost:8000/docs
    - ReDoc: http://localhost:8000/redoc
"""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from core.config import settings, validate_configuration
from core.exceptions import ExchangeError
from core.logging import logger
from core.schemas import FundingBoard
from services.event_bus import BOARD_TOPIC, bus
from services.formatter import format_board
from services.funding_monitor import get_funding_monitor


# ============================================
# Lifespan Management
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    logger.info("=== Application Starting ===")
    try:
        validate_configuration()
        await get_funding_monitor().start()
        logger.info("=== Started Successfully ===")
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise

    yield

    logger.info("=== Shutting Down ===")
    try:
        await get_funding_monitor().stop()
        logger.info("=== Shutdown Complete ===")
    except Exception as e:
        logger.error(f"Shutdown error: {e}")


# ============================================
# FastAPI Application
# ============================================

app = FastAPI(
    title="Binance Funding Board API",
    description=(
        "Near-real-time funding rates, open-interest trends and long/short ratios "
        "for the top Binance USDT-margined perpetuals.\n\n"
        "## REST Endpoints\n"
        "- `GET /funding` - Current board (records + loading/error flags)\n"
        "- `GET /funding/table` - Display-ready rows\n"
        "- `POST /funding/refresh` - Run a cycle now (skipped if one is running)\n"
        "- `GET /health` - Health check\n\n"
        "## WebSocket\n"
        "- `ws://{host}/ws/funding` - Current board, then every new board\n\n"
        "Non-finite numbers are sent as the JSON constants NaN / Infinity."
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)


def _board_response(board: FundingBoard) -> Response:
    # Pydantic keeps NaN/Infinity as JSON constants; Starlette's JSONResponse would reject them
    return Response(content=board.model_dump_json(), media_type="application/json")


# ============================================
# System Endpoints
# ============================================

@app.get("/", tags=["System"])
async def root():
    """API information."""
    return {
        "name": "Binance Funding Board API",
        "version": "1.0.0",
        "status": "operational",
        "docs": "/docs",
        "refresh_interval_seconds": settings.refresh_interval_seconds,
        "top_n": settings.top_n
    }


@app.get("/health", tags=["System"])
async def health_check():
    """Health check - pings Binance and reports the monitor state."""
    monitor = get_funding_monitor()
    try:
        exchange_ok = await monitor.ping_exchange()
    except ExchangeError as e:
        logger.warning(f"Binance ping failed: {e}")
        exchange_ok = False

    return {
        "status": "healthy" if exchange_ok and monitor.board.error is None else "degraded",
        "exchange": exchange_ok,
        "monitor": {
            "running": monitor.running,
            "busy": monitor.busy,
            "cycle": monitor.board.cycle,
            "skipped_cycles": monitor.skipped_cycles,
            "last_error": monitor.board.error
        }
    }


# ============================================
# Funding Board Endpoints
# ============================================

@app.get("/funding", tags=["Funding"])
async def get_funding_board():
    """
    Current funding board.

    Returns the ordered records (at most 10) with the loading/error flags.
    After a failed cycle the previous records are kept and `error` is set.
    """
    return _board_response(get_funding_monitor().board)


@app.get("/funding/table", tags=["Funding"])
async def get_funding_table():
    """Display-ready rows for the current board."""
    board = get_funding_monitor().board
    try:
        rows = format_board(board.records)
    except Exception as e:
        logger.error(f"Failed to format funding table: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to format funding table: {str(e)}")
    return {
        "loading": board.loading,
        "error": board.error,
        "updated_at": board.updated_at.isoformat() if board.updated_at else None,
        "rows": [row.model_dump(mode="json") for row in rows]
    }


@app.post("/funding/refresh", tags=["Funding"])
async def refresh_funding_board():
    """
    Run a refresh cycle immediately.

    If a cycle is already in flight the request is skipped and the current
    board is returned with `triggered: false`.
    """
    monitor = get_funding_monitor()
    try:
        triggered = await monitor.refresh()
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))

    payload = '{"triggered": %s, "board": %s}' % (
        "true" if triggered else "false",
        monitor.board.model_dump_json()
    )
    return Response(content=payload, media_type="application/json")


# ============================================
# WebSocket Stream
# ============================================

async def _wait_for_disconnect(websocket: WebSocket) -> None:
    # Clients only listen; text they send is ignored, anything else ends the stream
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        return
    except Exception as e:
        logger.warning(f"WS unexpected client message on funding: {e!r}")
        try:
            await websocket.close(code=1003, reason="Text frames only")
        except RuntimeError:
            pass


@app.websocket("/ws/funding")
async def websocket_funding(websocket: WebSocket):
    """
    Push the funding board to the client after every refresh cycle.

    The first message is the current board.

    Example:
        ws://localhost:8000/ws/funding
    """
    await websocket.accept()
    logger.info("WS connected: funding")
    queue = await bus.subscribe(BOARD_TOPIC)
    watcher = asyncio.create_task(_wait_for_disconnect(websocket))
    try:
        await websocket.send_text(get_funding_monitor().board.model_dump_json())
        while True:
            getter = asyncio.create_task(queue.get())
            await asyncio.wait({getter, watcher}, return_when=asyncio.FIRST_COMPLETED)
            if not getter.done():
                getter.cancel()
                logger.info("WS disconnected: funding")
                break
            await websocket.send_text(getter.result().model_dump_json())
    except WebSocketDisconnect:
        logger.info("WS disconnected: funding")
    except Exception as e:
        logger.error(f"WS error funding: {e}")
        try:
            await websocket.close(code=1011, reason="Internal error")
        except RuntimeError:
            pass
    finally:
        watcher.cancel()
        await bus.unsubscribe(BOARD_TOPIC, queue)
        logger.info("WS ended: funding")


# ============================================
# Error Handlers
# ============================================

@app.exception_handler(404)
async def not_found_handler(request, exc):
    """Handle 404 errors."""
    return JSONResponse(status_code=404, content={"detail": "Not found", "path": str(request.url)})


@app.exception_handler(500)
async def internal_error_handler(request, exc):
    """Handle 500 errors."""
    logger.error(f"Internal error: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
