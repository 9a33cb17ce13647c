"""
Main application entry point for the Faucet Service.

This module defines the FastAPI application and the endpoints that bootstrap
accounts on-chain: ``/drip`` calls the faucet contract, ``/register`` sends a
small native transfer and ``/send`` mints faucet tokens. Every endpoint hands
the request to the shared FaucetService and maps its typed outcome to an
HTTP response.
"""

import time
from contextlib import asynccontextmanager
from typing import Awaitable, Optional

import structlog
from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from faucet.config import get_settings
from faucet.database import Base, engine, get_db
from faucet.errors import ConfigurationError, SerializerStateError
from faucet.logging_config import setup_logging
from faucet.models import DripRecord
from faucet.outcomes import Failure, Pending, RateLimited, ResourceExhausted, Success, TransactionOutcome
from faucet.schemas import DripRequest, ErrorMessage, RegisterRequest, SendRequest, TxResponse
from faucet.service import FaucetService, get_faucet_service

logger = structlog.get_logger(__name__)

# Create tables
# In a production environment, we would use Alembic migrations instead of create_all.
Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    settings = get_settings()
    logger.info("service_listening", host=settings.host, port=settings.port)
    yield


app = FastAPI(title="Faucet Service", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["POST"],
    allow_headers=["Content-Type"],
)


@app.middleware("http")
async def log_failed_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    if response.status_code >= 400:
        logger.debug(
            "request_failed",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            client_addr=request.client.host if request.client else None,
            duration_ms=int((time.perf_counter() - started) * 1000),
        )
    return response


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    body = ErrorMessage(code=exc.status_code, message=str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.exception_handler(SerializerStateError)
@app.exception_handler(ConfigurationError)
async def internal_error_handler(request: Request, exc: Exception):
    logger.error("internal_error", path=request.url.path, error=str(exc), error_type=type(exc).__name__)
    body = ErrorMessage(code=500, message="internal server error")
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body.model_dump())


def client_ip(request: Request) -> Optional[str]:
    """
    Resolve the caller's IP address.

    The X-Forwarded-For header is honoured only when the direct peer is one
    of the configured trusted proxies.
    """
    peer = request.client.host if request.client else None
    forwarded = request.headers.get("x-forwarded-for")
    if peer in get_settings().trusted_proxy_ips and forwarded:
        return forwarded.split(",")[0].strip()
    return peer


async def run_core(route: str, call: Awaitable[TransactionOutcome]) -> TransactionOutcome:
    try:
        return await call
    except (SerializerStateError, ConfigurationError):
        raise
    except Exception as e:
        logger.info("request_error", route=route, error=str(e))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{route} error: {e}")


def record_outcome(
    db: Session,
    route: str,
    recipient: str,
    outcome: TransactionOutcome,
    ip: Optional[str] = None,
) -> None:
    """Write the ledger row. Blocking; the routes call it through the threadpool."""
    tx_hash = outcome.tx_hash if isinstance(outcome, (Success, Pending)) else None
    message = outcome.message if isinstance(outcome, Failure) else None
    logger.info("outcome", route=route, recipient=recipient, outcome=type(outcome).__name__, tx_hash=tx_hash)
    db.add(DripRecord(
        route=route,
        recipient=recipient,
        client_ip=ip,
        outcome=type(outcome).__name__,
        tx_hash=tx_hash,
        message=message,
    ))
    db.commit()


def outcome_response(outcome: TransactionOutcome) -> TxResponse:
    """
    Map an outcome to the response body, or raise the matching HTTP error.

    Rate limiting and an empty faucet are expected results, not failures of
    the service.
    """
    if isinstance(outcome, (Success, Pending)):
        return TxResponse(tx_hash=outcome.tx_hash)
    if isinstance(outcome, RateLimited):
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="too many requests")
    if isinstance(outcome, ResourceExhausted):
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="faucet empty")
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=outcome.message)


@app.post("/drip", response_model=TxResponse)
async def drip(
    request: DripRequest,
    http_request: Request,
    db: Session = Depends(get_db),
    service: FaucetService = Depends(get_faucet_service),
):
    """
    Drip funds to an address through the faucet contract.

    The contract enforces rate limits per key; the keys are the recipient
    address and the caller's IP. With ``wait`` (the default) the response
    is sent once the transaction is included, otherwise as soon as it is
    broadcast.
    """
    logger.debug("request_body", route="drip", body=str(request))

    ip = client_ip(http_request)
    if ip is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="could not resolve ip address")

    logger.info("drip_requested", address=request.address, ip=ip)
    outcome = await run_core("drip", service.drip(request.address, [request.address, ip], request.wait))
    await run_in_threadpool(record_outcome, db, "drip", request.address, outcome, ip)
    return outcome_response(outcome)


@app.post("/register", response_model=TxResponse)
async def register(
    request: RegisterRequest,
    db: Session = Depends(get_db),
    service: FaucetService = Depends(get_faucet_service),
):
    """Send a small native transfer so the address exists on-chain."""
    logger.debug("request_body", route="register", body=str(request))
    outcome = await run_core("register", service.register(request.address, request.wait))
    await run_in_threadpool(record_outcome, db, "register", request.address, outcome)
    return outcome_response(outcome)


@app.post("/send", response_model=TxResponse)
async def send(
    request: SendRequest,
    db: Session = Depends(get_db),
    service: FaucetService = Depends(get_faucet_service),
):
    logger.debug("request_body", route="send", body=str(request))
    outcome = await run_core("send", service.mint(request.address, request.wait))
    await run_in_threadpool(record_outcome, db, "send", request.address, outcome)
    return outcome_response(outcome)


@app.get("/health")
def health_check():
    return {"status": "healthy"}
