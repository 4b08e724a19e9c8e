from fastapi import FastAPI, HTTPException, Request, Depends, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
import structlog
import time
from contextlib import asynccontextmanager
from typing import List, Optional

from models import (
    AccountSnapshot,
    BatchRequest,
    BatchResponse,
    ErrorResponse,
    HealthResponse,
    ProcessingOutcome,
    Transaction,
)
from services import LedgerService, get_ledger_service
from exceptions import LedgerError
from config import Settings, get_settings, configure_logging

logger = structlog.get_logger()


def get_service(request: Request) -> LedgerService:
    return request.app.state.ledger


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    # Rate limiting
    limiter = Limiter(key_func=get_remote_address, enabled=settings.enable_rate_limiting)
    rate_limit = f"{settings.rate_limit_per_minute}/minute"

    # Application lifespan
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info("Starting Transaction Ledger", version=settings.app_version)
        yield
        # Shutdown
        logger.info("Shutting down Transaction Ledger")

    app = FastAPI(
        title=settings.app_name,
        description="Applies ordered deposit, withdrawal and dispute events to client accounts",
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # One ledger per application instance
    app.state.ledger = get_ledger_service()
    app.state.settings = settings

    # Add rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=settings.allowed_methods,
        allow_headers=settings.allowed_headers,
    )

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()

        logger.info(
            "Request started",
            method=request.method,
            url=str(request.url),
            client_ip=request.client.host if request.client else None
        )

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(
            "Request completed",
            method=request.method,
            url=str(request.url),
            status_code=response.status_code,
            process_time=round(process_time, 4)
        )

        return response

    # Health check endpoint
    @app.get(
        "/health",
        response_model=HealthResponse,
        summary="Health Check",
        description="Check service health and get ledger statistics"
    )
    async def health_check(service: LedgerService = Depends(get_service)):
        return await service.health()

    # Single transaction endpoint
    @app.post(
        "/transactions",
        response_model=ProcessingOutcome,
        status_code=status.HTTP_200_OK,
        summary="Process Transaction",
        description="Apply one transaction; invalid transactions are reported as rejected, not as errors",
        responses={
            200: {"description": "Transaction applied or rejected"},
            422: {"description": "Malformed transaction"},
            429: {"description": "Rate limit exceeded"},
            500: {"description": "Processing halted"}
        }
    )
    @limiter.limit(rate_limit)
    async def create_transaction(
        request: Request,
        transaction: Transaction,
        service: LedgerService = Depends(get_service)
    ):
        return await service.submit(transaction)

    # Batch endpoint
    @app.post(
        "/transactions/batch",
        response_model=BatchResponse,
        summary="Process Transactions",
        description="Apply transactions in list order as one uninterrupted run"
    )
    @limiter.limit(rate_limit)
    async def create_transactions(
        request: Request,
        batch: BatchRequest,
        service: LedgerService = Depends(get_service)
    ):
        if len(batch.transactions) > settings.max_batch_size:
            raise HTTPException(
                status_code=413,
                detail=f"Batch exceeds {settings.max_batch_size} transactions"
            )
        return await service.submit_batch(batch.transactions)

    @app.get(
        "/accounts",
        response_model=List[AccountSnapshot],
        summary="List Accounts",
        description="Current state of every account, ordered by client id"
    )
    async def list_accounts(service: LedgerService = Depends(get_service)):
        return await service.list_accounts()

    @app.get(
        "/accounts/{client}",
        response_model=AccountSnapshot,
        summary="Get Account",
        responses={404: {"description": "Account not found"}}
    )
    async def get_account(client: int, service: LedgerService = Depends(get_service)):
        account = await service.get_account(client)
        if account is None:
            raise HTTPException(
                status_code=404,
                detail="Account not found"
            )
        return account

    # Global exception handlers
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                detail=exc.detail,
                error_code=f"HTTP_{exc.status_code}"
            ).model_dump(mode="json")
        )

    @app.exception_handler(LedgerError)
    async def ledger_exception_handler(request: Request, exc: LedgerError):
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                detail=str(exc),
                error_code=exc.error_code
            ).model_dump(mode="json")
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception",
            error=str(exc),
            url=str(request.url),
            method=request.method,
            exc_info=True
        )

        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                detail="Internal server error",
                error_code="INTERNAL_ERROR"
            ).model_dump(mode="json")
        )

    # Root endpoint
    @app.get("/", include_in_schema=False)
    async def root():
        return {"message": settings.app_name, "docs": "/docs"}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
