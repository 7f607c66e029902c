"""
Teller API Application Factory

REST front-end for the ledger and credential stores. Runs on port 8090.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import uvicorn

from .accounts import router as accounts_router
from .users import router as users_router
from ..config import get_config
from ..errors import BankingError, ErrorKind
from ..logging_config import setup_logging
from .. import __version__


ERROR_STATUS = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.DUPLICATE_ACCOUNT: 409,
    ErrorKind.DUPLICATE_USERNAME: 409,
    ErrorKind.ACCOUNT_NOT_FOUND: 404,
    ErrorKind.INSUFFICIENT_FUNDS: 400,
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.PERSISTENCE_FAILURE: 500,
}


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    config = get_config()
    setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)

    app = FastAPI(
        title="Teller API",
        description="Account ledger with deposits, withdrawals and transaction history",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    @app.exception_handler(BankingError)
    async def banking_error_handler(request: Request, exc: BankingError):
        return JSONResponse(
            status_code=ERROR_STATUS.get(exc.kind, 400),
            content={"error": exc.kind.value, "detail": exc.message}
        )

    app.include_router(users_router, prefix="/auth", tags=["Auth"])
    app.include_router(accounts_router, prefix="/accounts", tags=["Accounts"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "teller_api",
            "version": __version__
        }

    return app


app = create_app()


def run_server(host: str = "0.0.0.0", port: int = 8090, debug: bool = False):
    """Run the FastAPI server"""
    uvicorn.run(
        "teller.api:app",
        host=host,
        port=port,
        reload=debug,
        log_level="info"
    )
