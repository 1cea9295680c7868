"""
Bank Ledger — FastAPI Application.

This is the entry point for the application.
All routers and the error handler are registered here.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bank_ledger.config import get_settings
from bank_ledger.exceptions import LedgerError
from bank_ledger.logging_config import setup_logging
from bank_ledger.api.health import router as health_router
from bank_ledger.api.users import router as users_router
from bank_ledger.api.accounts import router as accounts_router
from bank_ledger.api.transactions import router as transactions_router

settings = get_settings()

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Accounts, owners and an append-only transaction ledger",
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    """Render engine failures as {"error": {code, message, details}}."""
    logger.warning(
        "%s %s -> %s: %s",
        request.method, request.url.path, exc.error_code, exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Register routers
app.include_router(health_router)
app.include_router(users_router)
app.include_router(accounts_router)
app.include_router(transactions_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bank_ledger.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
