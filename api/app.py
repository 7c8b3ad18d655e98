import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.routes import router
from services.catalog_loader import get_catalog
from services.errors import (
    ConfigError, FarmError, LedgerError, PersistenceError, ValidationError,
)

logger = logging.getLogger(__name__)


def create_app(user_service=None, voucher_service=None, shop_service=None, catalog=None) -> FastAPI:
    """FastAPI app factory. Services default to the database-backed ones."""
    app = FastAPI(title="Zeta Farm API", version="1.0", redoc_url=None)

    catalog = catalog or get_catalog()
    if user_service is None:
        from services.user_service import UserService
        user_service = UserService(catalog)
    if voucher_service is None:
        from services.voucher_service import VoucherService
        voucher_service = VoucherService(catalog, user_service=user_service)
    if shop_service is None:
        from services.shop_service import ShopService
        shop_service = ShopService(catalog, user_service=user_service)

    app.state.catalog = catalog
    app.state.user_service = user_service
    app.state.voucher_service = voucher_service
    app.state.shop_service = shop_service

    app.include_router(router)
    _install_error_handlers(app)
    return app


def _error(status_code, error, message):
    return JSONResponse(status_code=status_code, content={"success": False, "error": error, "message": message})


def _install_error_handlers(app: FastAPI):
    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError):
        logger.info(f"[API] {request.url.path} rejected: {exc}")
        return _error(400, "Validation failed", str(exc))

    @app.exception_handler(PersistenceError)
    async def persistence_error(request: Request, exc: PersistenceError):
        logger.error(f"[API] {request.url.path} persistence error: {exc}")
        if exc.conflict:
            return _error(409, "Conflict", "The farm was updated concurrently, retry")
        return _error(503, "Store unavailable", str(exc))

    @app.exception_handler(LedgerError)
    async def ledger_error(request: Request, exc: LedgerError):
        logger.error(f"[API] {request.url.path} ledger error: {exc}")
        return _error(503, "Ledger unavailable", str(exc))

    @app.exception_handler(ConfigError)
    async def config_error(request: Request, exc: ConfigError):
        logger.error(f"[API] {request.url.path} config error: {exc}")
        return _error(500, "Configuration error", str(exc))

    @app.exception_handler(FarmError)
    async def farm_error(request: Request, exc: FarmError):
        logger.error(f"[API] {request.url.path} error: {exc}")
        return _error(500, "Internal server error", str(exc))
