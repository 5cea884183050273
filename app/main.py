from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import structlog

from app.core.config import settings
from app.core.errors import CheckoutError, Conflict, Internal, InvalidInput
from app.core.logging import configure_logging
from app.db.session import create_db_and_tables

logger = structlog.get_logger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    create_db_and_tables()
    yield

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    lifespan=lifespan,
    description="Cart and checkout API for the bookshop"
)

def _error_response(error: CheckoutError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=jsonable_encoder(error.to_dict()))

@app.exception_handler(CheckoutError)
async def checkout_error_handler(request: Request, exc: CheckoutError):
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, reason=exc.reason, message=exc.message)
    return _error_response(exc)

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    return _error_response(InvalidInput("Invalid or missing request fields.", errors=errors))

@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("integrity_error", path=request.url.path, error=str(exc.orig))
    return _error_response(Conflict("The request conflicts with existing records."))

@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("storage_error", path=request.url.path)
    return _error_response(Internal("Internal server error."))

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", path=request.url.path)
    return _error_response(Internal("Internal server error."))

@app.get("/")
def read_root():
    return {"message": f"Welcome to {settings.PROJECT_NAME}. Visit /docs for Swagger UI."}

from app.routers import cart, checkout, orders

app.include_router(cart.router, prefix="/api/v1/cart", tags=["cart"])
app.include_router(checkout.router, prefix="/api/v1/checkout", tags=["checkout"])
app.include_router(orders.router, prefix="/api/v1/orders", tags=["orders"])

# Add CORS
from fastapi.middleware.cors import CORSMiddleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
