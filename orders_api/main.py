"""
Orders Microservice
Order records with validation rules, plus a Pub/Sub push endpoint for
client deletions and order confirmations
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from contextlib import asynccontextmanager

from orders_api.api.routes import router as orders_router
from orders_api.application.errors import ForbiddenError, OrderError
from orders_api.core import ServiceHealth, setup_logging, RequestLoggingMiddleware, get_logger
from orders_api.core_settings import get_settings
from orders_api.infrastructure.db import engine, init_models

SERVICE_NAME = "orders-service"
SERVICE_DESCRIPTION = "Order management microservice"

settings = get_settings()
setup_logging(service_name=SERVICE_NAME, level=settings.LOG_LEVEL)
logger = get_logger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {SERVICE_NAME} version {settings.SERVICE_VERSION}")
    try:
        init_models()
        logger.info("Order tables initialized")
    except Exception as e:
        logger.error(f"Failed to initialize order tables: {e}")
        raise
    yield
    logger.info(f"Shutting down {SERVICE_NAME}")

app = FastAPI(
    title=SERVICE_NAME,
    description=SERVICE_DESCRIPTION,
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

@app.exception_handler(ForbiddenError)
async def forbidden_handler(request: Request, exc: ForbiddenError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

@app.exception_handler(OrderError)
async def order_error_handler(request: Request, exc: OrderError) -> PlainTextResponse:
    return PlainTextResponse(exc.message, status_code=exc.status_code)

health_service = ServiceHealth(SERVICE_NAME, settings.SERVICE_VERSION, engine, settings.ORDER_EVENTS_URL)
app.include_router(health_service.create_health_router())
app.include_router(orders_router)

@app.get("/", response_class=PlainTextResponse)
async def root():
    return "Bienvenue sur l'API Commandes"

@app.get("/info")
async def info():
    """Service information endpoint"""
    return {
        "service": SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "description": SERVICE_DESCRIPTION,
        "environment": settings.ENVIRONMENT,
        "endpoints": {
            "orders": "/orders",
            "events": "/orders/pubsub",
            "health": "/health",
            "ready": "/health/ready",
            "metrics": "/metrics",
            "docs": "/api/docs"
        }
    }
