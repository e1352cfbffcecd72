from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from dotenv import load_dotenv
from app.database import Base, engine
from app.routes import auth, ratings, stores, users
from app.middleware.security import SecurityHeadersMiddleware
from app.utils.exceptions import ServiceError
from app import models  # noqa: F401  registers every model on Base
import os
import logging

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")


# ============================================
# Application Lifespan Management
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: create missing tables (CREATE_TABLES_ON_STARTUP, default true)
    Shutdown: dispose the connection pool
    """
    logger.info("=" * 60)
    logger.info("Store Ratings API starting")
    logger.info(f"   Environment: {ENVIRONMENT}")
    logger.info("=" * 60)

    if os.getenv("CREATE_TABLES_ON_STARTUP", "true").lower() == "true":
        Base.metadata.create_all(bind=engine)

    yield

    logger.info("Store Ratings API shutting down")
    engine.dispose()


# Create FastAPI app with lifespan handler
app = FastAPI(
    title="Store Ratings API",
    description="Store rating platform: normal users rate stores, owners follow their feedback, admins manage everything",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# ============================================
# Security Configuration
# ============================================

# CORS - Whitelist allowed origins
allowed_origins = [
    "http://localhost:3000",
    "http://localhost:5173",
]
if production_url := os.getenv("FRONTEND_URL"):
    allowed_origins.append(production_url)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.add_middleware(SecurityHeadersMiddleware, enable_hsts=ENVIRONMENT == "production")

# Trusted Hosts - Production only
if ENVIRONMENT == "production":
    if trusted_hosts := [h for h in os.getenv("TRUSTED_HOSTS", "").split(",") if h]:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=trusted_hosts)


def _with_cors(request: Request, response: JSONResponse) -> JSONResponse:
    """Error responses skip CORSMiddleware, so add the headers here"""
    origin = request.headers.get("origin")
    if origin in allowed_origins:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
    return response


# ============================================
# Exception Handlers
# ============================================

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Render HTTP and service errors; service errors also name the entity"""
    content = {"detail": exc.detail}
    if isinstance(exc, ServiceError) and exc.entity:
        content["entity"] = exc.entity
        if exc.entity_id is not None:
            content["entity_id"] = str(exc.entity_id)
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")

    return _with_cors(request, JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return _with_cors(request, JSONResponse(status_code=500, content={"detail": "Internal server error"}))


# ============================================
# Routes
# ============================================

@app.get("/", tags=["Health"])
async def root():
    """Basic health check"""
    return {
        "message": "Store Ratings API",
        "version": "1.0.0",
        "status": "healthy",
        "docs": "/docs"
    }

@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check for monitoring"""
    from datetime import datetime, timezone
    return {
        "status": "healthy",
        "api_version": "1.0.0",
        "environment": ENVIRONMENT,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(stores.router)
app.include_router(ratings.router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        log_level="info"
    )
