import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import get_settings
from .core.db import Base, engine
from .core.responses import ErrorCodes, error_response
from .navigation.errors import CollaboratorUnavailable, DescriptorParseError
from .navigation.routes import router as navigation_router


settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Store Admin Navigation Backend")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(navigation_router)


@app.exception_handler(CollaboratorUnavailable)
async def collaborator_unavailable_handler(request: Request, exc: CollaboratorUnavailable):
    logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=500,
        content=error_response(ErrorCodes.DATABASE_ERROR, exc.message),
    )


@app.exception_handler(DescriptorParseError)
async def descriptor_parse_error_handler(request: Request, exc: DescriptorParseError):
    return JSONResponse(
        status_code=422,
        content=error_response(
            ErrorCodes.INVALID_DESCRIPTOR,
            exc.message,
            details={"plugin_id": exc.plugin_id} if exc.plugin_id else None,
        ),
    )


@app.on_event("startup")
async def on_startup():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready")


@app.get("/health")
async def health():
    return {"status": "ok"}
