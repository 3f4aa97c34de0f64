from datetime import timedelta
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from identity.base_microservice import BaseMicroservice, build_engine, build_session_factory, logger
from identity.config import Settings
from identity.auth.directory import UserDirectory
from identity.auth.errors import IdentityError
from identity.auth.jwt import TokenService
from identity.auth.passwords import PasswordHasher
from identity.auth.router import router as users_router
from identity.auth.users import UserService

VERSION = "0.1.0"


async def identity_error_handler(request: Request, exc: IdentityError):
    """Map an IdentityError to its status code and a user-safe message."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message},
        headers=exc.headers,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI.
    Creates tables on startup and releases the connection pool on shutdown.
    """
    base_service: BaseMicroservice = app.state.base_service
    base_service.log_event("service.startup", {"service": app.state.settings.service_name})
    try:
        await app.state.directory.create_schema()
    except Exception as e:
        base_service.log_error(e, context="Schema initialization")
        raise
    yield
    await app.state.directory.dispose()
    base_service.log_event("service.shutdown", {"service": app.state.settings.service_name})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the identity service application."""
    settings = settings or Settings.from_env()
    base_service = BaseMicroservice(settings.service_name)
    logger.setLevel(settings.log_level)
    if settings.uses_default_secret:
        base_service.logger.warning("JWT_SECRET_KEY is not set; using the development default")

    engine = build_engine(settings.database_url)
    directory = UserDirectory(engine, build_session_factory(engine))
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    tokens = TokenService(
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        default_ttl=timedelta(minutes=settings.access_token_expire_minutes),
    )

    app = FastAPI(
        title="Identity API",
        description="User registration, authentication and role-based access",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.base_service = base_service
    app.state.directory = directory
    app.state.token_service = tokens
    app.state.user_service = UserService(directory, hasher, tokens, settings)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(IdentityError, identity_error_handler)
    app.include_router(users_router, prefix="/users", tags=["users"])

    @app.get("/", tags=["root"])
    async def root():
        """Root endpoint returning API information."""
        return {
            "name": "Identity API",
            "version": VERSION,
            "services": ["users"],
        }

    @app.get("/health", tags=["health"])
    async def health_check():
        """Overall system health check."""
        return {
            "status": "ok",
            "services": {
                "users": "online",
            },
        }

    return app


app = create_app()

# For running directly with uvicorn
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("identity.main:app", host="0.0.0.0", port=8000, reload=True)
