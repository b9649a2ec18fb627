from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from housemate.api.v1.api import api_router
from housemate.core.config import settings
from housemate.core.logging_config import configure_logging
from housemate.db.session import close_stores, open_stores


@asynccontextmanager
async def lifespan(app: FastAPI):
    await open_stores()
    yield
    await close_stores()


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.PROJECT_VERSION,
        description=settings.DESCRIPTION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root():
        return {"message": "Welcome to Housemate Ledger API"}

    app.include_router(api_router, prefix=settings.API_V1_STR)
    return app


app = create_app()
