"""FastAPI application factory for the nutrition sync endpoint."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status

from nutrition_sync.adapters.snapshot_codec import parse_timestamp
from nutrition_sync.api.models import (
    NutritionFetchResponse,
    NutritionSaveRequest,
    NutritionSaveResponse,
)
from nutrition_sync.app_logging import configure_logging
from nutrition_sync.config import parse_server_tokens
from nutrition_sync.containers import AppContainer


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app serving snapshots from the container."""
    configure_logging()
    logger = logging.getLogger(__name__)
    tokens = parse_server_tokens(container.settings.server_tokens)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    async def require_owner(authorization: str | None = Header(default=None)) -> str:
        """Resolve the bearer token to an owner or reject with 401."""
        scheme, _, token = (authorization or "").partition(" ")
        owner = tokens.get(token.strip()) if scheme.lower() == "bearer" else None
        if owner is None:
            logger.warning("Unauthorized nutrition request")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="No valid session found",
            )
        return owner

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get(
        "/nutrition",
        response_model=NutritionFetchResponse,
        response_model_by_alias=True,
        response_model_exclude_none=True,
    )
    async def get_nutrition(
        request: Request,
        owner: str = Depends(require_owner),
    ) -> NutritionFetchResponse:
        """Return the owner's snapshot if it changed after lastSync."""
        state_container: AppContainer = request.app.state.container
        last_sync = parse_timestamp(request.query_params.get("lastSync"))
        return state_container.server_service.fetch(owner, last_sync)

    @app.post(
        "/nutrition",
        response_model=NutritionSaveResponse,
        response_model_by_alias=True,
    )
    async def save_nutrition(
        payload: NutritionSaveRequest,
        request: Request,
        owner: str = Depends(require_owner),
    ) -> NutritionSaveResponse:
        """Store the owner's full snapshot."""
        state_container: AppContainer = request.app.state.container
        response = state_container.server_service.save(owner, payload)
        logger.info("Saved nutrition snapshot for %s", owner)
        return response

    return app
