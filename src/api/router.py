"""HTTP route composition."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.api.handlers import (
    handle_ai_query,
    handle_fields,
    handle_sample,
    handle_structured_query,
)
from src.app import App

router = APIRouter()


class AskRequest(BaseModel):
    """Body of `POST /ai/query`."""

    question: Any = None
    context: Any = None


def get_app(request: Request) -> App:
    return request.app.state.container


@router.get("/health")
async def health() -> dict[str, bool]:
    return {"ok": True}


@router.post("/ai/query")
async def ai_query(body: AskRequest | None = None, app: App = Depends(get_app)) -> JSONResponse:
    if body is None:
        return await handle_ai_query(None, None, app)
    return await handle_ai_query(body.question, body.context, app)


@router.post("/query")
async def structured_query(
        obj: Any = Body(default=None),
        app: App = Depends(get_app),
) -> JSONResponse:
    return await handle_structured_query(obj, app)


@router.get("/demo/sample")
async def sample(app: App = Depends(get_app)) -> JSONResponse:
    return await handle_sample(app)


@router.get("/airtable/fields")
async def fields(app: App = Depends(get_app)) -> JSONResponse:
    return await handle_fields(app)
