# ==============================
# FastAPI App Factory
# ==============================
from __future__ import annotations

from typing import Optional

from fastapi import FastAPI

from gateway.api.deps import get_tools
from gateway.api.routes_tools import router as tools_router
from toolkit.tools.collection import Tools


def create_app(tools: Optional[Tools] = None) -> FastAPI:
    app = FastAPI(title="toolkit", version="0.1.0")
    app.include_router(tools_router, prefix="/api")
    if tools is not None:
        app.dependency_overrides[get_tools] = lambda: tools
    return app
