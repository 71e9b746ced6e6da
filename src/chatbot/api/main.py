from __future__ import annotations

from datetime import UTC, datetime
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

from ..context import AppContext, build_context
from ..domain.errors import ChatSDKError, chat_sdk_error_handler
from ..observability.metrics import metrics_middleware_factory
from .routers.auth import router as auth_router
from .routers.chat import router as chat_router
from .routers.document import router as document_router
from .routers.history import router as history_router
from .routers.suggestions import router as suggestions_router

load_dotenv()  # Load environment variables from .env if present (OPENAI_API_KEY, REDIS_URL, etc.)

API_TITLE = "Artifact Chat API"
API_VERSION = "0.1.0"


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    app = FastAPI(title=API_TITLE, version=API_VERSION)
    app.state.context = context or build_context()

    # Observability: request latency histogram
    app.middleware("http")(metrics_middleware_factory())
    app.add_exception_handler(ChatSDKError, chat_sdk_error_handler)  # type: ignore[arg-type]

    app.include_router(auth_router)
    app.include_router(chat_router, prefix="/api")
    app.include_router(history_router, prefix="/api")
    app.include_router(document_router, prefix="/api")
    app.include_router(suggestions_router, prefix="/api")

    # CORS (for the web client dev server on localhost:3000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def root():
        return {"name": API_TITLE, "version": API_VERSION}

    @app.get("/health")
    def health():
        ctx: AppContext = app.state.context
        return {
            "status": "ok",
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "components": {
                "api": "ok",
                "store": "in-memory",
                "resumable_streams": "enabled" if ctx.stream_context is not None else "disabled",
                "document_kinds": ctx.registry.kinds,
            },
        }

    @app.get("/metrics")
    def metrics() -> Response:
        data = generate_latest(REGISTRY)
        return Response(content=data, media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()
