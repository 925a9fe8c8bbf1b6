"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware
- Initialize shared resources (chat endpoints, response orchestrator)
- Register routes
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adapters.llm.chat import OpenAIChatEndpoint
from config import AppConfig
from observability.logger import log_event
from orchestrator.response import ResponseOrchestrator

from server.routes import register_routes


def create_app(config: AppConfig | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This is the app factory pattern that allows:
    - Testing with different configurations
    - ASGI server compatibility
    """
    if config is None:
        config = AppConfig.load_from_env()

    app = FastAPI(title="Voice Chat API")

    app.state.config = config

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Endpoint clients are created ONCE per process and shared by sessions
    app.state.responder = build_responder(config)

    log_event({
        "event_type": "APP_CONFIGURED",
        "env": config.env,
        "sherpa_runtime": str(config.sherpa_runtime),
        "tts_model": str(config.tts_model_dir),
        "whisper_model": str(config.whisper_model_dir),
        "primary_enabled": app.state.responder.has_primary,
    })

    # Routes
    register_routes(app)

    return app


def build_responder(config: AppConfig) -> ResponseOrchestrator:
    """Primary = OpenClaw gateway (only with a token), secondary = local Ollama."""
    primary = None
    if config.gateway_token:
        primary = OpenAIChatEndpoint.build(
            base_url=config.gateway_base_url,
            model=config.gateway_model,
            name="primary",
            api_key=config.gateway_token,
        )

    secondary = OpenAIChatEndpoint.build(
        base_url=config.fallback_base_url,
        model=config.fallback_model,
        name="secondary",
    )

    return ResponseOrchestrator(primary=primary, secondary=secondary)
