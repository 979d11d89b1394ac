from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI

from markdown_typst.config import AppConfig, load_config
from markdown_typst.core import ConversionService
from markdown_typst.settings import Settings, get_settings

from .app_info import TITLE, VERSION
from .routers import health, render


def create_app(config_path: Path | None = None) -> FastAPI:
    settings = get_settings()
    config = _prepare_config(settings, config_path)
    if not config.runtime.enable_local_api:
        raise RuntimeError("Local API is disabled. Enable it via configuration or environment.")

    app = FastAPI(title=TITLE, version=VERSION)
    app.state.config = config
    app.state.service = ConversionService(config)

    app.include_router(health.router)
    app.include_router(render.router)
    return app


def _prepare_config(settings: Settings, config_path: Path | None) -> AppConfig:
    config = load_config(config_path or settings.config_path)
    if settings.enable_local_api is not None:
        config.runtime.enable_local_api = settings.enable_local_api
    return config


__all__ = ["create_app"]
