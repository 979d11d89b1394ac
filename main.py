from fastapi import FastAPI, HTTPException

from api.app import create_app
from api.app_info import TITLE, VERSION

try:
    app = create_app()
except RuntimeError:
    app = FastAPI(title=TITLE, version=VERSION)

    @app.get("/")
    async def api_disabled() -> dict[str, str]:
        raise HTTPException(
            status_code=503,
            detail="Local API disabled. Enable by setting runtime.enable_local_api = true in config.toml",
        )
