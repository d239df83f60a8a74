import json
import logging
import time

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from zenagent import __version__
from zenagent.auth import require_token
from zenagent.config import AgentSettings
from zenagent.singbox import EngineError, generate_reality_keys, restart, user_traffic
from zenagent.storage import ConfigStore

logger = logging.getLogger(__name__)


def _reject_constant(token: str):
    # NaN and Infinity are not JSON; sing-box refuses them
    raise ValueError(f"{token} is not a valid JSON value")


def create_app(settings: AgentSettings | None = None) -> FastAPI:
    settings = settings or AgentSettings()
    store = ConfigStore(settings.config_path)
    started = time.monotonic()

    app = FastAPI(title="Zen Node Agent", version=__version__)
    app.state.settings = settings
    app.state.store = store
    auth = [Depends(require_token)]

    @app.get("/health")
    def health():
        return {
            "online": True,
            "singbox_up": store.exists(),
            "version": __version__,
            "uptime": int(time.monotonic() - started),
        }

    @app.get("/config", dependencies=auth)
    def get_config():
        data = store.read()
        if data is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Config not found")
        return Response(content=data, media_type="application/json")

    @app.post("/config", dependencies=auth)
    async def put_config(request: Request):
        body = await request.body()
        try:
            document = json.loads(body, parse_constant=_reject_constant)
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid JSON: {e}")
        if not isinstance(document, dict):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Config must be a JSON object")
        try:
            await run_in_threadpool(store.write, document)
        except OSError as e:
            logger.error("Writing %s failed: %s", store.path, e)
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to write config: {e}")
        logger.info("Config written to %s (%d inbounds)", store.path, len(document.get("inbounds") or []))
        return {"status": "ok"}

    @app.post("/restart", dependencies=auth)
    def restart_singbox():
        try:
            restart(settings)
        except EngineError as e:
            logger.error("Restart failed: %s", e)
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to restart: {e}")
        return {"status": "ok"}

    @app.post("/generate-keys", dependencies=auth)
    def generate_keys():
        try:
            return generate_reality_keys(settings)
        except EngineError as e:
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    @app.get("/stats", dependencies=auth)
    def stats():
        try:
            return {"users": user_traffic(settings)}
        except EngineError as e:
            logger.warning("Stats unavailable: %s", e)
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    return app


app = create_app()
