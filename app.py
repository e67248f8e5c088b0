from __future__ import annotations
import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from manifestgen import BuildContext, __version__
from manifestgen.errors import ManifestError
from manifestgen.imagemeta import make_meta_reader
from manifestgen.orchestrator import RunReport, run
from manifestgen.utils import env_on, log
from manifestgen.watcher import ManifestWatcher, watch

# Preview server: serves the public root (manifests included) the way the page
# layer fetches it, and exposes the generator over a tiny API.
#
# Env:
#   PUBLIC_ROOT / STILLS_DIR / MOTION_DIR / COVERS_DIR / VIDEO_REGISTRY   see BuildContext.from_env
#   MANIFEST_WATCH=1   run the watcher for the lifetime of the server
#   MANIFEST_BUILD_ON_START=1   regenerate on startup (default on with MANIFEST_WATCH, off otherwise)

STATE: dict[str, Any] = {
    "ctx": BuildContext.from_env(),
    "last_report": None,
    "last_error": None,
    "watcher": None,
    "running": False,
}
_BUILD_LOCK = asyncio.Lock()


def api_success(data=None, message: str = "OK", status_code: int = 200):
    return JSONResponse({"status": "success", "message": message, "data": data}, status_code=status_code)


def api_error(message: str, status_code: int = 400, data=None):
    return JSONResponse({"status": "error", "message": message, "data": data}, status_code=status_code)


async def _rebuild() -> RunReport:
    """Run one pass and remember its outcome. Errors propagate to the caller."""
    ctx: BuildContext = STATE["ctx"]
    async with _BUILD_LOCK:
        STATE["running"] = True
        try:
            report = await run(ctx, make_meta_reader(enabled=ctx.image_meta, blur_width=ctx.blur_width))
        except Exception as e:
            STATE["last_error"] = str(e)
            raise
        finally:
            STATE["running"] = False
    STATE["last_report"] = report
    STATE["last_error"] = None
    return report


@asynccontextmanager
async def lifespan(app_obj: FastAPI):  # type: ignore[override]
    ctx: BuildContext = STATE["ctx"]
    log("server", f"PUBLIC_ROOT={ctx.public_root}")
    stop = asyncio.Event()
    task: Optional[asyncio.Task] = None
    if env_on("MANIFEST_WATCH"):
        watcher = ManifestWatcher(_rebuild, window=ctx.debounce_ms / 1000.0)
        STATE["watcher"] = watcher
        task = asyncio.create_task(
            watch(ctx, _rebuild, stop_event=stop, watcher=watcher,
                  initial=env_on("MANIFEST_BUILD_ON_START", True))
        )
    elif env_on("MANIFEST_BUILD_ON_START", False):
        try:
            await _rebuild()
        except Exception as e:  # noqa: BLE001
            log("server", "initial build failed: %s", e, level=logging.ERROR)
    try:
        yield
    finally:
        stop.set()
        if task is not None:
            await task
        STATE["watcher"] = None


app = FastAPI(title="Manifest Generator", version=__version__, lifespan=lifespan)
api = APIRouter(prefix="/api")


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    if isinstance(exc.detail, dict) and exc.detail.get("status") == "error":
        return JSONResponse(exc.detail, status_code=exc.status_code)
    return api_error(str(exc.detail), status_code=exc.status_code)


@api.get("/health")
def health():
    return api_success({"ok": True, "version": __version__})


@api.get("/manifests/status")
def manifests_status():
    ctx: BuildContext = STATE["ctx"]
    report: Optional[RunReport] = STATE.get("last_report")
    watcher: Optional[ManifestWatcher] = STATE.get("watcher")
    return api_success({
        "public_root": str(ctx.public_root),
        "stills_root": str(ctx.stills_root),
        "motion_root": str(ctx.motion_root),
        "registry": str(ctx.registry),
        "running": bool(STATE.get("running")),
        "last_report": report.model_dump(mode="json") if report else None,
        "last_error": STATE.get("last_error"),
        "watching": watcher is not None,
        "watcher_state": watcher.state if watcher else None,
    })


@api.post("/manifests/rebuild")
async def manifests_rebuild():
    try:
        report = await _rebuild()
    except (ManifestError, OSError) as e:
        return api_error(f"Rebuild failed: {e}", status_code=500)
    return api_success(report.model_dump(mode="json"), message="manifests updated")


app.include_router(api)

# Mount last so /api wins over same-named files under the public root
app.mount(
    "/",
    StaticFiles(directory=str(STATE["ctx"].public_root), check_dir=False),
    name="public",
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=os.environ.get("HOST", "127.0.0.1"), port=int(os.environ.get("PORT", "9998")))
