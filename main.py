# main.py
from dotenv import load_dotenv
load_dotenv()

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from helpers.call_service import run_startup_call
from helpers.context import AppContext, build_context
from helpers.errors import ServiceError
from helpers.tortoise_config import check_storage, close_storage, init_storage

# ----- Routers / controllers -----
from controllers import call_controller, conversation_controller, twilio_controller, user_controller

logging.basicConfig(
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
log = logging.getLogger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    ctx: AppContext = app.state.context
    settings = ctx.settings
    log.info("settings: %s", settings.describe())

    # storage has to answer before we serve or dial anyone
    await init_storage(settings.database_url, generate_schemas=settings.generate_schemas)
    await check_storage()
    ctx.start()

    startup_call: Optional[asyncio.Task] = None
    if settings.destination_phone_number:
        startup_call = asyncio.create_task(run_startup_call(ctx, settings.destination_phone_number))
    app.state.startup_call = startup_call
    try:
        yield
    finally:
        if startup_call and not startup_call.done():
            startup_call.cancel()
        dropped = ctx.recordings.cancel_all()
        if dropped:
            log.warning("shutdown: dropped %s pending recording acquisition(s)", dropped)
        ctx.stop()
        await close_storage()


async def service_error_handler(_: Request, exc: ServiceError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def unexpected_error_handler(_: Request, exc: Exception):
    log.exception("unhandled error: %s", exc)
    return JSONResponse(status_code=500, content={"error": str(exc)})


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    app = FastAPI(lifespan=lifespan)
    app.state.context = context or build_context()
    logging.getLogger().setLevel(app.state.context.settings.log_level)

    # ----- Middlewares -----
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    # ----- Routers -----
    app.include_router(user_controller.router, tags=["Users"])
    app.include_router(conversation_controller.router, tags=["Conversations"])
    app.include_router(call_controller.router, tags=["Calls"])
    app.include_router(twilio_controller.router, tags=["Twilio Webhooks"])

    @app.get("/health")
    async def health():
        try:
            await check_storage()
        except ServiceError as e:
            return JSONResponse(status_code=503, content={"ok": False, "error": e.message})
        return {"ok": True}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=app.state.context.settings.port)
