from contextlib import asynccontextmanager

from fastapi import FastAPI
from tortoise.contrib.fastapi import RegisterTortoise

from scheduling_ms import settings
from scheduling_ms.routers import booking, reschedule, viewer


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with RegisterTortoise(
        app,
        db_url=settings.db_url,
        modules={"models": ["scheduling_ms.models"]},
        generate_schemas=settings.db_url.startswith("sqlite"),
    ):
        yield


def create_app() -> FastAPI:
    app = FastAPI(title="scheduling-ms", lifespan=lifespan)
    app.include_router(booking.router)
    app.include_router(reschedule.router)
    app.include_router(viewer.router)
    return app


app = create_app()
