import logging

from fastapi import FastAPI

from callmerge.api import calls, events, health, merge
from callmerge.config import settings
from callmerge.database import Base, engine

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title=settings.app_name)

app.include_router(health.router)
app.include_router(merge.router)
app.include_router(calls.router)
app.include_router(events.router)


@app.on_event("startup")
def on_startup() -> None:
    Base.metadata.create_all(bind=engine)
