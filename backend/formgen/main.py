from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from formgen.config import settings
from formgen.database import ensure_indexes
from formgen.logging_config import configure_logging
from formgen.routers.fields import router as fields_router
from formgen.routers.forms import router as forms_router
from formgen.routers.public import router as public_router
from formgen.routers.submissions import router as submissions_router

configure_logging(settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await ensure_indexes()
    yield


app = FastAPI(title="FormGen Backend (FastAPI + Mongo)", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(forms_router)
app.include_router(fields_router)
app.include_router(submissions_router)
app.include_router(public_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
