from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lovsentralen.api.routes import cases
from lovsentralen.config import settings
from lovsentralen.services.logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Lovsentralen API starting (store={settings.case_store_backend}, search={settings.search_provider})")
    yield


app = FastAPI(
    title="Lovsentralen",
    description="Guided Norwegian legal information: clarifying questions, source search and grounded analysis",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(cases.router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "lovsentralen"}
