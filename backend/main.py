"""
FastAPI backend for the venue lead generation engine.
"""

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from backend.routes.areas import router as areas_router
from backend.routes.campaigns import router as campaigns_router
from backend.routes.exports import router as exports_router
from backend.routes.venues import router as venues_router
from leadgen.db import init_db
from leadgen.errors import LeadGenError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(
    title="Venue Lead Generation API",
    description="Venue discovery, personnel research and lead export",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LeadGenError)
async def handle_leadgen_error(request: Request, exc: LeadGenError):
    if exc.status_code >= 500:
        logger.error(f"[{request.url.path}] {type(exc).__name__}: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


app.include_router(campaigns_router)
app.include_router(areas_router)
app.include_router(venues_router)
app.include_router(exports_router)


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok"}
