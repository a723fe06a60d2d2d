"""FastAPI application entry point."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ca_analyzer.api.routes import analysis, qualification
from ca_analyzer.config import settings

logging.basicConfig(level=settings.log_level)

app = FastAPI(
    title="CA Deal Analyzer",
    description="Canadian Real Estate Deal Analysis",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(analysis.router)
app.include_router(qualification.router)


@app.get("/health")
async def health():
    return {"status": "ok"}
