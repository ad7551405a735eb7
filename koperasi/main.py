from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from koperasi.api.v1.endpoints.api import api_router
from koperasi.core.flow_logging import configure_logging

configure_logging()

app = FastAPI(title="Koperasi API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"], # For development; restrict to the POS frontend origin in production
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
def health():
    return {"status": "up"}
