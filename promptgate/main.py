"""
Main FastAPI application for the prompt builder backend.
Serves health, access gating, payment status, inference pass-through and metrics.
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from promptgate.core.config import settings
from promptgate.core.logging import configure_logging
from promptgate.api.routes import access, health, inference, payments, support
from promptgate.utils.metrics import router as metrics_router


configure_logging()

app = FastAPI(
    title="Promptgate API",
    description="Access gating, payment verification and inference pass-through",
    version="1.0.0",
)

# CORS
origins = settings.cors_origins_list
if not origins:
    origins = ["http://localhost:5173", "http://127.0.0.1:5173", "http://localhost:8080"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(health.router, tags=["health"])
app.include_router(access.router)
app.include_router(payments.router)
app.include_router(inference.router)
app.include_router(support.router)
app.include_router(metrics_router)
