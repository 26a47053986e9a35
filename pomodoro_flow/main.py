"""
Pomodoro Flow – HTTP API
Start with: uvicorn pomodoro_flow.main:app --reload
"""
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env (POMODORO_DIR, POMODORO_DAILY_GOAL, ...)
from dotenv import load_dotenv
load_dotenv()

from pomodoro_flow import __version__
from pomodoro_flow.config import configure_logging
from pomodoro_flow.routers import tools

configure_logging()

app = FastAPI(
    title="Pomodoro Flow API",
    description="Pomodoro timer, history and daily goal tools",
    version=__version__,
)

# Allow a local dashboard to call this API
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("POMODORO_CORS_ORIGINS", "http://localhost:3000").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health():
    """Check that the API is running."""
    return {"status": "ok", "message": "Pomodoro Flow API is running"}


@app.get("/")
def root():
    """Root welcome."""
    return {"app": "Pomodoro Flow", "docs": "/docs"}


app.include_router(tools.router)
