"""
Web Module - FastAPI chat API
=============================

HTTP endpoints for the chat client:
- POST /api/chat: intent-first chat replies
- POST /api/match: raw matcher output
- GET /api/intents: loaded rules
- GET /health
"""

from .app import create_app, run_app
from .routes import router

__all__ = [
    "create_app",
    "run_app",
    "router",
]
