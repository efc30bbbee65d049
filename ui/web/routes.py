"""
Web Routes - Chat and intent API endpoints
==========================================
"""

from typing import Optional, List

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from core.exceptions import ChatError
from core.logging import get_logger
from rules.engine import match_intent
from rules.normalize import normalize_lang

logger = get_logger("web.routes")

router = APIRouter()


class ChatRequest(BaseModel):
    """Chat message from the client."""
    message: Optional[str] = None
    lang: Optional[str] = None
    user_id: Optional[str] = None


class MatchRequest(BaseModel):
    """Raw matcher request, for debugging rule files."""
    message: Optional[str] = None
    lang: Optional[str] = None


class IntentInfo(BaseModel):
    intent: str
    patterns: List[str]
    response_en: str
    response_fr: str


@router.get("/health")
async def health(request: Request):
    """Liveness check with the number of loaded rules."""
    return {"status": "ok", "rules": len(request.app.state.rule_set)}


# Plain def: the LLM fallback blocks, so FastAPI runs this in its threadpool
@router.post("/api/chat")
def chat(request: Request, body: ChatRequest):
    """Answer a chat message from the intent rules or the LLM fallback."""
    handler = request.app.state.conversation

    try:
        reply = handler.respond(body.user_id, body.message, body.lang)
    except ChatError as e:
        return JSONResponse(status_code=400, content={"error": e.message})

    return reply.to_dict()


@router.post("/api/match")
async def match(request: Request, body: MatchRequest):
    """Run the matcher alone and report what it decided."""
    result = match_intent(request.app.state.rule_set, body.message, body.lang)

    if result is None:
        return {"matched": False, "intent": None, "response": None,
                "lang": normalize_lang(body.lang)}

    return {"matched": True, "intent": result.intent, "response": result.response,
            "lang": normalize_lang(body.lang)}


@router.get("/api/intents", response_model=List[IntentInfo])
async def list_intents(request: Request):
    """List the loaded rules in definition order."""
    return [rule.to_dict() for rule in request.app.state.rule_set]
