"""FastAPI endpoints for the finance assistant chat."""

from fastapi import APIRouter, Depends, HTTPException

from finance_ledger.api.dependencies import get_chat_service, get_db_conn
from finance_ledger.core.db import DBHelper
from finance_ledger.core.errors import AgentError, AgentUnavailableError, RecordNotFoundError
from finance_ledger.core.models import ChatMessageOut, ChatReply, ChatRequest, ChatSession
from finance_ledger.services.chat_service import ChatService

router = APIRouter(prefix="/api/chat")


@router.post(
    "",
    response_model=ChatReply,
    summary="Send a message to the finance assistant",
    description=(
        "Ask a question about your spending. Pass `sessionId` to continue a conversation; omit it to start one.\n\n"
        "**Body:** `{ 'message': '...', 'sessionId': '<id>' }`\n\n"
        "**Response:**\n"
        "- 200 OK: the session id, the stored user message and the assistant's answer.\n"
        "- 502 Bad Gateway: If the LLM call failed.\n"
        "- 503 Service Unavailable: If no LLM key is configured."
    ),
    responses={
        502: {"description": "Assistant call failed."},
        503: {"description": "AI service not configured."},
    },
)
def send_message(body: ChatRequest, chat_service: ChatService = Depends(get_chat_service)) -> ChatReply:
    """Answer one chat message."""
    try:
        return chat_service.send(body.message, body.session_id)
    except AgentUnavailableError as exc:
        raise HTTPException(503, str(exc)) from exc
    except AgentError as exc:
        raise HTTPException(502, str(exc)) from exc


@router.get("/sessions", response_model=list[ChatSession], summary="List chat sessions")
async def list_sessions(db: DBHelper = Depends(get_db_conn)) -> list[ChatSession]:
    """List chat sessions, most recently active first."""
    return [ChatSession(**row) for row in db.chat_sessions()]


@router.get("/sessions/{session_id}", response_model=list[ChatMessageOut], summary="Get a chat session")
async def get_session(session_id: str, db: DBHelper = Depends(get_db_conn)) -> list[ChatMessageOut]:
    """Return a session's messages in order."""
    messages = db.chat_history(session_id)
    if not messages:
        raise HTTPException(404, f"Chat session not found: {session_id}")
    return [ChatMessageOut.model_validate(m) for m in messages]


@router.delete("/sessions/{session_id}", summary="Delete a chat session")
async def delete_session(session_id: str, db: DBHelper = Depends(get_db_conn)) -> dict:
    """Delete a session and all of its messages."""
    try:
        db.delete_chat_session(session_id)
    except RecordNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc
    return {"success": True}
