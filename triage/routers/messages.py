"""Message submission and conversation read API routes."""

from __future__ import annotations

import threading
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request

from ..conversations import schemas as convo_schemas
from ..conversations.models import ConversationStatus, Department
from ..conversations.service import TriageService, create_sql_service
from ..core.limits import limiter, messages_rate_limit
from ..core.settings import get_settings

router = APIRouter(tags=["messages"])

_service_lock = threading.Lock()


def get_triage_service(request: Request) -> TriageService:
    """Return the app's triage service, building the default one on first use."""

    service = getattr(request.app.state, "triage_service", None)
    if service is not None:
        return service
    with _service_lock:
        service = getattr(request.app.state, "triage_service", None)
        if service is None:
            service = create_sql_service(get_settings())
            request.app.state.triage_service = service
    return service


@router.post(
    "/messages",
    response_model=convo_schemas.ConversationDetail,
    summary="Send a message",
    description=(
        "Send a customer message and receive the assistant's reply. Without a "
        "conversationId a new conversation is started."
    ),
)
@limiter.limit(messages_rate_limit)
def submit_message(
    request: Request,
    payload: convo_schemas.SubmitMessageRequest,
    service: TriageService = Depends(get_triage_service),
) -> convo_schemas.ConversationDetail:
    return service.submit_message(payload.content, payload.conversation_id)


@router.get(
    "/messages",
    response_model=list[convo_schemas.ConversationDetail],
    summary="List conversations",
)
def list_conversations(
    status: Optional[ConversationStatus] = None,
    department: Optional[Department] = None,
    service: TriageService = Depends(get_triage_service),
) -> list[convo_schemas.ConversationDetail]:
    """Most recent conversations first, optionally filtered."""
    return service.list_conversations(status=status, department=department)


@router.get(
    "/messages/{conversation_id}",
    response_model=convo_schemas.ConversationDetail,
    summary="Get a conversation",
)
def get_conversation(
    conversation_id: UUID,
    service: TriageService = Depends(get_triage_service),
) -> convo_schemas.ConversationDetail:
    return service.get_conversation(conversation_id)


@router.get(
    "/queues",
    response_model=convo_schemas.QueueOverview,
    summary="Queue overview",
    description="Conversation counts grouped by department and status.",
)
def queue_overview(
    service: TriageService = Depends(get_triage_service),
) -> convo_schemas.QueueOverview:
    return service.queue_overview()
