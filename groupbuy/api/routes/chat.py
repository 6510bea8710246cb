"""Chat assistant endpoints.

Each user has at most one active chat session. History creates it with the
greeting on first access; clearing deactivates it so the next message or
history call starts a new one.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from groupbuy.api.dependencies import get_current_user, get_recommender, get_scoring_metrics, get_store
from groupbuy.api.exceptions import ValidationFailedError
from groupbuy.api.metrics import ScoringMetrics
from groupbuy.api.responses import success
from groupbuy.recommender.assistant import ChatAssistant
from groupbuy.recommender.scoring import GroupRecommender
from groupbuy.store.database import Store
from groupbuy.store.documents import new_chat_document, utcnow

# Configure module logger
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter(
    prefix="/chat",
    tags=["chat"],
)


class ChatMessageRequest(BaseModel):
    message: Optional[str] = None


def _active_session(store: Store, user_id, greet: bool) -> Dict[str, Any]:
    chat = store.chats.find_one({"user": user_id, "isActive": True})
    if chat is None:
        chat = new_chat_document(user_id, greet=greet)
        chat["_id"] = store.chats.insert_one(chat).inserted_id
    return chat


@router.get("/history")
def get_history(
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    return success(_active_session(store, user["_id"], greet=True))


@router.post("/message")
def send_message(
    body: ChatMessageRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
    recommender: GroupRecommender = Depends(get_recommender),
    metrics: ScoringMetrics = Depends(get_scoring_metrics),
):
    """Append the user's message and the assistant's reply to the session.

    The session context is replaced by the one the reply produces.
    """
    if not body.message or not body.message.strip():
        raise ValidationFailedError(
            [{"field": "message", "location": "body", "message": "Message cannot be empty", "type": "value_error"}],
            message="Message cannot be empty",
        )

    chat = _active_session(store, user["_id"], greet=False)
    assistant = ChatAssistant(store, recommender)

    with metrics.track("chat"):
        reply = assistant.respond(body.message, chat.get("context"), user)

    now = utcnow()
    store.chats.update_one(
        {"_id": chat["_id"]},
        {
            "$push": {
                "messages": {
                    "$each": [
                        {"sender": "user", "content": body.message, "timestamp": now},
                        {
                            "sender": "ai",
                            "content": reply["content"],
                            "timestamp": now,
                            "metadata": reply["metadata"],
                        },
                    ]
                }
            },
            "$set": {"context": reply["context"], "updatedAt": now},
        },
    )

    return success({"message": reply["content"], "metadata": reply["metadata"]})


@router.delete("/clear")
def clear_history(
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    result = store.chats.update_many(
        {"user": user["_id"], "isActive": True},
        {"$set": {"isActive": False, "updatedAt": utcnow()}},
    )
    logger.info(
        "Chat history cleared",
        extra={"user_id": str(user["_id"]), "sessions": result.modified_count},
    )
    return success(message="Chat history cleared")
