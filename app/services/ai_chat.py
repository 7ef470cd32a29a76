# app/services/ai_chat.py

import logging
from typing import Any, Dict, List, Optional

from anthropic import AsyncAnthropic
from pydantic import BaseModel

from app.common.errors import MissingMessage

log = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are Hapi, the friendly guide inside Hapien, an app that helps people "
    "meet friends in real life through small hangouts and local communities. "
    "Keep replies short, warm and practical, and nudge people toward meeting up."
)

NO_KEY_REPLY = (
    "I'm still learning! For now, I can help you with finding people to meet, "
    "checking what's happening, and tracking your progress. Try asking about one of these! 💡"
)
ERROR_REPLY = (
    "Oops! I'm having a moment. Try asking again, or check out what's happening "
    "in your community! 🌟"
)
EMPTY_REPLY = "I'm having trouble responding right now. Try again in a moment!"

HISTORY_LIMIT = 10


class ChatStats(BaseModel):
    meetups: int = 0
    connections: int = 0
    streak: int = 0


class ChatContext(BaseModel):
    userName: Optional[str] = None
    stats: Optional[ChatStats] = None
    recentActivity: Optional[str] = None
    coolingFriendships: List[str] = []


class HistoryEntry(BaseModel):
    direction: str = "from_ai"
    content: str = ""


class ChatRequest(BaseModel):
    message: Optional[str] = None
    context: Optional[ChatContext] = None
    conversationHistory: Optional[List[HistoryEntry]] = None


class ChatReply(BaseModel):
    response: str
    fallback: bool


def contextual_message(message: str, context: Optional[ChatContext]) -> str:
    """Prefix the user's message with bracketed context tags."""
    prefix = ""
    if context is not None:
        if context.stats is not None:
            s = context.stats
            prefix += f"[STATS: {s.meetups} meetups, {s.connections} connections, {s.streak} day streak]\n"
        if context.recentActivity:
            prefix += f"[RECENT: {context.recentActivity}]\n"
        if context.coolingFriendships:
            prefix += f"[COOLING: Haven't met {', '.join(context.coolingFriendships)} recently]\n"
        if context.userName:
            prefix += f"[User's name: {context.userName}]\n"
    return f"{prefix}\nUser: {message}" if prefix else message


def build_messages(
    message: str,
    context: Optional[ChatContext] = None,
    history: Optional[List[HistoryEntry]] = None,
) -> List[Dict[str, Any]]:
    messages = []
    for entry in (history or [])[-HISTORY_LIMIT:]:
        role = "user" if entry.direction == "from_user" else "assistant"
        messages.append({"role": role, "content": entry.content})
    messages.append({"role": "user", "content": contextual_message(message, context)})
    return messages


class ChatRelay:
    """Forwards chat turns to Claude; never raises past validation."""

    def __init__(self, api_key: Optional[str], model: str, max_tokens: int, client: Optional[AsyncAnthropic] = None):
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self._client = client

    @property
    def client(self) -> AsyncAnthropic:
        if self._client is None:
            self._client = AsyncAnthropic(api_key=self.api_key)
        return self._client

    async def chat(self, request: ChatRequest) -> ChatReply:
        if not request.message:
            raise MissingMessage()
        if not self.api_key:
            return ChatReply(response=NO_KEY_REPLY, fallback=True)

        messages = build_messages(request.message, request.context, request.conversationHistory)
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=SYSTEM_PROMPT,
                messages=messages,
            )
        except Exception:
            log.exception("AI chat call failed")
            return ChatReply(response=ERROR_REPLY, fallback=True)

        text = next(
            (block.text for block in response.content if getattr(block, "type", None) == "text"),
            None,
        )
        return ChatReply(response=text or EMPTY_REPLY, fallback=False)
