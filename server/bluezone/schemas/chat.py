from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class StartConversationRequest(BaseModel):

    model_config = ConfigDict(populate_by_name=True)

    recipient_id: str = Field(alias="recipientId", min_length=1)


class SendMessageRequest(BaseModel):

    content: str = Field(min_length=1)


class SocketFrame(BaseModel):
    """Inbound WebSocket envelope: {"event": ..., "data": {...}}"""

    event: str = Field(min_length=1)
    data: Optional[Dict[str, Any]] = None


class TypingSignal(BaseModel):

    model_config = ConfigDict(populate_by_name=True)

    conversation_id: Optional[str] = Field(default=None, alias="conversationId")
    recipient_id: str = Field(alias="recipientId", min_length=1)


class SocketMessage(BaseModel):

    model_config = ConfigDict(populate_by_name=True)

    conversation_id: str = Field(alias="conversationId")
    content: str
    client_message_id: Optional[Union[str, int]] = Field(default=None, alias="clientMessageId")
