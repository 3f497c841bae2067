from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

WALLET_ADDRESS_PATTERN = r"^0x[a-fA-F0-9]{40}$"


class MessageRole(str, Enum):
    """Enum for message roles"""
    USER = "user"
    ASSISTANT = "assistant"


class ConfirmationAction(str, Enum):
    """Actions a client may send back together with a confirmation token"""
    ACCEPT = "accept"
    CONFIRM = "confirm"
    CANCEL = "cancel"
    REJECT = "reject"


class ConversationTurn(BaseModel):
    role: MessageRole = Field(..., description="Role of the message sender")
    content: str = Field(..., description="Message content")
    timestamp: Optional[str] = Field(None, description="ISO timestamp supplied by the client")

    model_config = ConfigDict(use_enum_values=True)


class ChatRequest(BaseModel):
    """Incoming chat message from the mini-app"""

    message: str = Field(..., min_length=1, description="User message")
    user_address: Optional[str] = Field(
        None,
        alias="userAddress",
        pattern=WALLET_ADDRESS_PATTERN,
        description="Connected wallet address",
    )
    conversation_history: List[ConversationTurn] = Field(
        default_factory=list,
        alias="conversationHistory",
        description="Recent turns kept by the client",
    )
    confirmation_id: Optional[str] = Field(
        None,
        alias="confirmationId",
        description="Confirmation token echoed back for a pending plan",
    )
    action: Optional[ConfirmationAction] = Field(
        None, description="What to do with the pending plan"
    )

    model_config = ConfigDict(populate_by_name=True)


class ChatResponse(BaseModel):
    """Reply returned to the mini-app"""

    success: bool = True
    response: str = Field(..., description="Assistant reply text")
    action: Optional[str] = Field(None, description="Hint for the client UI")
    data: Optional[Any] = Field(None, description="Structured payload for the action")
