from .chat import ChatRequest, ChatResponse, ConfirmationAction, ConversationTurn, MessageRole

__all__ = [
    "ChatRequest",
    "ChatResponse",
    "ConfirmationAction",
    "ConversationTurn",
    "MessageRole",
]
