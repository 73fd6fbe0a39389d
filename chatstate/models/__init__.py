from .analytics import Analytics
from .message import Message, MessageRole

__all__ = ["Analytics", "Message", "MessageRole"]
