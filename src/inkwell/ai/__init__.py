"""AI client, transport contract, tools and the agent loop."""

from .client import AIClient, ClientSettings
from .errors import AgentBusyError, AuthorizationError, TransportError
from .messages import ChatHistory, Message, TextBlock, ToolResultBlock, ToolUseBlock
from .orchestration import AgentLoop, LoopConfig, LoopHooks, LoopOutcome, LoopState
from .prompts import PromptContextBuilder
from .transport import ChunkEvent, ErrorEvent, ModelTransport, StopEvent, ToolUseEvent

__all__ = [
    "AIClient",
    "AgentBusyError",
    "AgentLoop",
    "AuthorizationError",
    "ChatHistory",
    "ChunkEvent",
    "ClientSettings",
    "ErrorEvent",
    "LoopConfig",
    "LoopHooks",
    "LoopOutcome",
    "LoopState",
    "Message",
    "ModelTransport",
    "PromptContextBuilder",
    "StopEvent",
    "TextBlock",
    "ToolResultBlock",
    "ToolUseBlock",
    "ToolUseEvent",
    "TransportError",
]
