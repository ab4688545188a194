"""Shared contracts: source of truth for all ChatRelay interfaces."""

from contracts.chat import (
    AssistantMessage,
    ChatCompletionChunk,
    ChatCompletionError,
    ChatCompletionInput,
    ChatCompletionResponse,
    ChunkDelta,
    Role,
    StreamedToolCall,
    SystemMessage,
    ToolCall,
    ToolDefinition,
    ToolMessage,
    Usage,
    UsageChunk,
    UserMessage,
)
from contracts.provider import (
    Credential,
    CredentialOutcome,
    CredentialReport,
    CredentialType,
    Provider,
    ProviderConfig,
    ProviderName,
)
from contracts.adapter import ChatAdapter, ProviderKind
from contracts.config import AuditConfig, GatewayConfig, RouteRule, UpstreamConfig
from contracts.audit import AuditEntry, AuditEvent, AuditLogger
from contracts.errors import (
    ConfigurationError,
    GatewayError,
    NoUsableCredentialError,
    SchemaTranslationError,
    UnsupportedModelError,
    UpstreamError,
    UpstreamStatusError,
    UpstreamTransportError,
)

__all__ = [
    # chat
    "AssistantMessage",
    "ChatCompletionChunk",
    "ChatCompletionError",
    "ChatCompletionInput",
    "ChatCompletionResponse",
    "ChunkDelta",
    "Role",
    "StreamedToolCall",
    "SystemMessage",
    "ToolCall",
    "ToolDefinition",
    "ToolMessage",
    "Usage",
    "UsageChunk",
    "UserMessage",
    # provider
    "Credential",
    "CredentialOutcome",
    "CredentialReport",
    "CredentialType",
    "Provider",
    "ProviderConfig",
    "ProviderName",
    # adapter
    "ChatAdapter",
    "ProviderKind",
    # config
    "AuditConfig",
    "GatewayConfig",
    "RouteRule",
    "UpstreamConfig",
    # audit
    "AuditEntry",
    "AuditEvent",
    "AuditLogger",
    # errors
    "ConfigurationError",
    "GatewayError",
    "NoUsableCredentialError",
    "SchemaTranslationError",
    "UnsupportedModelError",
    "UpstreamError",
    "UpstreamStatusError",
    "UpstreamTransportError",
]
