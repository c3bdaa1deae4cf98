"""
JobDispatchLib - Background compositing jobs

This module runs the texture compositing engine in a background execution
context and matches replies to callers by correlation id.
"""

from FV_Libs.JobDispatchLib.job_messages import (
    MessageType,
    ApplyTexturePayload,
    ApplyTextureRequest,
    SuccessReply,
    ErrorReply,
    JobReply,
    parse_request,
    parse_reply,
)
from FV_Libs.JobDispatchLib.job_worker import handle_message
from FV_Libs.JobDispatchLib.background_context import (
    BackgroundContext,
    ExecutorBackgroundContext,
)
from FV_Libs.JobDispatchLib.job_dispatcher import (
    DispatcherConfig,
    CorrelatedRequest,
    TextureJobDispatcher,
    generate_request_id,
)

__all__ = [
    "MessageType",
    "ApplyTexturePayload",
    "ApplyTextureRequest",
    "SuccessReply",
    "ErrorReply",
    "JobReply",
    "parse_request",
    "parse_reply",
    "handle_message",
    "BackgroundContext",
    "ExecutorBackgroundContext",
    "DispatcherConfig",
    "CorrelatedRequest",
    "TextureJobDispatcher",
    "generate_request_id",
]
