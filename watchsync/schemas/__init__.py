"""
watchsync.schemas
~~~~~~~~~~~~~~~~~
Wire protocol models and HTTP response schemas.
"""
from watchsync.schemas.api_response import ApiResponse
from watchsync.schemas.messages import (
    PROTOCOL_VERSION,
    Client,
    MessageKind,
    QueueSnapshot,
    SyncMessage,
    Video,
    decode_message,
    encode_message,
)
from watchsync.schemas.session_info import SessionDetailData, SessionInfoData

# Call model_rebuild to resolve forward references in generic Pydantic models.
ApiResponse.model_rebuild()
