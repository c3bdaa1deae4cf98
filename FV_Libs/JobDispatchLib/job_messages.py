"""
Messages exchanged with the background compositing context.

On the wire every message is a plain dict ``{"type", "id", "payload"}``.
In code the three shapes are a closed set of frozen dataclasses:

    ApplyTextureRequest  -> {"type": "APPLY_TEXTURE", "id", "payload": {...}}
    SuccessReply         -> {"type": "SUCCESS", "id", "payload": Bitmap}
    ErrorReply           -> {"type": "ERROR", "id", "payload": str}

parse_request / parse_reply turn dicts back into the typed form and raise
MalformedMessageError for anything outside the schema.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Union

from FV_Libs.ImageEditingLib.bitmap_models import Bitmap, Mask, TextureTile
from FV_Libs.constants import (
    FIELD_FLOOR_MASK,
    FIELD_ID,
    FIELD_ORIGINAL_IMAGE,
    FIELD_PAYLOAD,
    FIELD_TEXTURE_IMAGE,
    FIELD_TYPE,
    MESSAGE_APPLY_TEXTURE,
    MESSAGE_ERROR,
    MESSAGE_SUCCESS,
)
from FV_Libs.errors import MalformedMessageError


class MessageType(str, Enum):
    APPLY_TEXTURE = MESSAGE_APPLY_TEXTURE
    SUCCESS = MESSAGE_SUCCESS
    ERROR = MESSAGE_ERROR


# (wire key, attribute, type)
_PAYLOAD_FIELDS = (
    (FIELD_ORIGINAL_IMAGE, "original_image", Bitmap),
    (FIELD_FLOOR_MASK, "floor_mask", Mask),
    (FIELD_TEXTURE_IMAGE, "texture_image", TextureTile),
)


@dataclass(frozen=True)
class ApplyTexturePayload:
    """
    Inputs for one compositing job.

    Attributes:
        original_image: Photograph to texture
        floor_mask: Coverage aligned to the photograph
        texture_image: Tile to repeat over the covered region
    """
    original_image: Bitmap
    floor_mask: Mask
    texture_image: TextureTile

    def __post_init__(self):
        """Reject values the compositor cannot use before they are posted."""
        for key, attr, value_type in _PAYLOAD_FIELDS:
            value = getattr(self, attr)
            if not isinstance(value, value_type):
                raise TypeError(
                    f"Payload '{key}' must be a {value_type.__name__}, "
                    f"got {type(value).__name__}"
                )

    def to_dict(self) -> Dict[str, Any]:
        return {
            FIELD_ORIGINAL_IMAGE: self.original_image,
            FIELD_FLOOR_MASK: self.floor_mask,
            FIELD_TEXTURE_IMAGE: self.texture_image,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ApplyTexturePayload":
        """
        Build a payload from its wire dict, checking value types.

        Raises:
            MalformedMessageError: If a key is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise MalformedMessageError(f"Payload must be a dict, got {type(data).__name__}")

        for key, _, value_type in _PAYLOAD_FIELDS:
            if key not in data:
                raise MalformedMessageError(f"Payload is missing '{key}'")
            if not isinstance(data[key], value_type):
                raise MalformedMessageError(
                    f"Payload '{key}' must be a {value_type.__name__}, "
                    f"got {type(data[key]).__name__}"
                )

        return cls(
            original_image=data[FIELD_ORIGINAL_IMAGE],
            floor_mask=data[FIELD_FLOOR_MASK],
            texture_image=data[FIELD_TEXTURE_IMAGE],
        )


@dataclass(frozen=True)
class ApplyTextureRequest:
    id: str
    payload: ApplyTexturePayload

    type = MessageType.APPLY_TEXTURE

    def to_dict(self) -> Dict[str, Any]:
        return {
            FIELD_TYPE: self.type.value,
            FIELD_ID: self.id,
            FIELD_PAYLOAD: self.payload.to_dict(),
        }


@dataclass(frozen=True)
class SuccessReply:
    id: str
    payload: Bitmap

    type = MessageType.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {FIELD_TYPE: self.type.value, FIELD_ID: self.id, FIELD_PAYLOAD: self.payload}


@dataclass(frozen=True)
class ErrorReply:
    id: str
    payload: str

    type = MessageType.ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {FIELD_TYPE: self.type.value, FIELD_ID: self.id, FIELD_PAYLOAD: self.payload}


JobReply = Union[SuccessReply, ErrorReply]
JobMessage = Union[ApplyTextureRequest, SuccessReply, ErrorReply]


def _read_envelope(message: Any):
    if not isinstance(message, dict):
        raise MalformedMessageError(f"Message must be a dict, got {type(message).__name__}")

    for key in (FIELD_TYPE, FIELD_ID, FIELD_PAYLOAD):
        if key not in message:
            raise MalformedMessageError(f"Message is missing '{key}'")

    message_id = message[FIELD_ID]
    if not isinstance(message_id, str) or not message_id:
        raise MalformedMessageError(f"Message id must be a non-empty string, got {message_id!r}")

    try:
        message_type = MessageType(message[FIELD_TYPE])
    except ValueError:
        raise MalformedMessageError(f"Unknown message type: {message[FIELD_TYPE]!r}")

    return message_type, message_id, message[FIELD_PAYLOAD]


def parse_request(message: Any) -> ApplyTextureRequest:
    """
    Parse a wire dict into a request.

    Raises:
        MalformedMessageError: If the dict is not a valid APPLY_TEXTURE request
    """
    message_type, message_id, payload = _read_envelope(message)
    if message_type is not MessageType.APPLY_TEXTURE:
        raise MalformedMessageError(f"Unknown message type: {message_type.value}")
    return ApplyTextureRequest(id=message_id, payload=ApplyTexturePayload.from_dict(payload))


def parse_reply(message: Any) -> JobReply:
    """
    Parse a wire dict into a SUCCESS or ERROR reply.

    Raises:
        MalformedMessageError: If the dict is not a valid reply
    """
    message_type, message_id, payload = _read_envelope(message)

    if message_type is MessageType.SUCCESS:
        if not isinstance(payload, Bitmap):
            raise MalformedMessageError(
                f"SUCCESS payload must be a Bitmap, got {type(payload).__name__}"
            )
        return SuccessReply(id=message_id, payload=payload)

    if message_type is MessageType.ERROR:
        return ErrorReply(id=message_id, payload=str(payload))

    raise MalformedMessageError(f"Expected a reply, got {message_type.value}")


def peek_message_id(message: Any) -> str:
    """Best-effort id lookup on a message that may not parse."""
    if isinstance(message, dict):
        message_id = message.get(FIELD_ID)
        if isinstance(message_id, str):
            return message_id
    return ""
