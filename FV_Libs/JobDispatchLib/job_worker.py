"""
Background-side message handling.

handle_message runs inside the background execution context (a worker
process or thread). It must survive bad jobs: any failure while parsing or
compositing becomes an ERROR reply instead of an exception, so one bad
request never takes the context down.
"""

import logging
from typing import Any, Dict

from FV_Libs.ImageEditingLib.texture_compositing import composite
from FV_Libs.JobDispatchLib.job_messages import (
    ErrorReply,
    SuccessReply,
    parse_request,
    peek_message_id,
)
from FV_Libs.constants import UNKNOWN_JOB_FAILURE

logger = logging.getLogger(__name__)


def handle_message(message: Dict[str, Any]) -> Dict[str, Any]:
    """
    Run one APPLY_TEXTURE job and build the reply.

    Args:
        message: Wire dict {"type": "APPLY_TEXTURE", "id", "payload"}

    Returns:
        Wire dict for a SUCCESS reply (payload: Bitmap) or an ERROR reply
        (payload: error message string)
    """
    request_id = peek_message_id(message)
    try:
        request = parse_request(message)
        logger.debug(f"Background job {request.id} started")
        payload = request.payload
        result = composite(payload.original_image, payload.floor_mask, payload.texture_image)
        logger.debug(f"Background job {request.id} finished")
        return SuccessReply(id=request.id, payload=result).to_dict()
    except Exception as e:
        text = str(e) or UNKNOWN_JOB_FAILURE
        logger.warning(f"Background job {request_id or '<no id>'} failed: {text}")
        return ErrorReply(id=request_id, payload=text).to_dict()
