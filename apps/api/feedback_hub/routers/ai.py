"""AI passthrough router."""

import logging

from fastapi import APIRouter, Depends, Request

from feedback_hub.core.deps import get_current_user, require_csrf_header
from feedback_hub.core.rate_limit import AI_LIMIT, limiter
from feedback_hub.core.structured_logging import build_log_context
from feedback_hub.schemas.ai import CompletionRequest, CompletionResponse
from feedback_hub.schemas.auth import CurrentUser
from feedback_hub.services.inference_provider import (
    ImagePayload,
    InferenceProvider,
    get_inference_provider,
)

router = APIRouter()
logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME_TYPE = "image/png"


@router.post(
    "/complete",
    response_model=CompletionResponse,
    dependencies=[Depends(require_csrf_header)],
)
@limiter.limit(AI_LIMIT)
async def complete(
    request: Request,
    data: CompletionRequest,
    user: CurrentUser = Depends(get_current_user),
    provider: InferenceProvider = Depends(get_inference_provider),
):
    """Send a raw prompt (optionally with an image) to the inference provider."""
    image = None
    if data.image_base64:
        image = ImagePayload(
            content_base64=data.image_base64,
            mime_type=data.image_mime_type or DEFAULT_IMAGE_MIME_TYPE,
        )
    output = await provider.complete(data.prompt, image=image, model=data.model)
    logger.info(
        f"AI completion served ({len(output)} chars)",
        extra=build_log_context(user_id=user.user_id, route="/ai/complete", method="POST"),
    )
    return CompletionResponse(output=output)
