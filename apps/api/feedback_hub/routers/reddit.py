"""Reddit digest router."""

from fastapi import APIRouter, Depends, Request

from feedback_hub.core.deps import get_current_user, require_csrf_header
from feedback_hub.core.rate_limit import AI_LIMIT, limiter
from feedback_hub.schemas.ai import RedditDigestRequest, RedditDigestResponse
from feedback_hub.schemas.auth import CurrentUser
from feedback_hub.services.inference_provider import InferenceProvider, get_inference_provider
from feedback_hub.services.reddit_digest_service import (
    RedditClient,
    build_reddit_digest,
    get_reddit_client,
)

router = APIRouter()


@router.post(
    "/summary",
    response_model=RedditDigestResponse,
    dependencies=[Depends(require_csrf_header)],
)
@limiter.limit(AI_LIMIT)
async def reddit_summary(
    request: Request,
    data: RedditDigestRequest,
    user: CurrentUser = Depends(get_current_user),
    provider: InferenceProvider = Depends(get_inference_provider),
    reddit: RedditClient = Depends(get_reddit_client),
):
    """Categorize feedback from top Reddit posts matching a search term."""
    return await build_reddit_digest(
        provider,
        reddit,
        data.search_term.strip(),
        data.top_n,
        data.time_range,
    )
