"""Reddit digest service - categorize product feedback found in Reddit posts."""

import logging
from dataclasses import dataclass

import httpx

from feedback_hub.core.config import settings
from feedback_hub.core.errors import ParseError, UpstreamError
from feedback_hub.schemas.ai import RedditDigestOutput, RedditDigestResponse
from feedback_hub.services.ai_response_validation import parse_json_object, validate_model
from feedback_hub.services.inference_provider import InferenceProvider
from feedback_hub.services.prompts import get_prompt, to_prompt_json

logger = logging.getLogger(__name__)

# Post bodies are clipped before they are embedded in the prompt
MAX_SELFTEXT_CHARS = 2000


class RedditUpstreamError(UpstreamError):
    """Reddit search unreachable or answered non-2xx."""

    default_detail = "Reddit is unavailable right now. Please try again."


class DigestParseError(ParseError):
    """Model answer did not match the digest shape."""


@dataclass(frozen=True)
class RedditPost:
    title: str
    selftext: str
    score: int
    num_comments: int
    subreddit: str
    permalink: str


class RedditClient:
    """Minimal client for Reddit's public search listing."""

    def __init__(
        self,
        base_url: str = "https://www.reddit.com",
        user_agent: str = "feedback-hub/0.1",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.timeout = timeout
        self.transport = transport

    async def search_top_posts(self, query: str, limit: int, time_range: str) -> list[RedditPost]:
        """
        Top posts matching query within time_range.

        Raises:
            RedditUpstreamError: Request failed or the listing is malformed
        """
        params = {
            "q": query,
            "sort": "top",
            "t": time_range,
            "limit": limit,
            "type": "link",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self.transport,
                headers={"User-Agent": self.user_agent},
            ) as client:
                response = await client.get(f"{self.base_url}/search.json", params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Reddit search error {e.response.status_code}: {e.response.text[:500]}")
            raise RedditUpstreamError() from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Reddit search request failed: {e!r}")
            raise RedditUpstreamError() from e

        try:
            children = data["data"]["children"]
        except (KeyError, TypeError) as e:
            logger.error(f"Unexpected Reddit listing shape: {e!r}")
            raise RedditUpstreamError() from e

        posts = []
        for child in children[:limit]:
            post = child.get("data") or {}
            posts.append(
                RedditPost(
                    title=post.get("title") or "",
                    selftext=(post.get("selftext") or "")[:MAX_SELFTEXT_CHARS],
                    score=int(post.get("score") or 0),
                    num_comments=int(post.get("num_comments") or 0),
                    subreddit=post.get("subreddit") or "",
                    permalink=post.get("permalink") or "",
                )
            )
        return posts


def get_reddit_client() -> RedditClient:
    """FastAPI dependency returning a client configured from settings."""
    return RedditClient(
        base_url=settings.REDDIT_BASE_URL,
        user_agent=settings.REDDIT_USER_AGENT,
        timeout=settings.REDDIT_TIMEOUT_SECONDS,
    )


def _empty_digest() -> RedditDigestOutput:
    return RedditDigestOutput(bugs=[], features=[], suggestions=[], pros=[], cons=[], other=[])


async def build_reddit_digest(
    provider: InferenceProvider,
    reddit: RedditClient,
    search_term: str,
    top_n: int,
    time_range: str,
) -> RedditDigestResponse:
    """
    Fetch top Reddit posts for a term and have the model categorize them.

    Raises:
        RedditUpstreamError: Reddit search failed
        InferenceUpstreamError: Inference call failed
        DigestParseError: Model answer did not match the digest shape
    """
    posts = await reddit.search_top_posts(search_term, top_n, time_range)
    if not posts:
        logger.info(f"No Reddit posts for {search_term!r} in range {time_range}")
        return RedditDigestResponse(summary=_empty_digest(), post_count=0)

    posts_json = to_prompt_json(
        [
            {
                "title": post.title,
                "body": post.selftext,
                "score": post.score,
                "comments": post.num_comments,
                "subreddit": post.subreddit,
            }
            for post in posts
        ]
    )
    prompt = get_prompt("reddit_digest").render(
        search_term=search_term,
        post_count=len(posts),
        posts_json=posts_json,
    )
    answer = await provider.complete(prompt)

    digest = validate_model(RedditDigestOutput, parse_json_object(answer))
    if digest is None:
        logger.warning(f"Unparseable digest answer: {answer[:500]!r}")
        raise DigestParseError()
    return RedditDigestResponse(summary=digest, post_count=len(posts))
