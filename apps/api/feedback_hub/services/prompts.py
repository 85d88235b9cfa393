"""Central registry for AI prompt templates.

Templates use str.format placeholders; literal braces in the expected JSON
shapes are doubled.
"""

import json
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class PromptTemplate:
    key: str
    version: str
    template: str

    def render(self, **kwargs) -> str:
        return self.template.format(**kwargs)


def to_prompt_json(data: Any) -> str:
    """Stable JSON rendering for embedding domain data in prompts."""
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


PROMPTS: dict[str, PromptTemplate] = {
    "bulk_triage": PromptTemplate(
        key="bulk_triage",
        version="v1",
        template="""{product_context}

You are a product manager triaging user-reported tickets for the product above. Analyze each ticket and assign:
1. **Priority**: "low", "medium", or "high" (how urgent/impactful)
2. **Type**: "bug", "feature", or "tweak" (what kind of issue/request)

Tickets to triage:
{tickets_json}

Return ONLY a JSON array with this exact structure (no markdown, no explanation):
[
  {{ "id": "ticket_id_1", "priority": "low|medium|high", "type": "bug|feature|tweak" }},
  {{ "id": "ticket_id_2", "priority": "low|medium|high", "type": "bug|feature|tweak" }},
  ...
]""",
    ),
    "ticket_triage": PromptTemplate(
        key="ticket_triage",
        version="v1",
        template="""You are a ticket triage assistant. Analyze the following support ticket and determine:
1. Priority level (low, medium, or high)
2. Type/category (bug, feature, or tweak)

Ticket Title: {title}
Ticket Description: {description}

Respond ONLY with valid JSON in this exact format (no markdown, no code blocks, just the raw JSON):
{{"priority": "low|medium|high", "type": "bug|feature|tweak"}}""",
    ),
    "org_summary": PromptTemplate(
        key="org_summary",
        version="v1",
        template="""You are a helpful assistant that summarizes user feedback and feature requests.
Please provide a comprehensive summary of the following tickets for an organization.

Include in your summary:
1. Overall statistics (total tickets, breakdown by type, status, and priority)
2. Key themes and patterns
3. Top priorities based on votes and importance
4. Notable individual tickets or feature requests

Tickets ({ticket_count} total):
{tickets_json}

Provide a concise summary that helps the organization understand their feedback landscape. Do not use bullet points.""",
    ),
    "reddit_digest": PromptTemplate(
        key="reddit_digest",
        version="v1",
        template="""You are analyzing Reddit posts that mention "{search_term}" to extract product feedback.

Posts ({post_count} total):
{posts_json}

Categorize the feedback found in these posts. Return ONLY a JSON object with this exact structure (no markdown, no explanation):
{{
  "bugs": ["bugs mentioned in the posts"],
  "features": ["feature requests or ideas"],
  "suggestions": ["general suggestions or improvements"],
  "pros": ["positive feedback or things working well"],
  "cons": ["negative feedback or pain points"],
  "other": ["other notable feedback that does not fit above"]
}}
Use empty arrays for categories with no feedback.""",
    ),
}


def get_prompt(key: str) -> PromptTemplate:
    """Fetch a prompt template or raise KeyError."""
    return PROMPTS[key]
