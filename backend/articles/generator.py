"""Topic suggestion and article drafting via an OpenAI-compatible LLM API."""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Literal

from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from config import settings
from errors import UpstreamError

logger = logging.getLogger(__name__)

ArticleStatus = Literal["generating", "completed", "error"]


class Topic(BaseModel):
    id: str = ""
    title: str
    description: str = ""
    category: str = ""


class TopicList(BaseModel):
    topics: list[Topic]


class Article(BaseModel):
    topic: Topic
    status: ArticleStatus = "generating"
    content: str = ""
    error: str | None = None


class ArticleBatchItem(BaseModel):
    """An article as sent back by the dashboard for saving."""

    status: ArticleStatus
    content: str = ""
    topic: Topic = Field(default_factory=lambda: Topic(title=""))


_llm_client: AsyncOpenAI | None = None


def _get_llm_client() -> AsyncOpenAI:
    global _llm_client
    if _llm_client is None:
        _llm_client = AsyncOpenAI(api_key=settings.llm_api_key, base_url=settings.llm_base_url)
    return _llm_client


_TOPICS_SYSTEM_PROMPT = (
    "You are an editor for a technology publication. Respond with a JSON object "
    'of the form {"topics": [{"id": ..., "title": ..., "description": ..., '
    '"category": ...}]} and nothing else.'
)


def _topics_prompt(count: int) -> str:
    return (
        f"Generate {count} diverse and current technology topics that would make for "
        "engaging articles. Include topics from different categories like AI, web "
        "development, cybersecurity, mobile tech, blockchain, cloud computing, IoT, and "
        "emerging technologies.\n\n"
        "For each topic, provide:\n"
        "- A unique ID (kebab-case)\n"
        "- An engaging title\n"
        "- A brief description of what the article would cover\n"
        "- A category classification\n\n"
        "Make sure the topics are current, relevant, and would appeal to tech "
        "professionals and enthusiasts."
    )


async def generate_topics(count: int | None = None) -> list[Topic]:
    """Ask the model for ``count`` article topics in a single call.

    Raises:
        UpstreamError: The API call failed (500) or returned output that does
            not match the topic schema (502).
    """
    count = count or settings.topic_count
    client = _get_llm_client()
    try:
        response = await client.chat.completions.create(
            model=settings.llm_model,
            messages=[
                {"role": "system", "content": _TOPICS_SYSTEM_PROMPT},
                {"role": "user", "content": _topics_prompt(count)},
            ],
            response_format={"type": "json_object"},
        )
    except OpenAIError as e:
        raise UpstreamError("Failed to generate topics", details=str(e)) from e

    raw = response.choices[0].message.content or ""
    try:
        topics = TopicList.model_validate(json.loads(raw)).topics
    except (json.JSONDecodeError, PydanticValidationError) as e:
        logger.error("Topic response did not match schema: %s", raw[:500])
        raise UpstreamError(
            "Language model returned malformed topics", status_code=502, details=str(e)
        ) from e

    logger.info("Generated %d topics", len(topics))
    return topics


def front_matter(topic: Topic, published_at: datetime | None = None) -> str:
    """YAML metadata header placed at the top of every article."""
    published_at = published_at or datetime.now(timezone.utc)
    return (
        "---\n"
        f"title: {json.dumps(topic.title)}\n"
        f"description: {json.dumps(topic.description)}\n"
        f"category: {json.dumps(topic.category)}\n"
        f'publishedAt: "{published_at.isoformat()}"\n'
        "---\n\n"
    )


def _article_prompt(topic: Topic) -> str:
    return (
        f'Write a comprehensive, well-structured article about "{topic.title}" in MDX format.\n\n'
        "Requirements:\n"
        "- Include a compelling title and subtitle\n"
        "- Structure with clear headings (##, ###)\n"
        "- Add relevant code examples where appropriate using ```language syntax\n"
        "- Include practical examples and real-world applications\n"
        "- Use callout boxes for important information\n"
        "- Add a conclusion section\n"
        "- Make it engaging and informative for tech professionals\n"
        "- Length should be 800-1200 words\n"
        f"- Focus on: {topic.description}\n\n"
        "MDX Components you can use:\n"
        '- <Callout type="info|warning|success">content</Callout>\n'
        '- <CodeBlock language="javascript|python|bash">code</CodeBlock>\n'
        "- Standard markdown syntax for lists, links, emphasis\n\n"
        "Do not write front matter; start directly with the article body."
    )


async def generate_article(topic: Topic) -> str:
    """Draft one article, returned with its front-matter header.

    Raises:
        UpstreamError: The API call failed.
    """
    client = _get_llm_client()
    try:
        response = await client.chat.completions.create(
            model=settings.llm_model,
            messages=[{"role": "user", "content": _article_prompt(topic)}],
        )
    except OpenAIError as e:
        raise UpstreamError("Failed to generate article", details=str(e)) from e

    body = (response.choices[0].message.content or "").strip()
    logger.info("Generated article for '%s' (%d chars)", topic.id or topic.title, len(body))
    return front_matter(topic) + body + "\n"


async def _generate_one(topic: Topic) -> Article:
    article = Article(topic=topic)
    try:
        article.content = await generate_article(topic)
        article.status = "completed"
    except UpstreamError as e:
        logger.warning("Article for '%s' failed: %s", topic.id, e.details or e.message)
        article.status = "error"
        article.error = e.message
    except Exception as e:
        logger.exception("Unexpected failure drafting '%s'", topic.id)
        article.status = "error"
        article.error = str(e) or "Failed to generate article"
    return article


async def generate_articles(topics: list[Topic]) -> list[Article]:
    """Draft one article per topic concurrently.

    Every request runs to completion; a failure marks only its own article
    ``error``. Results come back in the order of ``topics``.
    """
    articles = await asyncio.gather(*(_generate_one(t) for t in topics))
    completed = sum(1 for a in articles if a.status == "completed")
    logger.info("Article batch finished: %d/%d completed", completed, len(articles))
    return list(articles)
