"""Write finished articles to disk as ``<topic id>.mdx`` files."""

import logging
import re
from pathlib import Path

from articles.generator import ArticleBatchItem

logger = logging.getLogger(__name__)

ARTICLE_EXTENSION = ".mdx"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


def article_filename(topic_id: str) -> str:
    """File name for a topic, restricted to characters safe in a path segment."""
    stem = _UNSAFE_CHARS.sub("-", topic_id).strip("-") or "article"
    return f"{stem}{ARTICLE_EXTENSION}"


def save_articles(articles: list[ArticleBatchItem], output_dir: str | Path) -> list[str]:
    """Write every completed article and return the file names written.

    The directory is created if needed. Articles in any other state are
    skipped.

    Raises:
        OSError: If the directory or a file cannot be written.
    """
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)

    saved: list[str] = []
    for article in articles:
        if article.status != "completed":
            continue
        filename = article_filename(article.topic.id)
        (directory / filename).write_text(article.content, encoding="utf-8")
        saved.append(filename)

    logger.info("Saved %d article(s) to %s", len(saved), directory)
    return saved
