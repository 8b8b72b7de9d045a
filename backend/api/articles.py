"""Article dashboard API: login, topic suggestions, drafting, saving.

Every endpoint except ``/auth`` requires a bearer token issued by ``/auth``.
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from articles.generator import (
    Article,
    ArticleBatchItem,
    Topic,
    generate_article,
    generate_articles,
    generate_topics,
)
from articles.storage import save_articles
from auth.admin import check_shared_secret
from auth.jwt import ADMIN_TOKEN_EXPIRE_MINUTES, SCOPE_ARTICLES, create_admin_token, require_article_editor
from config import settings
from errors import StoreError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["articles"])


class PasswordRequest(BaseModel):
    password: str | None = None


class SessionResponse(BaseModel):
    success: bool = True
    token: str
    expiresIn: int = ADMIN_TOKEN_EXPIRE_MINUTES * 60


class TopicsResponse(BaseModel):
    topics: list[Topic]


class ArticleRequest(BaseModel):
    topic: Topic


class ArticleResponse(BaseModel):
    content: str


class ArticleBatchRequest(BaseModel):
    topics: list[Topic]


class ArticleBatchResponse(BaseModel):
    success: bool = True
    articles: list[Article]


class SaveArticlesRequest(BaseModel):
    articles: list[ArticleBatchItem]


class SaveArticlesResponse(BaseModel):
    success: bool = True
    message: str
    files: list[str]


@router.post("/auth", response_model=SessionResponse)
async def articles_login(body: PasswordRequest):
    """Exchange the article dashboard password for a session token."""
    check_shared_secret(body.password, settings.articles_admin_key, rejection="Invalid password")
    return SessionResponse(token=create_admin_token(SCOPE_ARTICLES))


@router.get("/topics", response_model=TopicsResponse)
async def topics(_editor: dict = Depends(require_article_editor)):
    """Suggest a fresh batch of technology topics."""
    return TopicsResponse(topics=await generate_topics())


@router.post("/article", response_model=ArticleResponse)
async def article(body: ArticleRequest, _editor: dict = Depends(require_article_editor)):
    """Draft one article for a topic."""
    return ArticleResponse(content=await generate_article(body.topic))


@router.post("/articles", response_model=ArticleBatchResponse)
async def articles(body: ArticleBatchRequest, _editor: dict = Depends(require_article_editor)):
    """Draft articles for several topics at once; failures are reported per topic."""
    return ArticleBatchResponse(articles=await generate_articles(body.topics))


@router.post("/save-articles", response_model=SaveArticlesResponse)
def save(body: SaveArticlesRequest, _editor: dict = Depends(require_article_editor)):
    """Write completed articles to the configured articles directory."""
    try:
        files = save_articles(body.articles, settings.articles_dir)
    except OSError as e:
        raise StoreError("Failed to save articles", details=str(e)) from e
    return SaveArticlesResponse(
        message=f"Saved {len(files)} articles to {settings.articles_dir} folder",
        files=files,
    )
