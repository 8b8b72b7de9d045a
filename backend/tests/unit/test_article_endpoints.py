"""Tests for the article dashboard endpoints: /auth, /topics, /article, /articles, /save-articles."""

from unittest.mock import AsyncMock, patch

import pytest

from articles.generator import Article, Topic
from errors import UpstreamError

TOPIC = {"id": "edge-ai", "title": "Edge AI", "description": "On-device inference", "category": "AI"}


class TestArticlesLogin:
    async def test_valid_password(self, test_client):
        resp = await test_client.post("/auth", json={"password": "test-articles-password"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["token"]

    async def test_wrong_password(self, test_client):
        resp = await test_client.post("/auth", json={"password": "nope"})
        assert resp.status_code == 401
        assert resp.json()["error"] == "Invalid password"

    async def test_moderation_key_does_not_open_articles(self, test_client):
        resp = await test_client.post("/auth", json={"password": "test-admin-key"})
        assert resp.status_code == 401

    async def test_unconfigured_password_returns_500(self, test_client, monkeypatch):
        monkeypatch.delenv("ARTICLES_ADMIN_KEY", raising=False)
        monkeypatch.delenv("ARTICLES_ADMIN_KEY_FILE", raising=False)
        resp = await test_client.post("/auth", json={"password": "x"})
        assert resp.status_code == 500


class TestAuthorization:
    @pytest.mark.parametrize("method,path,body", [
        ("GET", "/topics", None),
        ("POST", "/article", {"topic": TOPIC}),
        ("POST", "/articles", {"topics": [TOPIC]}),
        ("POST", "/save-articles", {"articles": []}),
    ])
    async def test_requires_token(self, test_client, method, path, body):
        resp = await test_client.request(method, path, json=body)
        assert resp.status_code == 401

    async def test_moderation_token_rejected(self, test_client, moderator_headers):
        resp = await test_client.get("/topics", headers=moderator_headers)
        assert resp.status_code == 401


class TestTopics:
    async def test_returns_topics(self, test_client, editor_headers):
        with patch("api.articles.generate_topics", new_callable=AsyncMock,
                   return_value=[Topic(**TOPIC)]):
            resp = await test_client.get("/topics", headers=editor_headers)
        assert resp.status_code == 200
        assert resp.json() == {"topics": [TOPIC]}

    async def test_malformed_llm_output_returns_502(self, test_client, editor_headers):
        err = UpstreamError("Language model returned malformed topics", status_code=502)
        with patch("api.articles.generate_topics", new_callable=AsyncMock, side_effect=err):
            resp = await test_client.get("/topics", headers=editor_headers)
        assert resp.status_code == 502
        assert resp.json()["success"] is False


class TestArticle:
    async def test_returns_content(self, test_client, editor_headers):
        with patch("api.articles.generate_article", new_callable=AsyncMock,
                   return_value="---\ntitle: \"Edge AI\"\n---\n\nBody\n") as gen:
            resp = await test_client.post("/article", json={"topic": TOPIC}, headers=editor_headers)
        assert resp.status_code == 200
        assert resp.json()["content"].endswith("Body\n")
        assert gen.call_args.args[0].id == "edge-ai"

    async def test_upstream_failure_returns_500(self, test_client, editor_headers):
        with patch("api.articles.generate_article", new_callable=AsyncMock,
                   side_effect=UpstreamError("Failed to generate article")):
            resp = await test_client.post("/article", json={"topic": TOPIC}, headers=editor_headers)
        assert resp.status_code == 500
        assert resp.json()["error"] == "Failed to generate article"

    async def test_missing_topic_returns_400(self, test_client, editor_headers):
        resp = await test_client.post("/article", json={}, headers=editor_headers)
        assert resp.status_code == 400


class TestArticlesBatch:
    async def test_reports_status_per_topic(self, test_client, editor_headers):
        result = [
            Article(topic=Topic(**TOPIC), status="completed", content="Body"),
            Article(topic=Topic(id="b", title="B"), status="error", error="Failed to generate article"),
        ]
        with patch("api.articles.generate_articles", new_callable=AsyncMock, return_value=result):
            resp = await test_client.post(
                "/articles",
                json={"topics": [TOPIC, {"id": "b", "title": "B"}]},
                headers=editor_headers,
            )
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert [a["status"] for a in data["articles"]] == ["completed", "error"]
        assert data["articles"][1]["error"] == "Failed to generate article"


class TestSaveArticles:
    async def test_writes_completed_articles(self, test_client, editor_headers, tmp_path, monkeypatch):
        from config import settings

        out_dir = tmp_path / "generated"
        monkeypatch.setattr(settings, "articles_dir", str(out_dir))
        resp = await test_client.post(
            "/save-articles",
            json={"articles": [
                {"status": "completed", "content": "# Edge", "topic": TOPIC},
                {"status": "error", "content": "", "topic": {"id": "b", "title": "B"}},
            ]},
            headers=editor_headers,
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["files"] == ["edge-ai.mdx"]
        assert data["message"] == f"Saved 1 articles to {out_dir} folder"
        assert (out_dir / "edge-ai.mdx").read_text(encoding="utf-8") == "# Edge"

    async def test_unwritable_directory_returns_500(self, test_client, editor_headers, tmp_path, monkeypatch):
        from config import settings

        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        monkeypatch.setattr(settings, "articles_dir", str(blocker / "sub"))
        resp = await test_client.post(
            "/save-articles",
            json={"articles": [{"status": "completed", "content": "x", "topic": TOPIC}]},
            headers=editor_headers,
        )
        assert resp.status_code == 500
        assert resp.json()["error"] == "Failed to save articles"
