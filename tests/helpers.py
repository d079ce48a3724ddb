"""Shared fakes for the test suite."""

import json
import re
from typing import Callable, Optional, Union

import httpx

from seo_autofix.analyzers.base import SiteScorer
from seo_autofix.config import Settings
from seo_autofix.fixer.content_client import ContentClient
from seo_autofix.fixer.text_generation import TextProvider
from seo_autofix.models import TrackedIssue, Website

_ITEM_PATH = re.compile(r"^/api/content/(posts|pages)(?:/(\d+))?$")


def make_item(item_id: int, title: str = "", content: str = "", excerpt: str = "") -> dict:
    """Content item in the platform's JSON shape."""
    return {
        "id": item_id,
        "title": {"rendered": title},
        "content": {"rendered": content},
        "excerpt": {"rendered": excerpt},
        "status": "publish",
    }


class FakeContentPlatform:
    """In-memory content platform served through httpx.MockTransport."""

    def __init__(
        self,
        posts: Optional[list[dict]] = None,
        pages: Optional[list[dict]] = None,
        me_status: int = 200,
        update_errors: Optional[dict[int, tuple[int, str]]] = None,
        list_errors: Optional[dict[str, int]] = None,
    ):
        self.collections = {
            "posts": {item["id"]: item for item in posts or []},
            "pages": {item["id"]: item for item in pages or []},
        }
        self.me_status = me_status
        self.update_errors = update_errors or {}
        self.list_errors = list_errors or {}
        self.requests: list[httpx.Request] = []
        self.updates: list[tuple[str, int, dict]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/api/content/users/me":
            if self.me_status != 200:
                return httpx.Response(self.me_status, text="denied")
            return httpx.Response(200, json={"id": 1, "name": "admin"})

        match = _ITEM_PATH.match(path)
        if not match:
            return httpx.Response(404, text="route not found")

        collection, item_id = match.group(1), match.group(2)
        if request.method == "GET" and item_id is None:
            if collection in self.list_errors:
                return httpx.Response(self.list_errors[collection], text="list failed")
            return httpx.Response(200, json=list(self.collections[collection].values()))

        if request.method == "POST" and item_id is not None:
            item_id = int(item_id)
            if item_id in self.update_errors:
                status, body = self.update_errors[item_id]
                return httpx.Response(status, text=body)
            item = self.collections[collection].get(item_id)
            if item is None:
                return httpx.Response(404, text="Item not found")
            data = json.loads(request.content)
            for key, value in data.items():
                item[key] = {"rendered": value}
            self.updates.append((collection, item_id, data))
            return httpx.Response(200, json=item)

        return httpx.Response(405, text="method not allowed")

    def item(self, collection: str, item_id: int) -> dict:
        return self.collections[collection][item_id]

    def content(self, collection: str, item_id: int) -> str:
        return self.item(collection, item_id)["content"]["rendered"]

    def client_factory(self, credentials) -> ContentClient:
        return ContentClient(credentials, transport=httpx.MockTransport(self.handler))


class ScriptedProvider(TextProvider):
    """Text provider returning canned responses or raising."""

    def __init__(
        self,
        name: str = "scripted",
        priority: int = 1,
        responses: Union[list[str], Callable[[str, str], str], None] = None,
        error: Optional[Exception] = None,
        available: bool = True,
    ):
        self.name = name
        self.priority = priority
        self.responses = responses if responses is not None else []
        self.error = error
        self.available = available
        self.calls: list[tuple[str, str]] = []

    def is_available(self) -> bool:
        return self.available

    def complete(self, system_prompt, user_prompt, max_tokens, temperature) -> str:
        self.calls.append((system_prompt, user_prompt))
        if self.error is not None:
            raise self.error
        if callable(self.responses):
            return self.responses(system_prompt, user_prompt)
        return self.responses.pop(0)


def make_settings(**overrides) -> Settings:
    values = dict(
        anthropic_api_key=None,
        openai_api_key=None,
        reanalysis_delay_seconds=0,
        scan_limit=10,
        fetch_page_size=50,
        fixed_cooldown_days=7,
    )
    values.update(overrides)
    return Settings(**values)


def make_website(website_id: str = "site-1", user_id: str = "user-1", **overrides) -> Website:
    values = dict(
        id=website_id,
        user_id=user_id,
        name="Example Site",
        url="https://example.com",
        username="admin",
        secret="app-password",
    )
    values.update(overrides)
    return Website(**values)


def make_issue(issue_id: str, issue_type: str, severity: str = "warning", **overrides) -> TrackedIssue:
    values = dict(
        id=issue_id,
        website_id="site-1",
        user_id="user-1",
        issue_type=issue_type,
        issue_title=issue_type.replace("_", " ").capitalize(),
        severity=severity,
    )
    values.update(overrides)
    return TrackedIssue(**values)


class StaticScorer(SiteScorer):
    """Site scorer returning a fixed score or raising."""

    def __init__(self, value: Optional[float] = None, error: Optional[Exception] = None):
        self.value = value
        self.error = error
        self.calls = 0

    def score(self, website) -> float:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.value
