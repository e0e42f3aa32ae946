"""
Pytest Configuration and Shared Fixtures

In-memory persistence, scripted providers and a clean settings environment.
"""

from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from aeo.adapters.llm import BaseLLMProvider, LLMRequest, LLMResponse, ProviderRateLimiter
from aeo.config import get_settings
from aeo.schemas.brand import BrandBible
from aeo.services.embedding_service import BrandSimilarityEngine


ENV_KEYS = [
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "GEMINI_API_KEY",
    "PPLX_API_KEY",
    "XAI_API_KEY",
    "OPENAI_DEFAULT_MODEL",
    "ANTHROPIC_DEFAULT_MODEL",
    "GEMINI_DEFAULT_MODEL",
    "PERPLEXITY_DEFAULT_MODEL",
    "GROK_DEFAULT_MODEL",
    "BRAND_DESCRIPTION",
    "BRAND_NAME_VARIANTS",
    "SLACK_WEBHOOK_URL",
    "MENTION_ALERT_THRESHOLD",
    "WEBHOOK_SECRET",
    "DEBUG",
]


# ============================================================================
# Settings
# ============================================================================

@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Every test starts from built-in defaults, ignoring any local .env"""
    monkeypatch.chdir(tmp_path)
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def set_env(monkeypatch):
    """Set environment variables and reload settings"""
    def _set(**values: str) -> None:
        for key, value in values.items():
            monkeypatch.setenv(key, value)
        get_settings.cache_clear()
    return _set


# ============================================================================
# In-memory persistence
# ============================================================================

class FakeResult:
    def __init__(self, rows: List[Any]):
        self._rows = list(rows)

    def scalars(self) -> "FakeResult":
        return self

    def all(self) -> List[Any]:
        return list(self._rows)

    def first(self) -> Optional[Any]:
        return self._rows[0] if self._rows else None


class FakeDatabase:
    """
    Stand-in for the async session factory.

    Selects return whatever was seeded in ``rows`` for the selected model
    (filters are not applied). Added objects and executed statements are
    recorded for assertions.
    """

    def __init__(self):
        self.rows: Dict[type, List[Any]] = defaultdict(list)
        self.added: List[Any] = []
        self.executed: List[Any] = []
        self.commits = 0
        self.read_error: Optional[Exception] = None

    def seed(self, *objects: Any) -> None:
        for obj in objects:
            self.rows[type(obj)].append(obj)

    def of_type(self, model: type) -> List[Any]:
        return [o for o in self.added if isinstance(o, model)]

    def updates(self, model: type) -> List[Dict[str, Any]]:
        """Compiled parameters of every UPDATE issued against ``model``"""
        return [
            stmt.compile().params
            for stmt in self.executed
            if getattr(stmt, "is_update", False) and stmt.table.name == model.__tablename__
        ]

    def session(self) -> "FakeSession":
        return FakeSession(self)

    @asynccontextmanager
    async def session_factory(self):
        yield self.session()
        self.commits += 1


class FakeSession:
    def __init__(self, db: FakeDatabase):
        self.db = db

    def add(self, obj: Any) -> None:
        self.db.added.append(obj)

    async def merge(self, obj: Any) -> Any:
        self.db.added.append(obj)
        return obj

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self.db.commits += 1

    async def rollback(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def execute(self, stmt: Any) -> FakeResult:
        self.db.executed.append(stmt)
        if getattr(stmt, "is_select", False):
            if self.db.read_error is not None:
                raise self.db.read_error
            entity = stmt.column_descriptions[0]["entity"]
            return FakeResult(self.db.rows.get(entity, []))
        return FakeResult([])


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


# ============================================================================
# Providers
# ============================================================================

Responder = Callable[[LLMRequest, str], LLMResponse]


class ScriptedProvider(BaseLLMProvider):
    """Provider whose raw call is a Python function; the retry/limit path is real"""

    def __init__(self, name: str, responder: Responder, limiter: Optional[ProviderRateLimiter] = None):
        self.name = name
        super().__init__(
            api_key="test-key",
            model=None,
            limiter=limiter or ProviderRateLimiter(poll_interval=0.001),
            max_attempts=3,
            retry_min_wait=0,
            retry_max_wait=0,
        )
        self.responder = responder
        self.requests: List[LLMRequest] = []

    async def _do_chat(self, request: LLMRequest, model: str) -> LLMResponse:
        self.requests.append(request)
        return self.responder(request, model)


def reply_with(text: str, tokens_in: int = 100, tokens_out: int = 200) -> Responder:
    def _reply(request: LLMRequest, model: str) -> LLMResponse:
        return LLMResponse(provider="", model=model, text=text, tokens_in=tokens_in, tokens_out=tokens_out)
    return _reply


@pytest.fixture
def make_provider():
    """Factory: make_provider(name, responder) -> ScriptedProvider"""
    def _make(name: str, responder: Responder) -> ScriptedProvider:
        provider = ScriptedProvider(name, responder)

        # Responses carry the provider name the way real adapters do
        def _named(request: LLMRequest, model: str) -> LLMResponse:
            response = responder(request, model)
            response.provider = name
            return response

        provider.responder = _named
        return provider
    return _make


# ============================================================================
# Collaborators
# ============================================================================

@pytest.fixture
def similarity() -> MagicMock:
    engine = MagicMock(spec=BrandSimilarityEngine)
    engine.compute_brand_similarity = AsyncMock(return_value=0.75)
    return engine


@pytest.fixture
def notifier() -> MagicMock:
    mock = MagicMock()
    mock.notify_job_completed = AsyncMock(return_value=True)
    mock.notify_job_started = AsyncMock(return_value=True)
    mock.notify_mention_alert = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def brand() -> BrandBible:
    return BrandBible(
        id=1,
        name="Matey AI",
        url="https://matey.ai",
        tagline="Discovery, organized",
        mission="Help defenders win on the facts.",
        value_proposition="AI discovery review for public defenders.",
        industry="Legal Technology",
        geo_focus=["US"],
        topic_pillars=["discovery review", "legal transcription"],
        target_audiences=[
            {"name": "Public Defenders", "jobsToBeDone": ["organize case evidence"]},
        ],
        terminology_dos=["evidence"],
        terminology_donts=["guaranteed acquittal"],
        product_features=["Transcription", "Entity search"],
        benefits=["Saves hours"],
        competitors=["Clio", "LegalZoom"],
        differentiators=["Free for court-appointed matters"],
        boilerplate_about="Matey AI builds discovery tools for defense teams.",
    )
