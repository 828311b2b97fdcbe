import os
import sys
from typing import Dict, List, Optional

import pytest

# Ensure the repository root is on sys.path so `import backlink_hunter` works
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from backlink_hunter.agent.context import AgentServices, ToolContext
from backlink_hunter.config import Settings
from backlink_hunter.schema import (
    DomainContact, DomainMetrics, ModelResponse, Organisation, PlanTier, Project, SearchResult,
)
from backlink_hunter.services.store import MemoryStore
from backlink_hunter.tools.llm import LLMNotReady


class FakeLLM:
    """Scripted chat responses; generate() returns `generated` or raises when it is None."""

    def __init__(self, responses: Optional[List] = None, generated: Optional[str] = None):
        self.responses = list(responses or [])
        self.generated = generated
        self.calls = []

    async def create(self, system, tools, messages):
        self.calls.append({"system": system, "tools": tools, "messages": [dict(m) for m in messages]})
        if not self.responses:
            raise LLMNotReady("no scripted response")
        nxt = self.responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt if isinstance(nxt, ModelResponse) else ModelResponse.model_validate(nxt)

    async def generate(self, prompt, system="", temperature=0.3):
        if self.generated is None:
            raise LLMNotReady("offline")
        return self.generated


class FakeSearch:
    def __init__(self, results: Optional[List[SearchResult]] = None):
        self.results = results or []
        self.queries = []

    async def search(self, query):
        self.queries.append(query)
        return list(self.results)


class FakeMetrics:
    def __init__(self, by_domain: Optional[Dict[str, DomainMetrics]] = None):
        self.by_domain = by_domain or {}

    async def domain_metrics(self, domain):
        return self.by_domain.get(domain)


class FakeContacts:
    def __init__(self, by_domain: Optional[Dict] = None):
        self.by_domain = by_domain or {}

    async def best_contact(self, domain):
        found = self.by_domain.get(domain)
        if isinstance(found, Exception):
            raise found
        return found


class FakeFetch:
    def __init__(self, text: Optional[str] = "Title: Kitchens\nWe design kitchens."):
        self.text = text

    async def condensed_text(self, url):
        return self.text


@pytest.fixture
def settings():
    return Settings(discovery_locale="UK", discovery_max_queries=20, max_turns=10)


@pytest.fixture
def org():
    return Organisation(name="Acme Kitchens", plan=PlanTier.starter, monthly_prospect_limit=200)


@pytest.fixture
def project(org):
    return Project(
        org_id=org.id,
        name="Acme",
        target_url="https://www.acme-kitchens.co.uk",
        target_keywords=["kitchen design", "kitchen renovation"],
        niche="Kitchens",
    )


@pytest.fixture
def store(org, project):
    s = MemoryStore()
    s.add_organisation(org)
    s.add_project(project)
    return s


@pytest.fixture
def services(store, settings):
    return AgentServices(
        store=store,
        llm=FakeLLM(),
        search=FakeSearch(),
        metrics=FakeMetrics(),
        contacts=FakeContacts(),
        fetch=FakeFetch(),
        settings=settings,
    )


@pytest.fixture
def ctx(services, project, org):
    return ToolContext(project_id=project.id, org_id=org.id, services=services)


def contact(email="editor@homeblog.co.uk", name="Jo Editor", role="Editor", confidence=90):
    return DomainContact(name=name, email=email, role=role, confidence=confidence)
