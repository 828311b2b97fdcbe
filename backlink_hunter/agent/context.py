from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Optional

from backlink_hunter.config import Settings, get_settings
from backlink_hunter.services.outreach import OutreachWriter
from backlink_hunter.services.site_analysis import SiteAnalyzer
from backlink_hunter.services.store import Store


@dataclass
class AgentServices:
    """Collaborators handed to the orchestrator and every tool handler."""
    store: Store
    llm: Any
    search: Any
    metrics: Any
    contacts: Any
    fetch: Any
    settings: Settings = field(default_factory=get_settings)

    @property
    def writer(self) -> OutreachWriter:
        return OutreachWriter(self.llm)

    @property
    def site_analyzer(self) -> SiteAnalyzer:
        return SiteAnalyzer(self.llm, self.fetch, self.metrics)

    @classmethod
    def default(cls, store: Optional[Store] = None) -> "AgentServices":
        from backlink_hunter.services.store import MemoryStore
        from backlink_hunter.tools.contacts import ContactFinder
        from backlink_hunter.tools.fetch import PageFetcher
        from backlink_hunter.tools.llm import OllamaChatClient
        from backlink_hunter.tools.metrics import MetricsClient
        from backlink_hunter.tools.search import WebSearch
        return cls(
            store=store or MemoryStore(),
            llm=OllamaChatClient(),
            search=WebSearch(),
            metrics=MetricsClient(),
            contacts=ContactFinder(),
            fetch=PageFetcher(),
        )


@dataclass
class ToolContext:
    project_id: str
    org_id: str
    services: AgentServices

    @property
    def store(self) -> Store:
        return self.services.store
