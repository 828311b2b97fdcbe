# file: backlink_hunter/schema.py
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Dict, Any, Literal, Union
from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class ProspectStatus(str, Enum):
    identified = "identified"
    enriched = "enriched"
    outreach_drafted = "outreach_drafted"
    contacted = "contacted"
    followed_up = "followed_up"
    won = "won"
    lost = "lost"
    not_relevant = "not_relevant"
    needs_manual_enrichment = "needs_manual_enrichment"
    verification_error = "verification_error"


TERMINAL_STATUSES = {ProspectStatus.won, ProspectStatus.lost, ProspectStatus.not_relevant}

# identified -> enriched -> outreach_drafted -> contacted -> followed_up -> won|lost
PIPELINE_TRANSITIONS: Dict[ProspectStatus, set] = {
    ProspectStatus.identified: {
        ProspectStatus.enriched, ProspectStatus.outreach_drafted,
        ProspectStatus.needs_manual_enrichment, ProspectStatus.not_relevant,
    },
    ProspectStatus.enriched: {ProspectStatus.outreach_drafted, ProspectStatus.not_relevant},
    ProspectStatus.outreach_drafted: {ProspectStatus.contacted, ProspectStatus.not_relevant},
    ProspectStatus.contacted: {
        ProspectStatus.followed_up, ProspectStatus.won, ProspectStatus.lost,
    },
    ProspectStatus.followed_up: {ProspectStatus.won, ProspectStatus.lost},
    ProspectStatus.won: {ProspectStatus.verification_error},
    ProspectStatus.lost: set(),
    ProspectStatus.not_relevant: set(),
    ProspectStatus.needs_manual_enrichment: {ProspectStatus.enriched, ProspectStatus.not_relevant},
    ProspectStatus.verification_error: {ProspectStatus.won},
}


def is_pipeline_transition(old: ProspectStatus, new: ProspectStatus) -> bool:
    return old == new or new in PIPELINE_TRANSITIONS.get(old, set())


class OpportunityType(str, Enum):
    guest_post = "guest_post"
    resource_link = "resource_link"
    broken_link = "broken_link"
    link_exchange = "link_exchange"
    mention = "mention"


class PlanTier(str, Enum):
    starter = "starter"
    growth = "growth"
    agency = "agency"


class ImportJobStatus(str, Enum):
    pending = "pending"
    running = "running"
    complete = "complete"


class EntryMethod(str, Enum):
    discovery = "discovery"
    import_ = "import"
    manual = "manual"


class ValidationBucket(str, Enum):
    passed = "pass"
    review = "review"
    fail = "fail"


class OutreachTone(str, Enum):
    professional = "professional"
    friendly = "friendly"
    concise = "concise"


# ---------- Records ----------

class Organisation(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    plan: PlanTier = PlanTier.starter
    monthly_prospect_limit: Optional[int] = None  # None: the plan tier's limit
    prospects_used_this_month: int = 0


class Project(BaseModel):
    id: str = Field(default_factory=new_id)
    org_id: str
    name: str
    target_url: str
    target_keywords: List[str] = []
    niche: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class ExistingBacklink(BaseModel):
    id: str = Field(default_factory=new_id)
    project_id: str
    org_id: str
    linking_domain: str
    linking_url: str
    domain_rating: Optional[int] = None


class Prospect(BaseModel):
    id: str = Field(default_factory=new_id)
    project_id: str
    org_id: str
    prospect_url: str
    prospect_domain: str
    entry_method: EntryMethod = EntryMethod.manual
    page_title: Optional[str] = None
    page_url: Optional[str] = None
    snippet: Optional[str] = None
    opportunity_type: Optional[OpportunityType] = None
    domain_authority: Optional[int] = None
    spam_score: Optional[int] = None
    referring_domains: Optional[int] = None
    linkability_score: Optional[int] = None
    relevance_score: Optional[int] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_role: Optional[str] = None
    contact_source: Optional[str] = None
    status: ProspectStatus = ProspectStatus.identified
    last_contacted_at: Optional[datetime] = None
    link_live: Optional[bool] = None  # None until first verification
    link_url: Optional[str] = None
    link_verified_at: Optional[datetime] = None
    link_lost_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ProspectDraft(BaseModel):
    """Row handed to the store's bulk insert."""
    prospect_url: str
    prospect_domain: str
    entry_method: EntryMethod
    page_title: Optional[str] = None
    page_url: Optional[str] = None
    snippet: Optional[str] = None
    opportunity_type: Optional[OpportunityType] = None
    domain_authority: Optional[int] = None
    spam_score: Optional[int] = None
    referring_domains: Optional[int] = None
    linkability_score: Optional[int] = None
    relevance_score: Optional[int] = None


class ImportJob(BaseModel):
    id: str = Field(default_factory=new_id)
    project_id: str
    org_id: str
    status: ImportJobStatus = ImportJobStatus.pending
    entry_method: EntryMethod
    total_submitted: int = 0
    total_passed: int = 0
    total_review: int = 0
    total_failed: int = 0
    input_payload: Optional[Dict[str, Any]] = None
    results_payload: Optional[Dict[str, Any]] = None
    created_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    consumed_at: Optional[datetime] = None


class OutreachEmail(BaseModel):
    id: str = Field(default_factory=new_id)
    prospect_id: str
    project_id: str
    org_id: str
    subject: str
    body_text: str
    body_html: str
    status: Literal["draft", "scheduled", "sent", "failed"] = "draft"
    ai_generated: bool = True
    is_followup: bool = False
    followup_number: int = 0
    replied_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)


class ToolInvocation(BaseModel):
    tool: str
    input: Dict[str, Any] = {}
    result: Optional[Any] = None
    error: Optional[str] = None
    success: bool


class AgentMessage(BaseModel):
    id: str = Field(default_factory=new_id)
    project_id: str
    user_id: str
    role: Literal["user", "assistant"]
    content: str
    tool_calls: Optional[List[ToolInvocation]] = None
    created_at: datetime = Field(default_factory=utcnow)


# ---------- Discovery / validation results ----------

class DomainMetrics(BaseModel):
    domain_rating: int = 0
    spam_score: int = 0
    referring_domains: int = 0
    monthly_traffic: int = 0


class DomainContact(BaseModel):
    name: str = ""
    email: str
    role: str = ""
    confidence: int = 0


class SearchResult(BaseModel):
    url: str
    title: str = ""
    snippet: str = ""


class OpportunityCandidate(BaseModel):
    url: str
    domain: str
    title: str = ""
    snippet: str = ""
    opportunity_type: OpportunityType
    linkability_score: int
    relevance_score: int
    domain_rating: Optional[int] = None
    spam_score: Optional[int] = None
    referring_domains: Optional[int] = None


class DiscoveryFilters(BaseModel):
    min_da: int = 0
    max_spam_score: int = 30
    exclude_domains: List[str] = []


class DiscoveryRequest(BaseModel):
    project_id: str
    seed_keywords: List[str] = []
    seed_url: Optional[str] = None
    opportunity_types: List[OpportunityType] = [OpportunityType.resource_link, OpportunityType.guest_post]
    filters: DiscoveryFilters = DiscoveryFilters()
    limit: int = 50


class ValidationThresholds(BaseModel):
    min_da: int = 10
    min_relevance: int = 30
    max_spam_score: int = 30


class ImportValidationResult(BaseModel):
    url: str
    domain: str
    bucket: ValidationBucket
    reason: Optional[str] = None
    domain_authority: Optional[int] = None
    spam_score: Optional[int] = None
    relevance_score: Optional[int] = None
    is_existing_backlink: bool = False
    is_existing_prospect: bool = False
    error: Optional[str] = None


class SiteAnalysis(BaseModel):
    niche: str = "Unknown"
    description: str = ""
    target_keywords: List[str] = []
    target_audience: str = "Unknown"
    content_themes: List[str] = []
    domain_rating: Optional[int] = None


class LinkVerification(BaseModel):
    prospect_id: str
    link_live: bool
    link_url: Optional[str] = None
    verified_at: datetime
    lost_at: Optional[datetime] = None
    error: Optional[str] = None


class EmailDraft(BaseModel):
    subject: str
    body_text: str
    body_html: str


# ---------- Model conversation ----------

class TextBlock(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolUseBlock(BaseModel):
    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: Dict[str, Any] = {}


class ToolResultBlock(BaseModel):
    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str
    is_error: bool = False


class ModelResponse(BaseModel):
    content: List[Union[TextBlock, ToolUseBlock]] = []
    stop_reason: str = "end_turn"  # end_turn, tool_use, max_tokens

    @property
    def text(self) -> str:
        return "\n".join(b.text for b in self.content if isinstance(b, TextBlock) and b.text.strip())

    @property
    def tool_uses(self) -> List[ToolUseBlock]:
        return [b for b in self.content if isinstance(b, ToolUseBlock)]


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: Union[str, List[Dict[str, Any]]]


class ChatRequest(BaseModel):
    project_id: str
    messages: List[ChatMessage] = []


class ToolCallSummary(BaseModel):
    tool: str
    success: bool


class ChatResponse(BaseModel):
    message: str
    tool_calls: List[ToolCallSummary] = []


class Identity(BaseModel):
    user_id: str
    org_id: str
