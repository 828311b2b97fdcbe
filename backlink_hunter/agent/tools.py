# backlink_hunter/agent/tools.py
from __future__ import annotations
from enum import Enum
from typing import Dict, List, Literal, Optional, Type
from pydantic import BaseModel, Field

from backlink_hunter.schema import OpportunityType, OutreachTone, ProspectStatus


class ToolName(str, Enum):
    analyse_site = "analyse_site"
    check_existing_backlinks = "check_existing_backlinks"
    run_discovery = "run_discovery"
    import_prospects = "import_prospects"
    validate_import = "validate_import"
    confirm_import = "confirm_import"
    enrich_contacts = "enrich_contacts"
    generate_outreach_email = "generate_outreach_email"
    generate_bulk_emails = "generate_bulk_emails"
    get_pipeline_summary = "get_pipeline_summary"
    get_prospects_needing_attention = "get_prospects_needing_attention"
    update_prospect_status = "update_prospect_status"
    check_link_live = "check_link_live"


# Agent-facing discovery vocabulary -> stored opportunity type
AgentOpportunityType = Literal[
    "resource_page", "guest_post", "directory_listing", "competitor_mention", "broken_link",
]
AGENT_OPPORTUNITY_TYPES: Dict[str, OpportunityType] = {
    "resource_page": OpportunityType.resource_link,
    "guest_post": OpportunityType.guest_post,
    "directory_listing": OpportunityType.link_exchange,
    "competitor_mention": OpportunityType.mention,
    "broken_link": OpportunityType.broken_link,
}


class ToolInput(BaseModel):
    model_config = {"extra": "ignore"}


class ProjectInput(ToolInput):
    project_id: Optional[str] = Field(None, description="Defaults to the current project.")


class RunDiscoveryInput(ProjectInput):
    keywords: List[str] = Field(default_factory=list, description="Seed keywords; defaults to the project's target keywords.")
    competitor_url: Optional[str] = None
    opportunity_types: List[AgentOpportunityType] = Field(default_factory=lambda: ["resource_page", "guest_post"])
    limit: int = Field(30, ge=1, description="Maximum candidates to return; capped at 200.")


class ImportProspectsInput(ProjectInput):
    job_id: str = Field(..., description="job_id returned by run_discovery.")
    selected_urls: List[str] = Field(..., description="Candidate URLs the user approved.")


class ValidateImportInput(ProjectInput):
    urls: List[str]


class ConfirmImportInput(ProjectInput):
    job_id: str = Field(..., description="job_id returned by validate_import.")
    urls: List[str] = Field(..., description="Validated URLs the user approved.")


class EnrichContactsInput(ToolInput):
    prospect_ids: List[str]


class GenerateOutreachEmailInput(ToolInput):
    prospect_id: str
    tone: OutreachTone = OutreachTone.professional
    is_followup: bool = False
    followup_number: int = Field(0, ge=0)
    custom_value_prop: Optional[str] = None


class GenerateBulkEmailsInput(ToolInput):
    prospect_ids: List[str]
    tone: OutreachTone = OutreachTone.professional
    is_followup: bool = False


class UpdateProspectStatusInput(ToolInput):
    prospect_id: str
    status: ProspectStatus
    notes: Optional[str] = None


class ProspectInput(ToolInput):
    prospect_id: str


TOOL_DESCRIPTIONS: Dict[ToolName, str] = {
    ToolName.analyse_site: (
        "Crawl the project website, extract niche, keywords, content themes, and fetch Domain Rating. "
        "Call this first if no project profile exists yet."
    ),
    ToolName.check_existing_backlinks: (
        "List the domains already linking to the project so they are not targeted again."
    ),
    ToolName.run_discovery: (
        "Search for backlink prospects using keywords or a competitor URL. Returns a job_id and a scored "
        "list of candidates for user review. Does NOT save any prospects."
    ),
    ToolName.import_prospects: (
        "Save user-approved discovery candidates as prospects. Only call this AFTER showing the user the "
        "discovery results and receiving explicit approval. Needs the run_discovery job_id."
    ),
    ToolName.validate_import: (
        "Run quality validation on URLs provided by the user (CSV or paste). Checks exclusions, duplicates, "
        "spam score and DA. Returns a job_id and a pass/review/fail breakdown. Does NOT save anything."
    ),
    ToolName.confirm_import: (
        "Save validated, user-approved URLs as prospects. Only call after the user reviewed the "
        "validate_import results and confirmed. Needs the validate_import job_id."
    ),
    ToolName.enrich_contacts: (
        "Look up a contact (name, email, role) for each prospect domain."
    ),
    ToolName.generate_outreach_email: (
        "Draft a personalised outreach email for a single prospect. Saves as draft, never sends."
    ),
    ToolName.generate_bulk_emails: (
        "Draft outreach emails for multiple prospects at once. Only call after user approval. Saves all as drafts."
    ),
    ToolName.get_pipeline_summary: (
        "Count prospects at each pipeline stage plus reply rate and win rate for the project."
    ),
    ToolName.get_prospects_needing_attention: (
        "Return prospects that need action: no contact found, stale (>14 days with no activity), "
        "follow-ups due, or won links that have gone dead."
    ),
    ToolName.update_prospect_status: "Move a prospect to a new pipeline stage.",
    ToolName.check_link_live: (
        "Check whether a won link is still live: fetches the page and looks for a link pointing to our site."
    ),
}

TOOL_INPUTS: Dict[ToolName, Type[ToolInput]] = {
    ToolName.analyse_site: ProjectInput,
    ToolName.check_existing_backlinks: ProjectInput,
    ToolName.run_discovery: RunDiscoveryInput,
    ToolName.import_prospects: ImportProspectsInput,
    ToolName.validate_import: ValidateImportInput,
    ToolName.confirm_import: ConfirmImportInput,
    ToolName.enrich_contacts: EnrichContactsInput,
    ToolName.generate_outreach_email: GenerateOutreachEmailInput,
    ToolName.generate_bulk_emails: GenerateBulkEmailsInput,
    ToolName.get_pipeline_summary: ProjectInput,
    ToolName.get_prospects_needing_attention: ProjectInput,
    ToolName.update_prospect_status: UpdateProspectStatusInput,
    ToolName.check_link_live: ProspectInput,
}


def tool_specs() -> List[Dict]:
    """Provider-neutral catalogue: {name, description, input_schema} per tool."""
    return [
        {
            "name": name.value,
            "description": TOOL_DESCRIPTIONS[name],
            "input_schema": TOOL_INPUTS[name].model_json_schema(),
        }
        for name in ToolName
    ]


TOOL_SPECS = tool_specs()
