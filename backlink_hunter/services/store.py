from __future__ import annotations
import asyncio
import logging
from typing import Any, Dict, List, Optional

from backlink_hunter.schema import (
    AgentMessage, ExistingBacklink, ImportJob, Organisation, OutreachEmail,
    Project, Prospect, ProspectDraft, ToolInvocation, utcnow,
)
from backlink_hunter.services.exclusion import normalize_domain

log = logging.getLogger("store")


class Store:
    """
    Record store consumed by the agent. Every read and update is scoped by
    (id, org_id); implementations must never return another tenant's rows.
    """

    # ---- projects ----
    async def get_project(self, project_id: str, org_id: str) -> Optional[Project]:
        raise NotImplementedError

    # ---- prospects ----
    async def get_prospect(self, prospect_id: str, org_id: str) -> Optional[Prospect]:
        raise NotImplementedError

    async def list_prospects(self, project_id: str, org_id: str) -> List[Prospect]:
        raise NotImplementedError

    async def create_prospects_bulk(self, project_id: str, org_id: str,
                                    rows: List[ProspectDraft]) -> List[Prospect]:
        raise NotImplementedError

    async def update_prospect(self, prospect_id: str, org_id: str, **patch: Any) -> Prospect:
        raise NotImplementedError

    async def is_existing_prospect(self, project_id: str, org_id: str, domain: str) -> bool:
        raise NotImplementedError

    # ---- existing backlinks ----
    async def list_existing_backlinks(self, project_id: str, org_id: str) -> List[ExistingBacklink]:
        raise NotImplementedError

    async def is_existing_backlink(self, project_id: str, org_id: str, domain: str) -> bool:
        raise NotImplementedError

    # ---- import jobs ----
    async def create_import_job(self, project_id: str, org_id: str, *, entry_method,
                                total_submitted: int,
                                input_payload: Optional[Dict[str, Any]] = None) -> ImportJob:
        raise NotImplementedError

    async def get_import_job(self, job_id: str, org_id: str) -> Optional[ImportJob]:
        raise NotImplementedError

    async def update_import_job(self, job_id: str, org_id: str, **patch: Any) -> ImportJob:
        raise NotImplementedError

    # ---- outreach emails ----
    async def create_outreach_email(self, email: OutreachEmail) -> OutreachEmail:
        raise NotImplementedError

    async def list_outreach_emails(self, prospect_id: str, org_id: str) -> List[OutreachEmail]:
        raise NotImplementedError

    # ---- organisation / quota ----
    async def get_organisation(self, org_id: str) -> Optional[Organisation]:
        raise NotImplementedError

    async def increment_prospects_used(self, org_id: str, count: int) -> Organisation:
        raise NotImplementedError

    # ---- agent messages ----
    async def create_agent_message(self, *, project_id: str, user_id: str, role: str,
                                   content: str,
                                   tool_calls: Optional[List[ToolInvocation]] = None) -> AgentMessage:
        raise NotImplementedError

    async def list_agent_messages(self, project_id: str, user_id: str) -> List[AgentMessage]:
        raise NotImplementedError


class RecordNotFound(LookupError):
    pass


class MemoryStore(Store):
    """In-process store with a single lock around every mutation."""

    def __init__(self):
        self.lock = asyncio.Lock()
        self.organisations: Dict[str, Organisation] = {}
        self.projects: Dict[str, Project] = {}
        self.prospects: Dict[str, Prospect] = {}
        self.backlinks: Dict[str, ExistingBacklink] = {}
        self.import_jobs: Dict[str, ImportJob] = {}
        self.emails: Dict[str, OutreachEmail] = {}
        self.messages: List[AgentMessage] = []

    # ---- seeding (tests / local dev) ----
    def add_organisation(self, org: Organisation) -> Organisation:
        self.organisations[org.id] = org
        return org

    def add_project(self, project: Project) -> Project:
        self.projects[project.id] = project
        return project

    def add_prospect(self, prospect: Prospect) -> Prospect:
        self.prospects[prospect.id] = prospect
        return prospect

    def add_backlink(self, backlink: ExistingBacklink) -> ExistingBacklink:
        self.backlinks[backlink.id] = backlink
        return backlink

    # ---- projects ----
    async def get_project(self, project_id, org_id):
        p = self.projects.get(project_id)
        return p.model_copy(deep=True) if p and p.org_id == org_id else None

    # ---- prospects ----
    async def get_prospect(self, prospect_id, org_id):
        p = self.prospects.get(prospect_id)
        return p.model_copy(deep=True) if p and p.org_id == org_id else None

    async def list_prospects(self, project_id, org_id):
        return [
            p.model_copy(deep=True) for p in self.prospects.values()
            if p.project_id == project_id and p.org_id == org_id
        ]

    async def create_prospects_bulk(self, project_id, org_id, rows):
        created: List[Prospect] = []
        async with self.lock:
            taken = {
                p.prospect_domain for p in self.prospects.values()
                if p.project_id == project_id and p.org_id == org_id
            }
            for row in rows:
                domain = normalize_domain(row.prospect_domain)
                if domain in taken:
                    log.info("store: skip duplicate prospect domain=%s", domain)
                    continue
                prospect = Prospect(
                    project_id=project_id, org_id=org_id,
                    **row.model_dump(exclude={"prospect_domain"}),
                    prospect_domain=domain,
                )
                self.prospects[prospect.id] = prospect
                taken.add(domain)
                created.append(prospect.model_copy(deep=True))
        log.info("store: bulk insert project=%s requested=%d created=%d", project_id, len(rows), len(created))
        return created

    async def update_prospect(self, prospect_id, org_id, **patch):
        async with self.lock:
            p = self.prospects.get(prospect_id)
            if not p or p.org_id != org_id:
                raise RecordNotFound(f"Prospect {prospect_id} not found")
            updated = p.model_copy(update={**patch, "updated_at": utcnow()})
            self.prospects[prospect_id] = updated
            return updated.model_copy(deep=True)

    async def is_existing_prospect(self, project_id, org_id, domain):
        d = normalize_domain(domain)
        return any(
            p.project_id == project_id and p.org_id == org_id and p.prospect_domain == d
            for p in self.prospects.values()
        )

    # ---- existing backlinks ----
    async def list_existing_backlinks(self, project_id, org_id):
        return [
            b.model_copy() for b in self.backlinks.values()
            if b.project_id == project_id and b.org_id == org_id
        ]

    async def is_existing_backlink(self, project_id, org_id, domain):
        d = normalize_domain(domain)
        return any(
            b.project_id == project_id and b.org_id == org_id and normalize_domain(b.linking_domain) == d
            for b in self.backlinks.values()
        )

    # ---- import jobs ----
    async def create_import_job(self, project_id, org_id, *, entry_method, total_submitted, input_payload=None):
        job = ImportJob(
            project_id=project_id, org_id=org_id, entry_method=entry_method,
            total_submitted=total_submitted, input_payload=input_payload,
        )
        async with self.lock:
            self.import_jobs[job.id] = job
        return job.model_copy(deep=True)

    async def get_import_job(self, job_id, org_id):
        j = self.import_jobs.get(job_id)
        return j.model_copy(deep=True) if j and j.org_id == org_id else None

    async def update_import_job(self, job_id, org_id, **patch):
        async with self.lock:
            j = self.import_jobs.get(job_id)
            if not j or j.org_id != org_id:
                raise RecordNotFound(f"Import job {job_id} not found")
            updated = j.model_copy(update=patch)
            self.import_jobs[job_id] = updated
            return updated.model_copy(deep=True)

    # ---- outreach emails ----
    async def create_outreach_email(self, email):
        async with self.lock:
            self.emails[email.id] = email
        return email.model_copy()

    async def list_outreach_emails(self, prospect_id, org_id):
        return [
            e.model_copy() for e in self.emails.values()
            if e.prospect_id == prospect_id and e.org_id == org_id
        ]

    # ---- organisation / quota ----
    async def get_organisation(self, org_id):
        o = self.organisations.get(org_id)
        return o.model_copy() if o else None

    async def increment_prospects_used(self, org_id, count):
        async with self.lock:
            o = self.organisations.get(org_id)
            if not o:
                raise RecordNotFound(f"Organisation {org_id} not found")
            o = o.model_copy(update={"prospects_used_this_month": o.prospects_used_this_month + count})
            self.organisations[org_id] = o
            return o.model_copy()

    # ---- agent messages ----
    async def create_agent_message(self, *, project_id, user_id, role, content, tool_calls=None):
        msg = AgentMessage(
            project_id=project_id, user_id=user_id, role=role,
            content=content, tool_calls=tool_calls,
        )
        async with self.lock:
            self.messages.append(msg)
        return msg

    async def list_agent_messages(self, project_id, user_id):
        return [m for m in self.messages if m.project_id == project_id and m.user_id == user_id]
