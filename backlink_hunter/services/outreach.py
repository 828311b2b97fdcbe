from __future__ import annotations
import html
import logging
from typing import Optional

from backlink_hunter.schema import EmailDraft, OutreachTone, Project, Prospect
from backlink_hunter.tools.llm import LLMNotReady, parse_json_object

log = logging.getLogger("outreach")

TONE_GUIDE = {
    OutreachTone.professional: "Use a professional, polished tone suitable for trade bodies and established businesses.",
    OutreachTone.friendly: "Use a warm, conversational tone suitable for bloggers and small site owners.",
    OutreachTone.concise: "Be extremely brief and direct. No fluff. Get to the point in 2-3 short paragraphs.",
}

SYSTEM_OUTREACH = (
    "You are an expert outreach email writer for link-building campaigns. Write a personalised email.\n"
    "Rules:\n"
    "- Reference the specific page or article on the prospect's site\n"
    "- Explain the value to THEIR readers (not yours)\n"
    "- 3-4 short paragraphs maximum\n"
    "- Clear single call-to-action\n"
    "- NEVER use \"I hope this email finds you well\" or similar generic openers\n"
)

JSON_INSTRUCTIONS = (
    "Respond ONLY with valid JSON:\n"
    '{"subject": "email subject line", "body_text": "plain text email body"}'
)


def to_html(body_text: str) -> str:
    """Blank-line separated paragraphs -> escaped <p> blocks."""
    return "\n".join(f"<p>{html.escape(p)}</p>" for p in body_text.split("\n\n"))


def fallback_email(prospect: Prospect, project: Project, is_followup: bool) -> EmailDraft:
    name = prospect.contact_name or "there"
    if is_followup:
        subject = f"Following up: {project.name} x {prospect.prospect_domain}"
        body = (
            f"Hi {name},\n\nJust wanted to follow up on my previous email about a potential collaboration "
            f"between {project.target_url} and {prospect.prospect_domain}.\n\n"
            "I'd love to hear your thoughts when you get a chance.\n\nBest regards"
        )
    else:
        subject = f"Collaboration opportunity: {project.name} x {prospect.prospect_domain}"
        body = (
            f"Hi {name},\n\nI came across {prospect.page_title or prospect.prospect_domain} and thought there "
            f"could be a great fit for collaboration with {project.name}.\n\n"
            f"We focus on {project.niche or 'relevant content'} and I believe our content would add value "
            "for your readers.\n\nWould you be open to discussing this further?\n\nBest regards"
        )
    return EmailDraft(subject=subject, body_text=body, body_html=to_html(body))


class OutreachWriter:
    def __init__(self, llm):
        self.llm = llm

    def _system(self, tone: OutreachTone, is_followup: bool, custom_value_prop: Optional[str]) -> str:
        lines = [SYSTEM_OUTREACH + f"- {TONE_GUIDE[tone]}"]
        if is_followup:
            lines.append("- This is a follow-up email. Be brief, reference the original email, "
                         "and gently re-state the value proposition.")
        if custom_value_prop:
            lines.append(f"- Value proposition to emphasise: {custom_value_prop}")
        lines.append("")
        lines.append(JSON_INSTRUCTIONS)
        return "\n".join(lines)

    @staticmethod
    def _prompt(prospect: Prospect, project: Project) -> str:
        lines = [
            "Write an outreach email for this scenario:",
            f"My site: {project.target_url} ({project.niche or 'general'})",
        ]
        if project.description:
            lines.append(f"About us: {project.description}")
        lines += [
            f"Prospect domain: {prospect.prospect_domain}",
            f"Prospect page: {prospect.page_url or prospect.prospect_url}",
            f"Page title: {prospect.page_title or 'Unknown'}",
            f"Page snippet: {prospect.snippet or 'N/A'}",
            f"Opportunity type: {(prospect.opportunity_type or 'resource_link')}",
        ]
        if prospect.contact_name:
            lines.append(f"Contact name: {prospect.contact_name}")
        if prospect.contact_role:
            lines.append(f"Contact role: {prospect.contact_role}")
        return "\n".join(lines)

    async def draft(self, prospect: Prospect, project: Project, *, tone: OutreachTone = OutreachTone.professional,
                    is_followup: bool = False, custom_value_prop: Optional[str] = None) -> EmailDraft:
        log.info("drafting outreach domain=%s tone=%s followup=%s", prospect.prospect_domain, tone.value, is_followup)
        try:
            reply = await self.llm.generate(
                self._prompt(prospect, project),
                system=self._system(tone, is_followup, custom_value_prop),
                temperature=0.4,
            )
            data = parse_json_object(reply)
            subject = str(data.get("subject") or "").strip()
            body = str(data.get("body_text") or "").strip()
            if not subject or not body:
                raise LLMNotReady("LLM reply missing subject or body_text.")
        except LLMNotReady as e:
            log.warning("outreach LLM unavailable, using template: %s", e)
            return fallback_email(prospect, project, is_followup)
        return EmailDraft(subject=subject, body_text=body, body_html=to_html(body))
