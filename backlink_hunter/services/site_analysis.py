from __future__ import annotations
import logging

from backlink_hunter.schema import SiteAnalysis
from backlink_hunter.services.exclusion import extract_domain
from backlink_hunter.tools.llm import LLMNotReady, parse_json_object

log = logging.getLogger("site_analysis")

SYSTEM_ANALYSIS = (
    "You are an SEO analyst. Analyse the provided website content and extract structured information. "
    "Respond ONLY with valid JSON matching this schema:\n"
    "{\n"
    '  "niche": "the site\'s primary industry/niche",\n'
    '  "description": "1-2 sentence description of what the site does",\n'
    '  "target_keywords": ["5-10 target keywords for backlink outreach"],\n'
    '  "target_audience": "who the site serves",\n'
    '  "content_themes": ["3-5 main content themes"]\n'
    "}"
)

def _str_list(v) -> list:
    return [str(x) for x in v] if isinstance(v, list) else []

class SiteAnalyzer:
    def __init__(self, llm, fetcher, metrics):
        self.llm = llm
        self.fetcher = fetcher
        self.metrics = metrics

    async def analyse(self, site_url: str) -> SiteAnalysis:
        domain = extract_domain(site_url) or site_url
        text = await self.fetcher.condensed_text(site_url) or ""
        m = await self.metrics.domain_metrics(domain)

        try:
            reply = await self.llm.generate(f"Analyse this website ({site_url}):\n\n{text}",
                                            system=SYSTEM_ANALYSIS, temperature=0.2)
        except LLMNotReady as e:
            log.warning("site analysis LLM unavailable for %s: %s", site_url, e)
            analysis = SiteAnalysis(description="Site analysis unavailable: language model not reachable.")
        else:
            try:
                data = parse_json_object(reply)
            except LLMNotReady:
                log.warning("site analysis reply not JSON for %s", site_url)
                analysis = SiteAnalysis(description=reply[:200])
            else:
                analysis = SiteAnalysis(
                    niche=str(data.get("niche") or "Unknown"),
                    description=str(data.get("description") or ""),
                    target_keywords=_str_list(data.get("target_keywords")),
                    target_audience=str(data.get("target_audience") or "Unknown"),
                    content_themes=_str_list(data.get("content_themes")),
                )

        if m is not None:
            analysis.domain_rating = m.domain_rating
        log.info("site analysis %s niche=%s keywords=%d", site_url, analysis.niche, len(analysis.target_keywords))
        return analysis
