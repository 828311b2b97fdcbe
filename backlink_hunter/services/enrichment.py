from __future__ import annotations
import logging
from typing import Any, Dict, Optional

from backlink_hunter.schema import DomainContact, ProspectStatus

log = logging.getLogger("enrichment")

CONTACT_SOURCE = "hunter"

def contact_patch(contact: Optional[DomainContact]) -> Dict[str, Any]:
    """Prospect fields to write for a contact lookup result."""
    if contact is None:
        return {"status": ProspectStatus.needs_manual_enrichment}
    return {
        "contact_name": contact.name or None,
        "contact_email": contact.email,
        "contact_role": contact.role or None,
        "contact_source": CONTACT_SOURCE,
        "status": ProspectStatus.enriched,
    }

async def enrich_prospect(prospect, finder) -> Dict[str, Any]:
    contact = await finder.best_contact(prospect.prospect_domain)
    log.info("enrich domain=%s found=%s", prospect.prospect_domain, contact is not None)
    return contact_patch(contact)
