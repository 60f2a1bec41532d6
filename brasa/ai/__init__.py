"""Site content schema and prompt builders."""

from .site_schema import SiteDocument, SitePage, SiteSection, SiteMedia
from .prompts import (
    build_site_prompt,
    parse_site_document,
    build_edit_prompt,
    parse_section_update,
    merge_section,
)

__all__ = [
    "SiteDocument",
    "SitePage",
    "SiteSection",
    "SiteMedia",
    "build_site_prompt",
    "parse_site_document",
    "build_edit_prompt",
    "parse_section_update",
    "merge_section",
]
