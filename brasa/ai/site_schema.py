"""
Site content document produced by the text providers.

A site is a list of pages; each page carries SEO metadata and an ordered list
of sections (hero, features, pricing, FAQ, ...). Unknown keys are preserved
so round-tripping a stored document never drops content.
"""

from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

SectionType = Literal[
    "hero",
    "features",
    "cta",
    "pricing",
    "faq",
    "testimonials",
    "gallery",
    "stats",
    "contact",
    "footer",
]


class _SiteModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class SiteMedia(_SiteModel):
    kind: Literal["image", "video"] = "image"
    prompt: str
    alt: str = ""
    url: Optional[str] = None


class SiteAction(_SiteModel):
    label: str
    href: str
    style: Optional[Literal["primary", "secondary", "ghost"]] = None


class SectionItem(_SiteModel):
    title: str
    description: Optional[str] = None
    icon: Optional[str] = None
    href: Optional[str] = None
    stats: Optional[Dict[str, Union[str, int, float]]] = None


class SectionMetadata(_SiteModel):
    layout: Optional[Literal["grid", "list", "carousel"]] = None
    ariaLabel: Optional[str] = None
    background: Optional[Literal["default", "muted", "accent"]] = None


class SiteSection(_SiteModel):
    id: str
    type: SectionType
    headline: str
    subhead: Optional[str] = None
    body: Optional[str] = None
    media: Optional[List[SiteMedia]] = None
    actions: Optional[List[SiteAction]] = None
    items: Optional[List[SectionItem]] = None
    metadata: Optional[SectionMetadata] = None


class PageSeo(_SiteModel):
    title: str
    description: str
    keywords: List[str] = Field(default_factory=list)


class SitePage(_SiteModel):
    route: str
    title: str
    description: Optional[str] = None
    seo: PageSeo
    sections: List[SiteSection] = Field(default_factory=list)


class SitePalette(_SiteModel):
    primary: str
    secondary: str
    background: str
    accent: str


class SiteInfo(_SiteModel):
    name: str = ""
    description: str = ""
    locale: str = "pt-BR"
    palette: Optional[SitePalette] = None


class SiteDocument(_SiteModel):
    version: str = "1.0.0"
    site: SiteInfo
    pages: List[SitePage]

    def to_content(self) -> dict:
        """JSON-ready form stored in site_pages.content"""
        return self.model_dump(mode="json", exclude_none=True)
