"""
Site Service

Reads and writes generated site content. The whole site document is stored
as one site_pages row keyed by (site_id, route).
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from supabase import Client

from .client import get_supabase_admin_client


class SiteStatus:
    DRAFT = "draft"
    READY = "ready"


class SiteService:
    """Service class for sites and site_pages."""

    def __init__(self, client: Optional[Client] = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase_admin_client()
        return self._client

    # =========================================================================
    # Sites
    # =========================================================================

    async def get_site(self, site_id: str) -> Optional[Dict[str, Any]]:
        result = (
            self.client.table("sites")
            .select("id, user_id, title, status")
            .eq("id", site_id)
            .execute()
        )
        return result.data[0] if result.data else None

    async def create_site(
        self,
        site_id: str,
        user_id: str,
        title: str,
        provider_id: str,
        model: str,
        palette: Optional[str] = None,
        sector: Optional[str] = None,
        last_prompt: Optional[str] = None,
    ) -> Dict[str, Any]:
        result = self.client.table("sites").insert({
            "id": site_id,
            "user_id": user_id,
            "title": title,
            "status": SiteStatus.DRAFT,
            "provider_id": provider_id,
            "model": model,
            "palette": palette,
            "sector": sector,
            "last_prompt": last_prompt,
        }).execute()
        return result.data[0] if result.data else {}

    async def update_site(self, site_id: str, user_id: str, updates: Dict[str, Any]):
        (
            self.client.table("sites")
            .update(updates)
            .eq("id", site_id)
            .eq("user_id", user_id)
            .execute()
        )

    async def mark_ready(
        self,
        site_id: str,
        palette: Optional[str] = None,
        sector: Optional[str] = None,
    ):
        """Flag a site as generated."""
        (
            self.client.table("sites")
            .update({"status": SiteStatus.READY, "palette": palette, "sector": sector})
            .eq("id", site_id)
            .execute()
        )

    # =========================================================================
    # Page content
    # =========================================================================

    async def upsert_page(self, site_id: str, route: str, content: Dict[str, Any]):
        (
            self.client.table("site_pages")
            .upsert(
                {
                    "site_id": site_id,
                    "route": route,
                    "content": content,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                },
                on_conflict="site_id,route",
            )
            .execute()
        )

    async def get_site_page(self, site_id: str) -> Optional[Dict[str, Any]]:
        """Get the stored page row ({id, content}) for a site."""
        result = (
            self.client.table("site_pages")
            .select("id, content")
            .eq("site_id", site_id)
            .limit(1)
            .execute()
        )
        return result.data[0] if result.data else None

    async def update_page_content(self, page_id: str, content: Dict[str, Any]):
        (
            self.client.table("site_pages")
            .update({
                "content": content,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            })
            .eq("id", page_id)
            .execute()
        )
