"""
Job Tracking Service

The `jobs` table is the user-visible record of a queued job (status, cost,
result). The queue envelope in the store is the scheduling state; this row is
what the dashboard polls.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from supabase import Client

from .client import get_supabase_admin_client


class TrackingStatus(str, Enum):
    """Status values for the jobs table"""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class JobTrackingService:
    """Service class for rows in the jobs table."""

    def __init__(self, client: Optional[Client] = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase_admin_client()
        return self._client

    async def create(
        self,
        job_id: str,
        user_id: str,
        kind: str,
        provider_id: str,
        model: str,
        prompt: str,
        estimated_credits: float,
        site_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        result = self.client.table("jobs").insert({
            "id": job_id,
            "user_id": user_id,
            "site_id": site_id,
            "kind": kind,
            "status": TrackingStatus.QUEUED.value,
            "provider_id": provider_id,
            "model": model,
            "prompt": prompt,
            "estimated_credits": estimated_credits,
        }).execute()
        return result.data[0] if result.data else {}

    async def get(self, job_id: str, user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        query = (
            self.client.table("jobs")
            .select(
                "id, status, result, error, site_id, kind, cost_credits, "
                "provider_id, model, created_at, updated_at"
            )
            .eq("id", job_id)
        )
        if user_id:
            query = query.eq("user_id", user_id)

        result = query.execute()
        return result.data[0] if result.data else None

    async def mark_processing(self, job_id: str):
        await self._update(job_id, {"status": TrackingStatus.PROCESSING.value})

    async def mark_completed(self, job_id: str, cost_credits: float, result: Dict[str, Any]):
        await self._update(job_id, {
            "status": TrackingStatus.COMPLETED.value,
            "cost_credits": cost_credits,
            "result": result,
        })

    async def mark_failed(self, job_id: str, error: str):
        await self._update(job_id, {
            "status": TrackingStatus.FAILED.value,
            "error": error,
        })

    async def _update(self, job_id: str, updates: Dict[str, Any]):
        updates["updated_at"] = _now()
        self.client.table("jobs").update(updates).eq("id", job_id).execute()
