"""
Job submission.

Everything that happens before a job reaches the queue: request validation,
rate limiting, cost estimation, the balance check, the tracking row and the
enqueue itself. API handlers call these methods and translate the
exceptions into HTTP responses.
"""

import json
import math
import uuid
from dataclasses import asdict, dataclass
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

from brasa.database.credits import CreditService, InsufficientCreditsError
from brasa.database.jobs import JobTrackingService
from brasa.database.sites import SiteService
from brasa.errors import MissingEntityError, StoreError, UnsupportedJobKindError
from brasa.guard.ratelimit import assert_rate_limit
from brasa.jobs.models import (
    EditSectionPayload,
    GenerateImagePayload,
    GenerateSitePayload,
    ImageSize,
    JobKind,
    ProviderId,
    SiteBriefing,
)
from brasa.jobs.queue import JobQueue
from brasa.providers import ProviderRegistry, estimate_credits, get_registry, image_capability
from brasa.store.base import KeyValueStore
from brasa.utils.logging import queue_logger as logger

IDEMPOTENCY_PREFIX = "idem:generate-site:"
IDEMPOTENCY_TTL_SECONDS = 60


class GenerateSiteRequest(BaseModel):
    site_title: str = Field(min_length=3, max_length=80)
    prompt: str = Field(min_length=20, max_length=4000)
    provider_id: ProviderId
    model: str = Field(min_length=1)
    tone: str = "moderno e humano"
    palette: Optional[str] = None
    sector: Optional[str] = None
    site_id: Optional[uuid.UUID] = None
    additional_instructions: Optional[str] = Field(default=None, max_length=1000)


class EditSectionRequest(BaseModel):
    site_id: uuid.UUID
    page_route: str = Field(min_length=1)
    section_id: str = Field(min_length=1)
    instruction: str = Field(min_length=10, max_length=2000)
    provider_id: ProviderId
    model: str = Field(min_length=1)


class GenerateImageRequest(BaseModel):
    site_id: Optional[uuid.UUID] = None
    prompt: str = Field(min_length=10, max_length=2000)
    size: ImageSize = "1024x1024"
    provider_id: Literal["openai", "google"] = "openai"
    model: Optional[str] = None


@dataclass
class SubmittedJob:
    job_id: str
    site_id: Optional[str]
    estimated_credits: float
    status: str = "queued"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class JobSubmitter:
    """
    Validates and enqueues user requests.

    Usage:
        submitter = JobSubmitter(queue)
        submitted = await submitter.submit_generate_site(user_id, request)
        status = await submitter.get_status(submitted.job_id, user_id)
    """

    def __init__(
        self,
        queue: JobQueue,
        store: Optional[KeyValueStore] = None,
        providers: Optional[ProviderRegistry] = None,
        credits: Optional[CreditService] = None,
        sites: Optional[SiteService] = None,
        tracking: Optional[JobTrackingService] = None,
    ):
        self.queue = queue
        self.store = store or queue.store
        self.providers = providers or get_registry()
        self.credits = credits or CreditService()
        self.sites = sites or SiteService()
        self.tracking = tracking or JobTrackingService()

    async def _ensure_balance(self, user_id: str, required: float):
        balance = await self.credits.get_balance(user_id)
        if balance.available < required:
            raise InsufficientCreditsError(
                f"Not enough credits: {balance.available} available, {required} required"
            )

    async def _owned_site(self, site_id: str, user_id: str) -> Dict[str, Any]:
        site = await self.sites.get_site(site_id)
        if not site:
            raise MissingEntityError("Site not found")
        if site.get("user_id") != user_id:
            raise PermissionError("Site belongs to another user")
        return site

    # =========================================================================
    # generate_site
    # =========================================================================

    async def submit_generate_site(
        self,
        user_id: str,
        request: GenerateSiteRequest,
        idempotency_key: Optional[str] = None,
    ) -> SubmittedJob:
        await assert_rate_limit(self.store, f"generate-site:{user_id}", limit=10, window_seconds=60)

        if request.site_id is not None:
            await self._owned_site(str(request.site_id), user_id)

        if idempotency_key:
            cached = await self.store.get(IDEMPOTENCY_PREFIX + idempotency_key)
            if cached:
                return SubmittedJob(**json.loads(cached))

        provider = self.providers.get(request.provider_id)
        estimated = await estimate_credits(
            provider,
            model=request.model,
            prompt_tokens=math.ceil(len(request.prompt) / 4),
            completion_tokens=1024,
            default=10,
        )
        await self._ensure_balance(user_id, estimated)

        if request.site_id is None:
            site_id = str(uuid.uuid4())
            await self.sites.create_site(
                site_id=site_id,
                user_id=user_id,
                title=request.site_title,
                provider_id=request.provider_id,
                model=request.model,
                palette=request.palette,
                sector=request.sector,
                last_prompt=request.prompt,
            )
        else:
            site_id = str(request.site_id)
            await self.sites.update_site(site_id, user_id, {
                "title": request.site_title,
                "provider_id": request.provider_id,
                "model": request.model,
                "palette": request.palette,
                "sector": request.sector,
                "last_prompt": request.prompt,
            })

        job_id = str(uuid.uuid4())
        await self.tracking.create(
            job_id=job_id,
            user_id=user_id,
            kind=JobKind.GENERATE_SITE.value,
            provider_id=request.provider_id,
            model=request.model,
            prompt=request.prompt,
            estimated_credits=estimated,
            site_id=site_id,
        )

        briefing = SiteBriefing(
            title=request.site_title,
            prompt=request.prompt,
            tone=request.tone,
            palette=request.palette,
            sector=request.sector,
            additional_instructions=request.additional_instructions,
        )
        await self.queue.enqueue(
            GenerateSitePayload(
                user_id=user_id,
                provider_id=request.provider_id,
                model=request.model,
                prompt=briefing.to_json(),
                site_id=site_id,
            ),
            job_id=job_id,
        )

        submitted = SubmittedJob(job_id=job_id, site_id=site_id, estimated_credits=estimated)

        if idempotency_key:
            await self.store.set(
                IDEMPOTENCY_PREFIX + idempotency_key,
                json.dumps(submitted.to_dict()),
                ttl_seconds=IDEMPOTENCY_TTL_SECONDS,
            )

        return submitted

    # =========================================================================
    # edit_section
    # =========================================================================

    async def submit_edit_section(self, user_id: str, request: EditSectionRequest) -> SubmittedJob:
        await assert_rate_limit(self.store, f"edit-section:{user_id}", limit=20, window_seconds=60)

        site_id = str(request.site_id)
        await self._owned_site(site_id, user_id)

        provider = self.providers.get(request.provider_id)
        estimated = await estimate_credits(
            provider,
            model=request.model,
            prompt_tokens=math.ceil(len(request.instruction) / 4),
            completion_tokens=400,
            default=5,
        )
        await self._ensure_balance(user_id, estimated)

        job_id = str(uuid.uuid4())
        await self.tracking.create(
            job_id=job_id,
            user_id=user_id,
            kind=JobKind.EDIT_SECTION.value,
            provider_id=request.provider_id,
            model=request.model,
            prompt=request.instruction,
            estimated_credits=estimated,
            site_id=site_id,
        )

        await self.queue.enqueue(
            EditSectionPayload(
                user_id=user_id,
                provider_id=request.provider_id,
                model=request.model,
                site_id=site_id,
                page_route=request.page_route,
                section_id=request.section_id,
                instruction=request.instruction,
            ),
            job_id=job_id,
        )

        return SubmittedJob(job_id=job_id, site_id=site_id, estimated_credits=estimated)

    # =========================================================================
    # generate_image
    # =========================================================================

    async def submit_generate_image(self, user_id: str, request: GenerateImageRequest) -> SubmittedJob:
        await assert_rate_limit(self.store, f"generate-image:{user_id}", limit=10, window_seconds=60)

        provider = self.providers.get(request.provider_id)
        if image_capability(provider) is None:
            raise UnsupportedJobKindError(f"Provider {provider.id} does not support image generation")

        estimated = 5
        await self._ensure_balance(user_id, estimated)

        site_id = str(request.site_id) if request.site_id else None
        job_id = str(uuid.uuid4())
        await self.tracking.create(
            job_id=job_id,
            user_id=user_id,
            kind=JobKind.GENERATE_IMAGE.value,
            provider_id=request.provider_id,
            model=request.model or "",
            prompt=request.prompt,
            estimated_credits=estimated,
            site_id=site_id,
        )

        await self.queue.enqueue(
            GenerateImagePayload(
                user_id=user_id,
                provider_id=request.provider_id,
                model=request.model or "",
                prompt=request.prompt,
                size=request.size,
                site_id=site_id,
            ),
            job_id=job_id,
        )

        return SubmittedJob(job_id=job_id, site_id=site_id, estimated_credits=estimated)

    # =========================================================================
    # Status
    # =========================================================================

    async def get_status(self, job_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        """
        Tracking row plus live queue state.

        Queue state is None when the store is unreachable; the tracking row
        alone is still a valid answer.
        """
        job = await self.tracking.get(job_id, user_id=user_id)
        if not job:
            return None

        try:
            queued = await self.queue.get_job(job_id)
        except StoreError as e:
            logger.warning("Queue state unavailable", job_id=job_id, error=str(e))
            queued = None

        return {
            "job": job,
            "queue": {
                "status": queued.status.value,
                "attempts": queued.attempts,
                "lastError": queued.last_error,
            } if queued else None,
        }
