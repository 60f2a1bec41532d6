"""
Job processors: one procedure per job kind.

Each processor runs a linear, non-resumable sequence of external calls. A
retried job re-runs the whole sequence: content writes are overwritten with
the same target, but the final credit debit can be charged twice if a
previous attempt died after it.
"""

import base64
import math
import time
import uuid
from typing import Any, Dict, Optional, Tuple, Union

import httpx

from brasa.ai.prompts import (
    build_edit_prompt,
    build_site_prompt,
    merge_section,
    parse_section_update,
    parse_site_document,
)
from brasa.database.credits import CreditService
from brasa.database.jobs import JobTrackingService
from brasa.database.sites import SiteService
from brasa.database.storage import StorageService
from brasa.errors import MissingEntityError, UnsupportedJobKindError
from brasa.jobs.models import (
    EditSectionPayload,
    GenerateImagePayload,
    GenerateSitePayload,
    ImageGeneratedResult,
    JobPayload,
    JobResult,
    SectionEditedResult,
    SiteBriefing,
    SiteGeneratedResult,
    payload_kind,
)
from brasa.providers import ProviderRegistry, get_registry, image_capability
from brasa.utils.logging import worker_logger as logger

# Credits charged when a provider does not report a cost
DEFAULT_SITE_CREDITS = 10
DEFAULT_EDIT_CREDITS = 4
DEFAULT_IMAGE_CREDITS = 5

SITE_ROUTE = "/"
SITE_IMAGE_SIZE = "1024x1024"
IMAGES_PER_PAGE = 2
DEFAULT_SECTOR = "negocio"


class JobProcessors:
    """
    Dispatches a claimed job to the processor for its kind.

    All collaborators are injectable; by default they are the Supabase-backed
    services and the global provider registry.
    """

    def __init__(
        self,
        providers: Optional[ProviderRegistry] = None,
        sites: Optional[SiteService] = None,
        tracking: Optional[JobTrackingService] = None,
        credits: Optional[CreditService] = None,
        storage: Optional[StorageService] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.providers = providers or get_registry()
        self.sites = sites or SiteService()
        self.tracking = tracking or JobTrackingService()
        self.credits = credits or CreditService()
        self.storage = storage or StorageService()
        self._http_client = http_client

    async def process(self, job_id: str, payload: Union[JobPayload, Dict[str, Any]]) -> JobResult:
        if isinstance(payload, GenerateSitePayload):
            return await self.generate_site(job_id, payload)
        if isinstance(payload, EditSectionPayload):
            return await self.edit_section(job_id, payload)
        if isinstance(payload, GenerateImagePayload):
            return await self.generate_image(job_id, payload)

        raise UnsupportedJobKindError(f"Job kind {payload_kind(payload)} not supported")

    # =========================================================================
    # generate_site
    # =========================================================================

    async def generate_site(self, job_id: str, payload: GenerateSitePayload) -> SiteGeneratedResult:
        """
        Generate a full site from the user's briefing.

        Steps: prompt the text model, parse its SiteDocument strictly, keep
        the user's own title and description, fill up to two image
        placeholders per page, persist, mark the site ready, close the
        tracking row and finally debit the accumulated cost.
        """
        provider = self.providers.get(payload.provider_id)
        briefing = SiteBriefing.from_json(payload.prompt)

        site_prompt = build_site_prompt(
            sector=briefing.sector or DEFAULT_SECTOR,
            tone=briefing.tone,
            palette=briefing.palette,
            additional_instructions=briefing.additional_instructions,
        )

        generation = await provider.generate_text(
            model=payload.model,
            prompt=f"{site_prompt}\n\n{briefing.prompt}",
            temperature=0.7,
        )

        document = parse_site_document(generation.content)

        # The model's naming is discarded in favour of the user's input
        document.site.name = briefing.title
        document.site.description = briefing.prompt

        total_credits = _cost_or_default(generation.cost_in_credits, DEFAULT_SITE_CREDITS)
        images_generated = 0
        images_failed = 0

        generate_image = image_capability(provider)
        if generate_image is not None:
            for page in document.pages:
                placeholders = [
                    media
                    for section in page.sections
                    for media in (section.media or [])
                ][:IMAGES_PER_PAGE]

                for media in placeholders:
                    try:
                        image = await generate_image(prompt=media.prompt, size=SITE_IMAGE_SIZE)
                        url = await self._hosted_image_url(payload, image.url)
                    except Exception as e:
                        images_failed += 1
                        logger.warning(
                            "Image generation failed",
                            job_id=job_id,
                            site_id=payload.site_id,
                            route=page.route,
                            error=str(e),
                        )
                        continue

                    media.url = url
                    total_credits += _cost_or_default(image.cost_in_credits, DEFAULT_IMAGE_CREDITS)
                    images_generated += 1

        await self.sites.upsert_page(payload.site_id, SITE_ROUTE, document.to_content())
        await self.sites.mark_ready(payload.site_id, palette=briefing.palette, sector=briefing.sector)

        await self.tracking.mark_completed(
            job_id,
            cost_credits=total_credits,
            result={
                "siteId": payload.site_id,
                "providerResponse": generation.raw,
            },
        )

        await self.credits.spend(
            payload.user_id,
            amount=math.ceil(total_credits),
            reason=GenerateSitePayload.kind.value,
            reference_id=payload.site_id,
        )

        logger.info(
            "Site generated",
            job_id=job_id,
            site_id=payload.site_id,
            credits=total_credits,
            images=images_generated,
        )

        return SiteGeneratedResult(
            site_id=payload.site_id,
            cost_credits=total_credits,
            images_generated=images_generated,
            images_failed=images_failed,
        )

    # =========================================================================
    # edit_section
    # =========================================================================

    async def edit_section(self, job_id: str, payload: EditSectionPayload) -> SectionEditedResult:
        provider = self.providers.get(payload.provider_id)

        page_row = await self.sites.get_site_page(payload.site_id)
        if not page_row:
            raise MissingEntityError("Site page not found for editing")

        content = page_row["content"]
        page = next(
            (item for item in content.get("pages", []) if item.get("route") == payload.page_route),
            None,
        )
        if page is None:
            raise MissingEntityError("Page not found in site JSON")

        sections = page.get("sections") or []
        section_index = next(
            (i for i, section in enumerate(sections) if section.get("id") == payload.section_id),
            None,
        )
        if section_index is None:
            raise MissingEntityError("Section not found")

        section = sections[section_index]

        generation = await provider.generate_text(
            model=payload.model,
            prompt=build_edit_prompt(section, payload.instruction),
            temperature=0.6,
            max_tokens=1024,
        )

        update = parse_section_update(generation.content)
        sections[section_index] = merge_section(section, update)

        await self.sites.update_page_content(page_row["id"], content)

        cost = _cost_or_default(generation.cost_in_credits, DEFAULT_EDIT_CREDITS)
        await self.tracking.mark_completed(
            job_id,
            cost_credits=cost,
            result={
                "sectionId": payload.section_id,
                "section": update,
            },
        )

        await self.credits.spend(
            payload.user_id,
            amount=math.ceil(cost),
            reason=EditSectionPayload.kind.value,
            reference_id=f"{payload.site_id}:{payload.section_id}",
        )

        return SectionEditedResult(
            site_id=payload.site_id,
            page_route=payload.page_route,
            section_id=payload.section_id,
            cost_credits=cost,
            section=sections[section_index],
        )

    # =========================================================================
    # generate_image
    # =========================================================================

    async def generate_image(self, job_id: str, payload: GenerateImagePayload) -> ImageGeneratedResult:
        """Standalone image: generate, store in the assets bucket, debit."""
        provider = self.providers.get(payload.provider_id)
        generate = image_capability(provider)
        if generate is None:
            raise UnsupportedJobKindError(f"Provider {provider.id} does not support image generation")

        image = await generate(prompt=payload.prompt, size=payload.size, model=payload.model or None)

        data, content_type = await self._fetch_image(image.url)
        path = f"{payload.user_id}/{payload.site_id or 'standalone'}/{int(time.time() * 1000)}.png"
        public_url = await self.storage.upload(path, data, content_type)

        cost = _cost_or_default(image.cost_in_credits, DEFAULT_IMAGE_CREDITS)
        await self.tracking.mark_completed(
            job_id,
            cost_credits=cost,
            result={"url": public_url, "path": path, "size": payload.size},
        )

        await self.credits.spend(
            payload.user_id,
            amount=math.ceil(cost),
            reason=GenerateImagePayload.kind.value,
            reference_id=path,
        )

        return ImageGeneratedResult(url=public_url, path=path, size=payload.size, cost_credits=cost)

    async def _hosted_image_url(self, payload: GenerateSitePayload, url: str) -> str:
        """Inline data: images are uploaded so site content only ever holds links."""
        if not url.startswith("data:"):
            return url

        data, content_type = await self._fetch_image(url)
        path = f"{payload.user_id}/{payload.site_id}/{uuid.uuid4().hex}.png"
        return await self.storage.upload(path, data, content_type)

    async def _fetch_image(self, url: str) -> Tuple[bytes, str]:
        """Download generated image bytes (providers return either a URL or a data: URL)."""
        if url.startswith("data:"):
            header, _, encoded = url.partition(",")
            content_type = header[len("data:"):].split(";")[0] or "image/png"
            return base64.b64decode(encoded), content_type

        if self._http_client is not None:
            response = await self._http_client.get(url)
        else:
            async with httpx.AsyncClient(timeout=60.0) as client:
                response = await client.get(url)

        response.raise_for_status()
        return response.content, response.headers.get("content-type", "image/png")


def _cost_or_default(cost: Optional[float], default: float) -> float:
    return default if cost is None else cost
