"""
Job payloads, queue envelopes and job results.

Payloads are a tagged union discriminated by `kind`. The envelope (QueueJob)
is the unit of durable queue state and is stored as one JSON document per
job id, using camelCase wire names.
"""

import json
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Literal, Optional, Union

from brasa.errors import ErrorKind


class JobKind(str, Enum):
    GENERATE_SITE = "generate_site"
    EDIT_SECTION = "edit_section"
    GENERATE_IMAGE = "generate_image"


class JobStatus(str, Enum):
    """Queue lifecycle: pending -> processing -> completed | pending (retry) | failed"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


ProviderId = Literal["openai", "anthropic", "google"]
ImageSize = Literal["256x256", "512x512", "1024x1024"]

PROVIDER_IDS = ("openai", "anthropic", "google")
IMAGE_SIZES = ("256x256", "512x512", "1024x1024")

DEFAULT_MAX_ATTEMPTS = 3

_WIRE_NAMES = {
    "user_id": "userId",
    "provider_id": "providerId",
    "model": "model",
    "prompt": "prompt",
    "site_id": "siteId",
    "page_route": "pageRoute",
    "section_id": "sectionId",
    "instruction": "instruction",
    "size": "size",
}


# =============================================================================
# Payloads
# =============================================================================

@dataclass
class _BasePayload:
    user_id: str
    provider_id: str
    model: str

    kind = None  # overridden per payload type

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"kind": self.kind.value}
        for f in fields(self):
            data[_WIRE_NAMES[f.name]] = getattr(self, f.name)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        return cls(**{f.name: data.get(_WIRE_NAMES[f.name]) for f in fields(cls)})


@dataclass
class GenerateSitePayload(_BasePayload):
    """Generate a full site. `prompt` is the serialized SiteBriefing."""
    prompt: str
    site_id: str

    kind = JobKind.GENERATE_SITE


@dataclass
class EditSectionPayload(_BasePayload):
    site_id: str
    page_route: str
    section_id: str
    instruction: str

    kind = JobKind.EDIT_SECTION


@dataclass
class GenerateImagePayload(_BasePayload):
    prompt: str
    size: str
    site_id: Optional[str] = None

    kind = JobKind.GENERATE_IMAGE


JobPayload = Union[GenerateSitePayload, EditSectionPayload, GenerateImagePayload]

PAYLOAD_TYPES = {
    JobKind.GENERATE_SITE.value: GenerateSitePayload,
    JobKind.EDIT_SECTION.value: EditSectionPayload,
    JobKind.GENERATE_IMAGE.value: GenerateImagePayload,
}


def payload_from_dict(data: Dict[str, Any]) -> Union[JobPayload, Dict[str, Any]]:
    """
    Rebuild a typed payload from its stored form.

    Unknown kinds are returned as the raw mapping; rejecting them is the
    processor's job, not the loader's.
    """
    payload_type = PAYLOAD_TYPES.get(data.get("kind"))
    if payload_type is None:
        return dict(data)
    return payload_type.from_dict(data)


def payload_to_dict(payload: Union[JobPayload, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(payload, dict):
        return dict(payload)
    return payload.to_dict()


def payload_kind(payload: Union[JobPayload, Dict[str, Any]]) -> Optional[str]:
    if isinstance(payload, dict):
        return payload.get("kind")
    return payload.kind.value


@dataclass
class SiteBriefing:
    """The user's site request, serialized into GenerateSitePayload.prompt"""
    title: str
    prompt: str
    tone: str = "moderno e humano"
    palette: Optional[str] = None
    sector: Optional[str] = None
    additional_instructions: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps({
            "title": self.title,
            "prompt": self.prompt,
            "tone": self.tone,
            "palette": self.palette,
            "sector": self.sector,
            "additionalInstructions": self.additional_instructions,
        })

    @classmethod
    def from_json(cls, raw: str) -> "SiteBriefing":
        data = json.loads(raw)
        return cls(
            title=data["title"],
            prompt=data["prompt"],
            tone=data.get("tone") or "moderno e humano",
            palette=data.get("palette"),
            sector=data.get("sector"),
            additional_instructions=data.get("additionalInstructions"),
        )


# =============================================================================
# Queue envelope
# =============================================================================

@dataclass
class QueueJob:
    """Persisted wrapper around a payload carrying scheduling and lifecycle state."""
    id: str
    payload: Union[JobPayload, Dict[str, Any]]
    scheduled_at: int
    attempts: int = 0
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    status: JobStatus = JobStatus.PENDING
    last_error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    result: Optional[Any] = None

    @property
    def kind(self) -> Optional[str]:
        return payload_kind(self.payload)

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "payload": payload_to_dict(self.payload),
            "scheduledAt": self.scheduled_at,
            "attempts": self.attempts,
            "maxAttempts": self.max_attempts,
            "status": self.status.value,
        }
        if self.last_error is not None:
            data["lastError"] = self.last_error
        if self.error_kind is not None:
            data["errorKind"] = self.error_kind.value
        if self.result is not None:
            data["result"] = self.result
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueueJob":
        error_kind = data.get("errorKind")
        return cls(
            id=data["id"],
            payload=payload_from_dict(data.get("payload") or {}),
            scheduled_at=int(data["scheduledAt"]),
            attempts=int(data.get("attempts", 0)),
            max_attempts=int(data.get("maxAttempts", DEFAULT_MAX_ATTEMPTS)),
            status=JobStatus(data.get("status", JobStatus.PENDING.value)),
            last_error=data.get("lastError"),
            error_kind=ErrorKind(error_kind) if error_kind else None,
            result=data.get("result"),
        )

    @classmethod
    def from_json(cls, raw: str) -> "QueueJob":
        return cls.from_dict(json.loads(raw))


# =============================================================================
# Results (one variant per job kind)
# =============================================================================

@dataclass
class SiteGeneratedResult:
    site_id: str
    cost_credits: float
    images_generated: int = 0
    images_failed: int = 0

    kind = JobKind.GENERATE_SITE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "siteId": self.site_id,
            "costCredits": self.cost_credits,
            "imagesGenerated": self.images_generated,
            "imagesFailed": self.images_failed,
        }


@dataclass
class SectionEditedResult:
    site_id: str
    page_route: str
    section_id: str
    cost_credits: float
    section: Dict[str, Any] = field(default_factory=dict)

    kind = JobKind.EDIT_SECTION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "siteId": self.site_id,
            "pageRoute": self.page_route,
            "sectionId": self.section_id,
            "costCredits": self.cost_credits,
            "section": self.section,
        }


@dataclass
class ImageGeneratedResult:
    url: str
    path: str
    size: str
    cost_credits: float

    kind = JobKind.GENERATE_IMAGE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "url": self.url,
            "path": self.path,
            "size": self.size,
            "costCredits": self.cost_credits,
        }


JobResult = Union[SiteGeneratedResult, SectionEditedResult, ImageGeneratedResult]
