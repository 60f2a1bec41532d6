import base64
import json

import httpx
import pytest

from brasa.database.credits import InsufficientCreditsError
from brasa.errors import MalformedOutputError, MissingEntityError, UnsupportedJobKindError
from brasa.jobs.models import (
    EditSectionPayload,
    GenerateImagePayload,
    GenerateSitePayload,
    SiteBriefing,
)
from brasa.providers.base import ImageGeneration
from brasa.utils.logging import get_log_buffer

from tests.conftest import FakeProvider, find_section, make_site_document


def site_payload(briefing: SiteBriefing = None) -> GenerateSitePayload:
    briefing = briefing or SiteBriefing(
        title="Padaria Sol",
        prompt="Site para uma padaria artesanal no centro de Curitiba",
        sector="alimentacao",
        palette="amarelo e marrom",
    )
    return GenerateSitePayload(
        user_id="user-1",
        provider_id="openai",
        model="gpt-4o-mini",
        prompt=briefing.to_json(),
        site_id="site-1",
    )


def edit_payload(section_id: str = "hero", page_route: str = "/") -> EditSectionPayload:
    return EditSectionPayload(
        user_id="user-1",
        provider_id="anthropic",
        model="claude-3-5-haiku-latest",
        site_id="site-1",
        page_route=page_route,
        section_id=section_id,
        instruction="Deixe o titulo mais convidativo",
    )


# =============================================================================
# generate_site
# =============================================================================

@pytest.mark.asyncio
async def test_generate_site_persists_content_and_debits(make_processors, sites, tracking, credits):
    provider = FakeProvider(
        "openai",
        texts=[json.dumps(make_site_document())],
        cost=12.5,
        supports_images=True,
        image_results=[
            ImageGeneration(url="https://images.test/a.png", cost_in_credits=5),
            RuntimeError("image rate limited"),
            ImageGeneration(url="https://images.test/c.png", cost_in_credits=4),
        ],
    )
    processors = make_processors(provider)

    result = await processors.process("job-1", site_payload())

    assert result.site_id == "site-1"
    assert result.cost_credits == 21.5
    assert result.images_generated == 2
    assert result.images_failed == 1

    content = sites.pages[("site-1", "/")]
    assert content["site"]["name"] == "Padaria Sol"
    assert content["site"]["description"] == "Site para uma padaria artesanal no centro de Curitiba"

    hero = find_section(content, "/", "hero")
    assert hero["media"][0]["url"] == "https://images.test/a.png"
    assert "url" not in hero["media"][1]
    assert "url" not in find_section(content, "/", "features")["media"][0]
    assert find_section(content, "/sobre", "historia")["media"][0]["url"] == "https://images.test/c.png"

    assert sites.ready == [{"site_id": "site-1", "palette": "amarelo e marrom", "sector": "alimentacao"}]
    assert tracking.rows["job-1"]["status"] == "completed"
    assert tracking.rows["job-1"]["cost_credits"] == 21.5
    assert tracking.rows["job-1"]["result"]["siteId"] == "site-1"
    assert credits.spends == [
        {"user_id": "user-1", "amount": 22, "reason": "generate_site", "reference_id": "site-1"}
    ]

    warnings = get_log_buffer().get_warnings()
    assert any(w["message"] == "Image generation failed" for w in warnings)


@pytest.mark.asyncio
async def test_generate_site_prompt_includes_briefing(make_processors):
    provider = FakeProvider("openai", texts=[json.dumps(make_site_document())])
    processors = make_processors(provider)
    briefing = SiteBriefing(
        title="Oficina Rapida",
        prompt="Oficina mecanica especializada em carros eletricos",
        additional_instructions="Destaque o atendimento 24h",
    )

    await processors.process("job-1", site_payload(briefing))

    prompt = provider.calls[0]["prompt"]
    assert "negocio" in prompt
    assert "Destaque o atendimento 24h" in prompt
    assert prompt.endswith("Oficina mecanica especializada em carros eletricos")
    assert provider.calls[0]["temperature"] == 0.7


@pytest.mark.asyncio
async def test_generate_site_without_image_support_uses_default_cost(make_processors, credits):
    provider = FakeProvider("anthropic", texts=[json.dumps(make_site_document())])
    processors = make_processors(provider)
    payload = site_payload()
    payload.provider_id = "anthropic"

    result = await processors.process("job-1", payload)

    assert provider.image_calls == []
    assert result.cost_credits == 10
    assert result.images_generated == 0
    assert credits.spends[0]["amount"] == 10


@pytest.mark.asyncio
async def test_generate_site_uploads_inline_images(make_processors, sites, storage):
    encoded = base64.b64encode(b"gemini-png").decode()
    provider = FakeProvider(
        "google",
        texts=[json.dumps(make_site_document())],
        supports_images=True,
        image_results=[
            ImageGeneration(url=f"data:image/png;base64,{encoded}", cost_in_credits=4)
            for _ in range(3)
        ],
    )
    processors = make_processors(provider)
    payload = site_payload()
    payload.provider_id = "google"

    result = await processors.process("job-1", payload)

    assert result.images_generated == 3
    assert len(storage.uploads) == 3
    assert all(upload["data"] == b"gemini-png" for upload in storage.uploads)
    assert all(upload["path"].startswith("user-1/site-1/") for upload in storage.uploads)
    assert len({upload["path"] for upload in storage.uploads}) == 3

    content = sites.pages[("site-1", "/")]
    hero = find_section(content, "/", "hero")
    assert hero["media"][0]["url"] == f"https://cdn.test/{storage.uploads[0]['path']}"
    assert "data:" not in json.dumps(content)


@pytest.mark.asyncio
@pytest.mark.parametrize("output", [
    "Claro! Aqui esta o seu site:",
    json.dumps({"site": {"name": "x"}}),
])
async def test_generate_site_rejects_malformed_output(make_processors, sites, tracking, credits, output):
    processors = make_processors(FakeProvider("openai", texts=[output]))

    with pytest.raises(MalformedOutputError, match="invalid JSON"):
        await processors.process("job-1", site_payload())

    assert sites.pages == {}
    assert tracking.rows == {}
    assert credits.spends == []


@pytest.mark.asyncio
async def test_generate_site_debit_failure_after_content_saved(make_processors, sites, credits):
    credits.refuse = True
    processors = make_processors(FakeProvider("openai", texts=[json.dumps(make_site_document())]))

    with pytest.raises(InsufficientCreditsError):
        await processors.process("job-1", site_payload())

    assert ("site-1", "/") in sites.pages


# =============================================================================
# edit_section
# =============================================================================

@pytest.mark.asyncio
async def test_edit_section_merges_update(make_processors, sites, tracking, credits):
    sites.add_page_row("page-1", "site-1", make_site_document())
    provider = FakeProvider("anthropic", texts=['{"headline": "Pao quentinho saindo agora"}'])
    processors = make_processors(provider)

    result = await processors.process("job-2", edit_payload())

    stored = sites.page_rows["page-1"]["content"]
    hero = find_section(stored, "/", "hero")
    assert hero["headline"] == "Pao quentinho saindo agora"
    assert hero["subhead"] == "Desde 1998"
    assert len(hero["media"]) == 2

    assert result.section == hero
    assert result.cost_credits == 4
    assert tracking.rows["job-2"]["result"] == {
        "sectionId": "hero",
        "section": {"headline": "Pao quentinho saindo agora"},
    }
    assert credits.spends == [
        {"user_id": "user-1", "amount": 4, "reason": "edit_section", "reference_id": "site-1:hero"}
    ]
    assert provider.calls[0]["temperature"] == 0.6
    assert provider.calls[0]["max_tokens"] == 1024
    assert "Deixe o titulo mais convidativo" in provider.calls[0]["prompt"]


@pytest.mark.asyncio
async def test_edit_section_missing_page_row(make_processors):
    provider = FakeProvider("anthropic")
    processors = make_processors(provider)

    with pytest.raises(MissingEntityError, match="Site page not found for editing"):
        await processors.process("job-2", edit_payload())

    assert provider.calls == []


@pytest.mark.asyncio
async def test_edit_section_missing_route(make_processors, sites):
    sites.add_page_row("page-1", "site-1", make_site_document())
    processors = make_processors(FakeProvider("anthropic"))

    with pytest.raises(MissingEntityError, match="Page not found in site JSON"):
        await processors.process("job-2", edit_payload(page_route="/contato"))


@pytest.mark.asyncio
async def test_edit_section_missing_section(make_processors, sites):
    sites.add_page_row("page-1", "site-1", make_site_document())
    processors = make_processors(FakeProvider("anthropic"))

    with pytest.raises(MissingEntityError, match="Section not found"):
        await processors.process("job-2", edit_payload(section_id="pricing"))


@pytest.mark.asyncio
@pytest.mark.parametrize("output", ["not json at all", '["headline"]', '{"type": "carousel"}'])
async def test_edit_section_rejects_malformed_output(make_processors, sites, credits, output):
    original = make_site_document()
    sites.add_page_row("page-1", "site-1", original)
    processors = make_processors(FakeProvider("anthropic", texts=[output]))

    with pytest.raises(MalformedOutputError, match="invalid section JSON"):
        await processors.process("job-2", edit_payload())

    assert sites.page_rows["page-1"]["content"] == original
    assert credits.spends == []


# =============================================================================
# generate_image
# =============================================================================

def image_payload(provider_id: str = "openai", site_id: str = "site-1") -> GenerateImagePayload:
    return GenerateImagePayload(
        user_id="user-1",
        provider_id=provider_id,
        model="",
        prompt="Vitrine de paes ao amanhecer",
        size="512x512",
        site_id=site_id,
    )


@pytest.mark.asyncio
async def test_generate_image_uploads_data_url(make_processors, storage, tracking, credits):
    encoded = base64.b64encode(b"png-bytes").decode()
    provider = FakeProvider(
        "google",
        supports_images=True,
        image_results=[ImageGeneration(url=f"data:image/png;base64,{encoded}", cost_in_credits=4)],
    )
    processors = make_processors(provider)

    result = await processors.process("job-3", image_payload("google"))

    upload = storage.uploads[0]
    assert upload["data"] == b"png-bytes"
    assert upload["content_type"] == "image/png"
    assert upload["path"].startswith("user-1/site-1/")
    assert upload["path"].endswith(".png")

    assert result.url == f"https://cdn.test/{upload['path']}"
    assert result.size == "512x512"
    assert provider.image_calls[0]["size"] == "512x512"
    assert provider.image_calls[0]["model"] is None
    assert tracking.rows["job-3"]["status"] == "completed"
    assert credits.spends == [
        {"user_id": "user-1", "amount": 4, "reason": "generate_image", "reference_id": upload["path"]}
    ]


@pytest.mark.asyncio
async def test_generate_image_downloads_remote_url(make_processors, storage):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(
        lambda request: httpx.Response(200, content=b"jpeg-bytes", headers={"content-type": "image/jpeg"})
    ))
    provider = FakeProvider("openai", supports_images=True)
    processors = make_processors(provider, http_client=http_client)

    result = await processors.process("job-3", image_payload(site_id=None))

    assert storage.uploads[0]["data"] == b"jpeg-bytes"
    assert storage.uploads[0]["content_type"] == "image/jpeg"
    assert "/standalone/" in result.path
    assert result.cost_credits == 5


@pytest.mark.asyncio
async def test_generate_image_requires_image_capability(make_processors, storage):
    processors = make_processors(FakeProvider("anthropic", supports_images=False))

    with pytest.raises(UnsupportedJobKindError):
        await processors.process("job-3", image_payload("anthropic"))

    assert storage.uploads == []


@pytest.mark.asyncio
async def test_unknown_kind_is_rejected(make_processors):
    processors = make_processors(FakeProvider())

    with pytest.raises(UnsupportedJobKindError, match="render_video"):
        await processors.process("job-4", {"kind": "render_video"})
