"""
Prompt builders and strict parsers for site generation and section edits.

Prompts are provider-agnostic plain text. Parsers never repair model output:
anything that is not valid JSON of the expected shape raises
MalformedOutputError so the job goes through the retry path.
"""

import json
from typing import Any, Dict, Optional

from pydantic import ValidationError

from brasa.ai.site_schema import SiteDocument, SiteSection
from brasa.errors import MalformedOutputError

DEFAULT_LOCALE = "pt-BR"
DEFAULT_PALETTE = "Navy escuro com roxo vibrante"

SITE_SCHEMA_DESCRIPTION = {
    "version": "1.0.0",
    "site": {
        "name": "string",
        "description": "string",
        "locale": "string",
        "palette": {
            "primary": "string",
            "secondary": "string",
            "background": "string",
            "accent": "string",
        },
    },
    "pages": [
        {
            "route": "/",
            "title": "string",
            "seo": {
                "title": "string",
                "description": "string",
                "keywords": ["string"],
            },
            "sections": [
                {
                    "id": "string",
                    "type": "hero|features|cta|pricing|faq|testimonials|gallery|stats|contact|footer",
                    "headline": "string",
                    "subhead": "string",
                    "body": "string",
                    "media": [{"kind": "image|video", "prompt": "string", "alt": "string"}],
                    "actions": [{"label": "string", "href": "string", "style": "primary|secondary|ghost"}],
                    "items": [{"title": "string", "description": "string", "icon": "string"}],
                    "metadata": {"layout": "grid|list|carousel", "ariaLabel": "string"},
                }
            ],
        }
    ],
}


def build_site_prompt(
    sector: str,
    tone: str,
    palette: Optional[str] = None,
    locale: Optional[str] = None,
    additional_instructions: Optional[str] = None,
) -> str:
    """Instructions that ask a text model for a complete SiteDocument as JSON."""
    lines = [
        "Voce e uma IA especialista em criacao de sites para o mercado brasileiro.",
        f"Gere um JSON que siga o esquema abaixo (SiteJSON) para um site do setor: {sector}.",
        f"Tom de voz: {tone}. Paleta sugerida: {palette or DEFAULT_PALETTE}.",
        "O site deve incluir hero, features (destaques), testimonials (prova social), "
        "pricing (plano de precos), FAQ, CTA final e bloco de SEO (tags).",
        "Escreva copy em portugues brasileiro, clara, objetiva e adequada ao publico alvo.",
        "Cada secao deve indicar componentes, textos, CTAs, imagens sugeridas e dados estruturados.",
    ]
    if additional_instructions:
        lines.append(f"Instrucoes extras: {additional_instructions}")
    lines.extend([
        "Retorne apenas JSON valido alinhado ao tipo SiteJSON (sem markdown).",
        json.dumps(SITE_SCHEMA_DESCRIPTION, indent=2),
        f"locale: {locale or DEFAULT_LOCALE}",
    ])
    return "\n".join(lines)


def parse_site_document(text: str) -> SiteDocument:
    """Parse provider output as a SiteDocument or raise MalformedOutputError."""
    try:
        return SiteDocument.model_validate_json(text)
    except ValidationError as e:
        raise MalformedOutputError(f"Provider returned invalid JSON: {e.error_count()} validation error(s)") from e


def build_edit_prompt(section: Dict[str, Any], instruction: str) -> str:
    return "\n".join([
        "Voce e um assistente que atualiza secoes de sites no formato JSON.",
        "Retorne apenas o JSON da secao atualizada, mantendo estrutura e campos existentes.",
        "Secao atual:",
        json.dumps(section, indent=2, ensure_ascii=False),
        "Instrucao do usuario:",
        instruction,
    ])


def parse_section_update(text: str) -> Dict[str, Any]:
    """The model's section must be a JSON object; anything else is malformed."""
    try:
        update = json.loads(text)
    except (TypeError, ValueError) as e:
        raise MalformedOutputError("Provider returned invalid section JSON") from e

    if not isinstance(update, dict):
        raise MalformedOutputError("Provider returned invalid section JSON")
    return update


def merge_section(original: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    """
    Overlay the model's fields on the current section.

    Keys the model omitted keep their original value. The merged section must
    still be a valid SiteSection.
    """
    merged = {**original, **update}
    try:
        SiteSection.model_validate(merged)
    except ValidationError as e:
        raise MalformedOutputError("Provider returned invalid section JSON") from e
    return merged
