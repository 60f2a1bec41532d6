import copy
from typing import Any, Dict, List, Optional

import pytest

from brasa.database.credits import CreditBalance, InsufficientCreditsError, SpendResult
from brasa.jobs.processors import JobProcessors
from brasa.jobs.queue import JobQueue, QueueKeys
from brasa.providers import ProviderRegistry
from brasa.providers.base import ImageGeneration, LLMProvider, TextGeneration
from brasa.utils.logging import get_log_buffer


class InMemoryStore:
    """Dict-backed stand-in for the queue store with the same command surface."""

    def __init__(self):
        self.values: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}
        self.zsets: Dict[str, Dict[str, float]] = {}
        self.hashes: Dict[str, Dict[str, str]] = {}
        self.commands: List[tuple] = []

    async def get(self, key: str) -> Optional[str]:
        self.commands.append(("GET", key))
        return self.values.get(key)

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None):
        self.commands.append(("SET", key))
        self.values[key] = value
        if ttl_seconds:
            self.ttls[key] = ttl_seconds
        return "OK"

    async def delete(self, key: str) -> int:
        existed = key in self.values
        self.values.pop(key, None)
        return int(existed)

    async def incr(self, key: str) -> int:
        value = int(self.values.get(key, "0")) + 1
        self.values[key] = str(value)
        return value

    async def expire(self, key: str, ttl_seconds: int) -> int:
        self.ttls[key] = ttl_seconds
        return 1

    async def zadd(self, key: str, score: float, member: str) -> int:
        self.commands.append(("ZADD", key, member))
        zset = self.zsets.setdefault(key, {})
        added = member not in zset
        zset[member] = score
        return int(added)

    async def zrange(self, key: str, start: int, stop: int) -> List[str]:
        ordered = [m for m, _ in sorted(self.zsets.get(key, {}).items(), key=lambda kv: (kv[1], kv[0]))]
        if stop == -1:
            return ordered[start:]
        return ordered[start:stop + 1]

    async def zrem(self, key: str, member: str) -> int:
        self.commands.append(("ZREM", key, member))
        zset = self.zsets.get(key, {})
        if member in zset:
            del zset[member]
            return 1
        return 0

    async def hset(self, key: str, mapping: Dict[str, str]) -> int:
        h = self.hashes.setdefault(key, {})
        added = len([f for f in mapping if f not in h])
        h.update(mapping)
        return added

    async def hgetall(self, key: str) -> Optional[Dict[str, str]]:
        return dict(self.hashes[key]) if self.hashes.get(key) else None

    async def close(self):
        pass

    def members(self, key: str) -> List[str]:
        return list(self.zsets.get(key, {}))


class FakeClock:
    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


class FakeProvider(LLMProvider):
    """Scripted provider: returns queued texts, then repeats the last one."""

    def __init__(
        self,
        provider_id: str = "openai",
        texts: Optional[List[str]] = None,
        cost: Optional[float] = None,
        supports_images: bool = False,
        image_results: Optional[List[Any]] = None,
    ):
        self.id = provider_id
        self.label = f"Fake {provider_id}"
        self.supports_images = supports_images
        self.texts = list(texts or ["{}"])
        self.cost = cost
        self.image_results = list(image_results or [])
        self.calls: List[Dict[str, Any]] = []
        self.image_calls: List[Dict[str, Any]] = []

    async def generate_text(self, model, prompt, system=None, temperature=None, max_tokens=None):
        self.calls.append({
            "model": model,
            "prompt": prompt,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        content = self.texts.pop(0) if len(self.texts) > 1 else self.texts[0]
        return TextGeneration(content=content, cost_in_credits=self.cost, raw={"provider": self.id})

    async def generate_image(self, prompt, size="1024x1024", model=None):
        self.image_calls.append({"prompt": prompt, "size": size, "model": model})
        if self.image_results:
            result = self.image_results.pop(0)
        else:
            result = ImageGeneration(url=f"https://images.test/{len(self.image_calls)}.png", cost_in_credits=5)
        if isinstance(result, Exception):
            raise result
        return result

    async def estimate_cost(self, model, prompt_tokens, completion_tokens):
        return 3.0


class FakeSiteService:
    def __init__(self):
        self.sites: Dict[str, Dict[str, Any]] = {}
        self.pages: Dict[tuple, Dict[str, Any]] = {}
        self.page_rows: Dict[str, Dict[str, Any]] = {}
        self.ready: List[Dict[str, Any]] = []

    async def get_site(self, site_id):
        return self.sites.get(site_id)

    async def create_site(self, site_id, user_id, title, provider_id, model, palette=None, sector=None, last_prompt=None):
        self.sites[site_id] = {"id": site_id, "user_id": user_id, "title": title, "status": "draft"}
        return self.sites[site_id]

    async def update_site(self, site_id, user_id, updates):
        self.sites.setdefault(site_id, {"id": site_id, "user_id": user_id}).update(updates)

    async def mark_ready(self, site_id, palette=None, sector=None):
        self.ready.append({"site_id": site_id, "palette": palette, "sector": sector})

    async def upsert_page(self, site_id, route, content):
        self.pages[(site_id, route)] = copy.deepcopy(content)

    async def get_site_page(self, site_id):
        for row in self.page_rows.values():
            if row["site_id"] == site_id:
                return {"id": row["id"], "content": copy.deepcopy(row["content"])}
        return None

    async def update_page_content(self, page_id, content):
        self.page_rows[page_id]["content"] = copy.deepcopy(content)

    def add_page_row(self, page_id, site_id, content):
        self.page_rows[page_id] = {"id": page_id, "site_id": site_id, "content": copy.deepcopy(content)}


class FakeTrackingService:
    def __init__(self):
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.events: List[tuple] = []

    async def create(self, job_id, user_id, kind, provider_id, model, prompt, estimated_credits, site_id=None):
        self.rows[job_id] = {
            "id": job_id,
            "user_id": user_id,
            "kind": kind,
            "status": "queued",
            "site_id": site_id,
            "estimated_credits": estimated_credits,
        }
        return self.rows[job_id]

    async def get(self, job_id, user_id=None):
        row = self.rows.get(job_id)
        if row and user_id and row["user_id"] != user_id:
            return None
        return row

    async def mark_processing(self, job_id):
        self.events.append(("processing", job_id))
        self.rows.setdefault(job_id, {"id": job_id})["status"] = "processing"

    async def mark_completed(self, job_id, cost_credits, result):
        self.events.append(("completed", job_id))
        self.rows.setdefault(job_id, {"id": job_id}).update(
            {"status": "completed", "cost_credits": cost_credits, "result": result}
        )

    async def mark_failed(self, job_id, error):
        self.events.append(("failed", job_id))
        self.rows.setdefault(job_id, {"id": job_id}).update({"status": "failed", "error": error})


class FakeCreditService:
    def __init__(self, available: float = 100, refuse: bool = False):
        self.available = available
        self.refuse = refuse
        self.spends: List[Dict[str, Any]] = []

    async def get_balance(self, user_id):
        return CreditBalance(total=self.available, used=0, available=self.available, plan="pro")

    async def spend(self, user_id, amount, reason, reference_id=None):
        if self.refuse:
            raise InsufficientCreditsError("Insufficient credits")
        self.spends.append({"user_id": user_id, "amount": amount, "reason": reason, "reference_id": reference_id})
        self.available -= amount
        return SpendResult(success=True, remaining=self.available)


class FakeStorageService:
    def __init__(self):
        self.uploads: List[Dict[str, Any]] = []

    async def upload(self, path, data, content_type="image/png"):
        self.uploads.append({"path": path, "data": data, "content_type": content_type})
        return f"https://cdn.test/{path}"


def make_site_document() -> Dict[str, Any]:
    return {
        "version": "1.0.0",
        "site": {
            "name": "Nome do modelo",
            "description": "Descricao do modelo",
            "locale": "pt-BR",
            "palette": {"primary": "#0b1f3a", "secondary": "#6c2bd9", "background": "#ffffff", "accent": "#f5a623"},
        },
        "pages": [
            {
                "route": "/",
                "title": "Inicio",
                "seo": {"title": "Padaria Sol", "description": "Paes artesanais", "keywords": ["padaria"]},
                "sections": [
                    {
                        "id": "hero",
                        "type": "hero",
                        "headline": "Paes frescos todo dia",
                        "subhead": "Desde 1998",
                        "media": [
                            {"kind": "image", "prompt": "fachada da padaria", "alt": "Fachada"},
                            {"kind": "image", "prompt": "paes na vitrine", "alt": "Vitrine"},
                        ],
                        "actions": [{"label": "Encomendar", "href": "#contato", "style": "primary"}],
                    },
                    {
                        "id": "features",
                        "type": "features",
                        "headline": "Por que nos",
                        "items": [{"title": "Fermentacao natural"}],
                        "media": [{"kind": "image", "prompt": "massa fermentando", "alt": "Massa"}],
                    },
                ],
            },
            {
                "route": "/sobre",
                "title": "Sobre",
                "seo": {"title": "Sobre", "description": "Nossa historia", "keywords": []},
                "sections": [
                    {
                        "id": "historia",
                        "type": "stats",
                        "headline": "25 anos",
                        "media": [{"kind": "image", "prompt": "familia fundadora", "alt": "Fundadores"}],
                    }
                ],
            },
        ],
    }


def find_section(content: Dict[str, Any], route: str, section_id: str) -> Dict[str, Any]:
    page = next(p for p in content["pages"] if p["route"] == route)
    return next(s for s in page["sections"] if s["id"] == section_id)


@pytest.fixture(autouse=True)
def clear_log_buffer():
    get_log_buffer().clear()
    yield


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def queue(store, clock) -> JobQueue:
    return JobQueue(store, keys=QueueKeys(prefix="test-queue"), clock=clock)


@pytest.fixture
def sites() -> FakeSiteService:
    return FakeSiteService()


@pytest.fixture
def tracking() -> FakeTrackingService:
    return FakeTrackingService()


@pytest.fixture
def credits() -> FakeCreditService:
    return FakeCreditService()


@pytest.fixture
def storage() -> FakeStorageService:
    return FakeStorageService()


@pytest.fixture
def make_processors(sites, tracking, credits, storage):
    def _make(*providers: LLMProvider, http_client=None) -> JobProcessors:
        return JobProcessors(
            providers=ProviderRegistry(list(providers)),
            sites=sites,
            tracking=tracking,
            credits=credits,
            storage=storage,
            http_client=http_client,
        )
    return _make
