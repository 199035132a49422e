"""Tests for the allowed-origins cache and the CORS middleware using it"""
from fastapi import FastAPI
from fastapi.testclient import TestClient

from matrimony.core.origins import AllowedOriginsCache, CachedOriginsCORSMiddleware


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_exact_and_regex_origins():
    cache = AllowedOriginsCache(
        lambda: ["http://localhost:3000", r"regex:^https://matrimonyservices-[a-z0-9]+\.vercel\.app$"]
    )
    assert cache.is_allowed("http://localhost:3000")
    assert cache.is_allowed("https://matrimonyservices-ab12.vercel.app")
    assert not cache.is_allowed("https://evil.example.com")


def test_reload_happens_after_ttl():
    clock = FakeClock()
    origins = ["http://a.test"]
    calls = []

    def loader():
        calls.append(1)
        return list(origins)

    cache = AllowedOriginsCache(loader, ttl=60, clock=clock)
    assert cache.is_allowed("http://a.test")

    origins.append("http://b.test")
    clock.now = 30
    assert not cache.is_allowed("http://b.test")

    clock.now = 61
    assert cache.is_allowed("http://b.test")
    assert len(calls) == 2


def test_explicit_refresh():
    origins = ["http://a.test"]
    cache = AllowedOriginsCache(lambda: list(origins), ttl=3600)
    assert cache.get() == ["http://a.test"]

    origins[:] = ["http://c.test"]
    cache.refresh()
    assert cache.get() == ["http://c.test"]


def test_failing_loader_keeps_last_good_list():
    state = {"fail": False}

    def loader():
        if state["fail"]:
            raise RuntimeError("config store down")
        return ["http://a.test"]

    cache = AllowedOriginsCache(loader, ttl=0)
    assert cache.is_allowed("http://a.test")
    state["fail"] = True
    assert cache.is_allowed("http://a.test")


def test_middleware_uses_cache():
    app = FastAPI()
    app.add_middleware(
        CachedOriginsCORSMiddleware,
        origins=AllowedOriginsCache(lambda: ["http://allowed.test"]),
        allow_methods=["GET"],
    )

    @app.get("/ping")
    def ping():
        return {"ok": True}

    client = TestClient(app)
    allowed = client.get("/ping", headers={"Origin": "http://allowed.test"})
    blocked = client.get("/ping", headers={"Origin": "http://blocked.test"})

    assert allowed.headers.get("access-control-allow-origin") == "http://allowed.test"
    assert "access-control-allow-origin" not in blocked.headers
