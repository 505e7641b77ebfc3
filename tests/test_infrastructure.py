import asyncio
import importlib
from types import SimpleNamespace

import pytest
from fastapi import HTTPException
from pydantic import BaseModel

from findotrip import rate_limiter
from findotrip.rate_limiter import WindowCounter, create_rate_limiter
from findotrip.security_headers import build_security_headers
from findotrip.security_utils import check_password_strength, mask_sensitive_data


class TestWindowCounter:
    def test_counts_within_window(self):
        counter = WindowCounter()
        assert counter.hit("login:1.2.3.4", 60, now=100.0) == (1, 60)
        assert counter.hit("login:1.2.3.4", 60, now=130.0) == (2, 30)
        assert counter.hit("login:5.6.7.8", 60, now=130.0) == (1, 60)

    def test_window_resets(self):
        counter = WindowCounter()
        counter.hit("k", 10, now=0.0)
        counter.hit("k", 10, now=5.0)
        assert counter.hit("k", 10, now=10.0) == (1, 10)


def _request(ip="10.0.0.1"):
    return SimpleNamespace(
        headers={"X-Forwarded-For": f"{ip}, 172.16.0.1"},
        client=SimpleNamespace(host="127.0.0.1"),
        state=SimpleNamespace(),
    )


def test_limiter_rejects_after_limit(monkeypatch):
    monkeypatch.setattr(rate_limiter, "RATE_LIMIT_ENABLED", True)
    monkeypatch.setattr(rate_limiter, "_counter", WindowCounter())
    limit = create_rate_limiter(limit=2, window_seconds=60, key_prefix="test")

    asyncio.run(limit(_request()))
    asyncio.run(limit(_request()))
    with pytest.raises(HTTPException) as exc:
        asyncio.run(limit(_request()))
    assert exc.value.status_code == 429
    assert "Retry-After" in exc.value.headers

    # other clients keep their own window
    asyncio.run(limit(_request(ip="10.0.0.2")))


def test_security_headers():
    headers = build_security_headers(production=False)
    assert headers["X-Content-Type-Options"] == "nosniff"
    assert "Strict-Transport-Security" not in headers
    assert "Strict-Transport-Security" in build_security_headers(production=True)


def test_responses_carry_headers(client):
    response = client.get("/properties")
    assert response.headers["X-Frame-Options"] == "SAMEORIGIN"
    assert response.headers["Cache-Control"] == "no-store"
    assert response.headers["X-Process-Time"].endswith("ms")


@pytest.mark.parametrize(
    "password, valid",
    [
        ("Sunny-Beach-2024", True),
        ("lowercase-only", False),
        ("Short1!", False),
        ("Karachi2025", True),
        ("Password1", False),
        ("password1", False),
    ],
)
def test_password_strength(password, valid):
    assert check_password_strength(password)["is_valid"] is valid


def test_mask_sensitive_data():
    assert mask_sensitive_data("ayesha@example.com") == "ay****@example.com"
    assert mask_sensitive_data("a") == "a*"


@pytest.mark.parametrize(
    "module",
    [
        "findotrip.schemas",
        "findotrip.domain.bookings.schemas",
        "findotrip.domain.commissions.schemas",
        "findotrip.domain.listings.schemas",
        "findotrip.domain.reviews.schemas",
        "findotrip.domain.support.schemas",
    ],
)
def test_schemas_use_model_config(module):
    models = [
        obj
        for obj in vars(importlib.import_module(module)).values()
        if isinstance(obj, type) and issubclass(obj, BaseModel) and obj.__module__ == module
    ]
    assert models
    for model in models:
        assert "Config" not in vars(model), model.__name__
    assert any(model.model_config.get("from_attributes") for model in models)
