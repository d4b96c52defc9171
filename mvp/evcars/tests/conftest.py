"""
Shared fixtures: an app wired to an in-memory fake repository.

The TestClient is used without its context manager so the lifespan
(pool creation, DDL, CSV bootstrap) never runs.
"""

from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from api.routes import get_repository
from common.config import Settings
from common.errors import RepositoryError
from common.filters import FilterSet


BMW_I3 = {
    "id": 7,
    "brand": "BMW",
    "model": "i3 120 Ah",
    "accel_sec": 7.3,
    "top_speed_kmh": 150,
    "range_km": 260,
    "efficiency_whkm": 161,
    "fast_charge_kmh": "270",
    "rapid_charge": "Yes",
    "power_train": "RWD",
    "plug_type": "Type 2 CCS",
    "body_style": "Hatchback",
    "segment": "B",
    "seats": 4,
    "price_euro": 38017,
    "date": "8/24/16",
    "created_at": "2025-01-01T00:00:00+00:00",
    "updated_at": "2025-01-01T00:00:00+00:00",
}


class FakeRepository:
    def __init__(self) -> None:
        self.rows: dict[int, dict[str, Any]] = {BMW_I3["id"]: dict(BMW_I3)}
        self.calls: list[tuple[str, tuple, dict]] = []
        self.fail: bool = False

    def _record(self, name: str, *args: Any, **kwargs: Any) -> None:
        self.calls.append((name, args, kwargs))
        if self.fail:
            raise RepositoryError(f"{name} failed: connection refused")

    def list_page(self, filters: FilterSet, **kwargs: Any) -> dict[str, Any]:
        self._record("list_page", filters, **kwargs)
        rows = list(self.rows.values())
        return {
            "data": rows,
            "pagination": {"total": len(rows), "page": kwargs["page"], "limit": kwargs["limit"], "totalPages": 1},
        }

    def get(self, vehicle_id: int) -> dict[str, Any] | None:
        self._record("get", vehicle_id)
        return self.rows.get(vehicle_id)

    def delete(self, vehicle_id: int) -> bool:
        self._record("delete", vehicle_id)
        return self.rows.pop(vehicle_id, None) is not None

    def distinct_values(self, column: str) -> list[Any]:
        self._record("distinct_values", column)
        return sorted({r[column] for r in self.rows.values() if r.get(column) not in (None, "")})

    def price_range(self) -> dict[str, int]:
        self._record("price_range")
        return {"min": 38000, "max": 39000}

    def schema(self) -> list[dict[str, str]]:
        self._record("schema")
        return [{"field": "brand", "type": "text", "displayName": "Brand"}]

    def health(self) -> dict[str, Any]:
        self._record("health")
        return {"database": "has data" if self.rows else "empty", "count": len(self.rows)}

    def last_call(self, name: str) -> tuple[tuple, dict]:
        for call_name, args, kwargs in reversed(self.calls):
            if call_name == name:
                return args, kwargs
        raise AssertionError(f"{name} was not called")


@pytest.fixture
def settings() -> Settings:
    return Settings(rate_limit_enabled=False)


@pytest.fixture
def fake_repo() -> FakeRepository:
    return FakeRepository()


def make_client(settings: Settings, repo: FakeRepository) -> TestClient:
    app = create_app(settings)
    app.dependency_overrides[get_repository] = lambda: repo
    return TestClient(app)


@pytest.fixture
def client(settings: Settings, fake_repo: FakeRepository) -> TestClient:
    return make_client(settings, fake_repo)


@pytest.fixture
def client_factory(fake_repo: FakeRepository):
    def _factory(**overrides: Any) -> TestClient:
        return make_client(Settings(**{"rate_limit_enabled": False, **overrides}), fake_repo)

    return _factory
