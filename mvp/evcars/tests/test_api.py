from common.filters import Equals, FilterEntry, IsEmpty
from common.vehicle_spec import Column


def test_liveness_does_not_touch_store(client, fake_repo):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "OK"
    assert "timestamp" in body
    assert fake_repo.calls == []


def test_list_defaults(client, fake_repo):
    response = client.get("/api/data")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"][0]["brand"] == "BMW"
    assert body["pagination"] == {"total": 1, "page": 1, "limit": 50, "totalPages": 1}

    args, kwargs = fake_repo.last_call("list_page")
    assert len(args[0]) == 0
    assert kwargs == {"search": "", "page": 1, "limit": 50, "sort_by": "id", "sort_order": "desc"}


def test_list_passes_query_through(client, fake_repo):
    response = client.get(
        "/api/data",
        params={
            "search": "tesla",
            "page": "3",
            "limit": "10",
            "sortBy": "price_euro",
            "sortOrder": "asc",
            "brand_filter_type": "equals",
            "brand_filter_value": "BMW",
            "segment_filter_type": "isEmpty",
            "price_euro_min_filter_value": "30000",
            "price_euro_max_filter_value": "50000",
        },
    )
    assert response.status_code == 200

    args, kwargs = fake_repo.last_call("list_page")
    filters = args[0]
    assert kwargs == {"search": "tesla", "page": 3, "limit": 10, "sort_by": "price_euro", "sort_order": "asc"}
    assert FilterEntry(Column.BRAND, Equals("BMW")) in filters.entries
    assert FilterEntry(Column.SEGMENT, IsEmpty()) in filters.entries
    assert filters.price_min == 30000
    assert filters.price_max == 50000


def test_list_rejects_limit_above_max(client, fake_repo):
    response = client.get("/api/data", params={"limit": "101"})
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "limit" in body["message"]
    assert fake_repo.calls == []


def test_list_rejects_unknown_sort_column(client):
    response = client.get("/api/data", params={"sortBy": "password"})
    assert response.status_code == 400
    assert "sortBy" in response.json()["message"]


def test_list_rejects_bad_sort_order(client):
    response = client.get("/api/data", params={"sortOrder": "sideways"})
    assert response.status_code == 400


def test_list_rejects_page_zero(client):
    response = client.get("/api/data", params={"page": "0"})
    assert response.status_code == 400
    assert "page" in response.json()["message"]


def test_invalid_filter_warns_and_continues_by_default(client, fake_repo):
    response = client.get("/api/data", params={"brand_filter_type": "bogus", "brand_filter_value": "x"})
    assert response.status_code == 200
    args, _ = fake_repo.last_call("list_page")
    assert args[0].entries == []


def test_invalid_filter_rejected_under_reject_policy(client_factory, fake_repo):
    client = client_factory(filter_validation_policy="reject")
    response = client.get("/api/data", params={"brand_filter_type": "bogus", "brand_filter_value": "x"})
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid filter type 'bogus' for column 'brand'"
    assert fake_repo.calls == []


def test_list_store_failure_is_generic_500(client, fake_repo):
    fake_repo.fail = True
    response = client.get("/api/data")
    assert response.status_code == 500
    body = response.json()
    assert body == {"success": False, "message": "Failed to retrieve data"}


def test_get_by_id(client):
    response = client.get("/api/data/7")
    assert response.status_code == 200
    assert response.json()["data"]["model"] == "i3 120 Ah"


def test_get_missing_id_is_404(client):
    response = client.get("/api/data/12345")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Car not found"}


def test_get_rejects_malformed_ids(client, fake_repo):
    for raw in ("abc", "0", "-3", "1.5"):
        response = client.get(f"/api/data/{raw}")
        assert response.status_code == 400, raw
        assert response.json()["message"] == "Invalid ID format"
    assert fake_repo.calls == []


def test_delete_existing(client, fake_repo):
    response = client.delete("/api/data/7")
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Car deleted successfully"}
    assert 7 not in fake_repo.rows


def test_delete_nonexistent_is_404(client):
    response = client.delete("/api/data/99999")
    assert response.status_code == 404
    assert response.json()["success"] is False


def test_filter_values_for_allowed_column(client, fake_repo):
    response = client.get("/api/filters/brand/values")
    assert response.status_code == 200
    assert response.json() == {"success": True, "data": ["BMW"]}
    args, _ = fake_repo.last_call("distinct_values")
    assert args == ("brand",)


def test_filter_values_rejects_unknown_column(client, fake_repo):
    response = client.get("/api/filters/password/values")
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Invalid column for filtering"}
    assert fake_repo.calls == []


def test_price_range(client):
    response = client.get("/api/filters/price/range")
    assert response.status_code == 200
    assert response.json()["data"] == {"min": 38000, "max": 39000}


def test_schema(client):
    response = client.get("/api/schema")
    assert response.status_code == 200
    assert response.json()["data"][0]["displayName"] == "Brand"


def test_health_reports_count(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["status"] == "healthy"
    assert body["database"] == "has data"
    assert body["count"] == 1
    assert "timestamp" in body


def test_health_unhealthy_is_503(client, fake_repo):
    fake_repo.fail = True
    response = client.get("/api/health")
    assert response.status_code == 503
    body = response.json()
    assert body["success"] is False
    assert body["status"] == "unhealthy"
    assert "connection refused" not in response.text


def test_unknown_endpoint(client):
    response = client.get("/api/nope")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Endpoint not found"}


def test_docs_index_lists_filter_types(client):
    response = client.get("/api/docs-index")
    assert response.status_code == 200
    assert "isEmpty" in response.json()["filterTypes"]


def test_rate_limit_returns_429(client_factory):
    client = client_factory(rate_limit_enabled=True, rate_limit="2/minute")
    assert client.get("/api/data/7").status_code == 200
    assert client.get("/api/data/7").status_code == 200

    response = client.get("/api/data/7")
    assert response.status_code == 429
    body = response.json()
    assert body["success"] is False
    assert body["retryAfter"] == 60
    assert response.headers["Retry-After"] == "60"


def test_rate_limit_counts_each_client_window_per_path(client_factory):
    client = client_factory(rate_limit_enabled=True, rate_limit="1/minute")
    assert client.get("/api/schema").status_code == 200
    assert client.get("/api/schema").status_code == 429
    assert client.get("/api/data/7").status_code == 200


def test_liveness_is_not_rate_limited(client_factory):
    client = client_factory(rate_limit_enabled=True, rate_limit="1/minute")
    for _ in range(3):
        assert client.get("/health").status_code == 200


def test_list_accepts_page_far_beyond_the_last(client, fake_repo):
    response = client.get("/api/data", params={"page": str(10**19), "limit": "100"})
    assert response.status_code == 200
    _, kwargs = fake_repo.last_call("list_page")
    assert kwargs["page"] == 10**19
