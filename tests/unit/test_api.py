"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from api.main import app, get_extractor, get_notifier, settings
from core.database.operations import get_db
from core.scrapers.models import ExtractionFailure, FailureKind

URL = "https://24h.pchome.com.tw/prod/DYAJ9G-A900GKS2T"
OTHER_URL = "https://shopee.tw/product/1/2"


@pytest.fixture
def extractor_results():
    return {}


@pytest.fixture
def client(db_engine, fake_extractor, extractor_results, monkeypatch):
    Session = sessionmaker(bind=db_engine)

    def override_db():
        db = Session()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_extractor] = lambda: fake_extractor(extractor_results)
    app.dependency_overrides[get_notifier] = lambda: None
    monkeypatch.setattr(settings, "REFRESH_DELAY_SECONDS", 0)
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestProductsApi:
    """Tests for /products."""

    def test_add_product(self, client, extractor_results, make_result):
        extractor_results[URL] = make_result(1290, title="Speaker")
        response = client.post("/products", json={"url": URL, "target_price": 1000})
        assert response.status_code == 201
        body = response.json()
        assert body["title"] == "Speaker"
        assert body["price"] == 1290
        assert body["platform"] == "PChome"
        assert body["id"] is not None

    def test_duplicate_is_409(self, client, extractor_results, make_result):
        extractor_results[URL] = make_result(1290)
        assert client.post("/products", json={"url": URL}).status_code == 201
        response = client.post("/products", json={"url": URL})
        assert response.status_code == 409
        assert response.json()["detail"] == "Product already tracked"
        assert len(client.get("/products").json()) == 1

    def test_failed_extraction_is_400(self, client, extractor_results):
        extractor_results[URL] = ExtractionFailure(URL, FailureKind.RENDER_FAILURE, "timeout")
        response = client.post("/products", json={"url": URL})
        assert response.status_code == 400

    def test_zero_price_is_400(self, client, extractor_results, make_result):
        extractor_results[URL] = make_result(0)
        assert client.post("/products", json={"url": URL}).status_code == 400

    def test_missing_url_is_rejected(self, client):
        assert client.post("/products", json={}).status_code == 422

    def test_detail_with_history_newest_first(self, client, extractor_results, make_result):
        extractor_results[URL] = make_result(1290)
        product_id = client.post("/products", json={"url": URL, "target_price": 1300}).json()["id"]

        extractor_results[URL] = make_result(1190)
        client.post("/refresh")

        response = client.get(f"/products/{product_id}")
        assert response.status_code == 200
        body = response.json()
        assert body["current_price"] == 1190
        assert [h["price"] for h in body["history"]] == [1190, 1290]

    def test_unknown_product_is_404(self, client):
        assert client.get("/products/999").status_code == 404

    def test_error_responses_are_documented(self, client):
        paths = client.get("/openapi.json").json()["paths"]
        error_ref = "#/components/schemas/ErrorResponse"

        def schema_ref(path, method, code):
            return paths[path][method]["responses"][code]["content"]["application/json"]["schema"]["$ref"]

        assert schema_ref("/products", "post", "400") == error_ref
        assert schema_ref("/products", "post", "409") == error_ref
        assert schema_ref("/products/{product_id}", "get", "404") == error_ref
        assert schema_ref("/products/{product_id}", "delete", "404") == error_ref

    def test_delete(self, client, extractor_results, make_result):
        extractor_results[URL] = make_result(1290)
        product_id = client.post("/products", json={"url": URL}).json()["id"]
        assert client.delete(f"/products/{product_id}").json() == {"success": True}
        assert client.delete(f"/products/{product_id}").status_code == 404


class TestRefreshApi:
    """Tests for /refresh."""

    def test_reports_every_product(self, client, extractor_results, make_result):
        extractor_results[URL] = make_result(1290)
        extractor_results[OTHER_URL] = make_result(350)
        first = client.post("/products", json={"url": URL, "target_price": 1000}).json()["id"]
        second = client.post("/products", json={"url": OTHER_URL}).json()["id"]

        extractor_results[URL] = make_result(1000)
        extractor_results[OTHER_URL] = ExtractionFailure(OTHER_URL, FailureKind.RENDER_FAILURE, "timeout")

        response = client.post("/refresh")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        statuses = {u["id"]: u["status"] for u in body["updates"]}
        assert statuses == {first: "alert", second: "failed"}

    def test_empty_watchlist(self, client):
        assert client.post("/refresh").json() == {"success": True, "updates": []}
