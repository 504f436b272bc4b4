import pytest
from sqlalchemy.exc import OperationalError

from conftest import build_test_app
from proshop.content_kinds import PRODUCTS
from proshop.repository import EntityRepository
from proshop.seed import SAMPLE_CONTENT


def add_product(app, name, category, slug=None):
    with app.app_context():
        return EntityRepository(PRODUCTS).create({
            "name": name,
            "slug": slug or name.lower().replace(" ", "-"),
            "category": category,
            "features": [],
        }).id


def test_empty_catalogue_falls_back_to_samples(client):
    payload = client.get("/api/products").get_json()
    assert payload["fallback"] is True
    assert payload["total"] == len(SAMPLE_CONTENT["products"])
    assert payload["items"][0]["slug"] == "vrv-system"
    assert payload["categories"][0] == "All"
    assert payload["all_label"] == "Semua"


def test_listing_filters_by_category_and_language(client, app):
    add_product(app, "VRV A", "Commercial")
    add_product(app, "Split X", "Residential")
    add_product(app, "VRV H", "Commercial")

    payload = client.get("/api/products?category=Commercial&lang=en").get_json()
    assert payload["fallback"] is False
    assert payload["language"] == "en"
    assert payload["all_label"] == "All"
    assert payload["total"] == 2
    assert {item["name"] for item in payload["items"]} == {"VRV A", "VRV H"}
    assert payload["counts"] == {"Commercial": 2, "Residential": 1}
    assert payload["categories"][0] == "All"


def test_listing_pagination_is_clamped(client, app):
    for index in range(3):
        add_product(app, f"Unit {index}", "Commercial")
    payload = client.get("/api/products?per_page=2&page=50").get_json()
    assert payload["page"] == 2
    assert payload["pages"] == 2
    assert len(payload["items"]) == 1


def test_detail_returns_stored_record(client, app):
    add_product(app, "Modular Chiller", "Industrial")
    payload = client.get("/api/products/modular-chiller").get_json()
    assert payload["fallback"] is False
    assert payload["item"]["name"] == "Modular Chiller"


def test_detail_falls_back_to_matching_sample_then_first_sample(client):
    matching = client.get("/api/portfolios/ritz-carlton-residences").get_json()
    assert matching["fallback"] is True
    assert matching["item"]["title"] == "The Ritz-Carlton Residences"

    unknown = client.get("/api/portfolios/does-not-exist").get_json()
    assert unknown["fallback"] is True
    assert unknown["item"]["slug"] == SAMPLE_CONTENT["portfolios"][0]["slug"]


def test_kinds_without_slugs_have_no_detail_route(client):
    assert client.get("/api/awards/2024").status_code == 404
    response = client.get("/api/widgets")
    assert response.status_code == 404
    assert response.get_json()["code"] == "unknown_kind"


def test_plain_lists_for_awards_testimonials_faqs(client):
    awards = client.get("/api/awards").get_json()
    assert awards["fallback"] is True
    assert [item["year"] for item in awards["items"]] == ["2024", "2023", "2022"]
    assert client.get("/api/testimonials").get_json()["total"] == len(SAMPLE_CONTENT["testimonials"])
    assert client.get("/api/faqs").status_code == 200


def test_about_falls_back_to_sample(client):
    payload = client.get("/api/about").get_json()
    assert payload["fallback"] is True
    assert payload["item"]["projects_count"] == "500+"


class UnreachableSession:
    def query(self, *args):
        raise OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))

    def rollback(self):
        pass


@pytest.fixture
def unreachable_db(monkeypatch):
    monkeypatch.setattr(EntityRepository, "session", property(lambda self: UnreachableSession()))


def test_unreachable_database_serves_sample_lists(client, unreachable_db):
    response = client.get("/api/products")
    assert response.status_code == 200
    payload = response.get_json()
    assert payload["fallback"] is True
    assert payload["items"][0]["slug"] == "vrv-system"
    assert client.get("/api/faqs").get_json()["total"] == len(SAMPLE_CONTENT["faqs"])


def test_unreachable_database_serves_sample_detail_and_about(client, unreachable_db):
    detail = client.get("/api/products/modular-chiller")
    assert detail.status_code == 200
    assert detail.get_json()["fallback"] is True
    assert detail.get_json()["item"]["name"] == "MODULAR CHILLER"

    about = client.get("/api/about")
    assert about.status_code == 200
    assert about.get_json()["item"]["projects_count"] == "500+"


def test_seeded_site_serves_database_rows(tmp_path, monkeypatch):
    app = build_test_app(tmp_path, monkeypatch, {"SEED_SAMPLE_CONTENT": True})
    client = app.test_client()
    payload = client.get("/api/products").get_json()
    assert payload["fallback"] is False
    assert payload["total"] == len(SAMPLE_CONTENT["products"])
    assert client.get("/api/about").get_json()["fallback"] is False

    ready = client.get("/readyz")
    assert ready.status_code == 200
    assert ready.get_json()["status"] == "ready"


def test_media_route_only_serves_existing_bucket_objects(client, app):
    bucket = app.extensions["media_bucket"]
    bucket.upload("products/a.png", b"png")
    assert client.get("/media/images/products/missing.png").status_code == 404
    assert client.get("/media/other/products/a.png").status_code == 404
    assert client.get("/media/images/../secret.txt").status_code == 404
    served = client.get("/media/images/products/a.png")
    assert served.status_code == 200
    served.close()


def test_health_and_security_headers(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert len(response.headers["X-Request-ID"]) == 32

    echoed = client.get("/healthz", headers={"X-Request-ID": "req-12345678"})
    assert echoed.headers["X-Request-ID"] == "req-12345678"


def test_hsts_only_on_https(client):
    assert "Strict-Transport-Security" not in client.get("/healthz").headers
    secure = client.get("/healthz", base_url="https://example.com")
    assert secure.headers["Strict-Transport-Security"] == "max-age=31536000; includeSubDomains"
