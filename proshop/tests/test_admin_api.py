import io
import os

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, png_bytes, refresh_csrf
from proshop.errors import StorageError
from proshop.models import Product, db


def image_field(name="unit.png"):
    return (io.BytesIO(png_bytes()), name, "image/png")


def object_path_of(item):
    return item["image_object_path"]


def create_product(client, name="VRV A Series", **extra):
    data = {"name": name, "category": "Commercial", "features": "Quiet, Inverter", "image": image_field()}
    data.update(extra)
    return client.post("/admin/products", data=data, content_type="multipart/form-data")


def test_admin_routes_require_login(client):
    response = client.get("/admin/products")
    assert response.status_code == 401
    assert response.get_json()["code"] == "unauthorized"
    assert client.get("/admin/dashboard").status_code == 401


def test_login_requires_csrf_token(client):
    response = client.post("/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 400
    assert "CSRF" in response.get_json()["error"]


def test_login_rejects_bad_credentials(client):
    refresh_csrf(client, client.get("/admin/login").get_json()["csrf_token"])
    response = client.post("/admin/login", json={"email": ADMIN_EMAIL, "password": "wrong"})
    assert response.status_code == 401
    assert client.get("/admin/session").get_json()["authenticated"] is False


def test_session_reports_signed_in_viewer(admin_client):
    payload = admin_client.get("/admin/session").get_json()
    assert payload["authenticated"] is True
    assert payload["email"] == ADMIN_EMAIL


def test_create_product_uploads_image_and_lists_it(admin_client, app):
    response = create_product(admin_client)
    assert response.status_code == 201
    payload = response.get_json()
    item = payload["item"]
    assert item["slug"] == "vrv-a-series"
    assert item["features"] == ["Quiet", "Inverter"]
    assert item["image_path"] == f"/media/images/{object_path_of(item)}"
    assert object_path_of(item).startswith("products/")
    assert [row["id"] for row in payload["items"]] == [item["id"]]
    assert payload["counts"] == {"Commercial": 1}

    served = admin_client.get(item["image_path"])
    assert served.status_code == 200
    assert served.headers["Cache-Control"] == "public, max-age=3600"
    assert served.data == png_bytes()
    served.close()


def test_create_without_required_fields_stores_nothing(admin_client, app):
    response = admin_client.post(
        "/admin/products",
        data={"description": "Missing name", "image": image_field()},
        content_type="multipart/form-data",
    )
    assert response.status_code == 400
    payload = response.get_json()
    assert payload["code"] == "validation_error"
    assert [field["field"] for field in payload["fields"]] == ["name"]

    bucket = app.extensions["media_bucket"]
    assert not os.path.exists(os.path.join(bucket.root, "products"))
    with app.app_context():
        assert Product.query.count() == 0


def test_create_product_requires_image(admin_client):
    response = admin_client.post("/admin/products", data={"name": "No Photo"}, content_type="multipart/form-data")
    assert response.status_code == 400
    assert response.get_json()["fields"][0]["field"] == "image_path"


def test_invalid_upload_is_rejected(admin_client):
    response = create_product(admin_client, image=(io.BytesIO(b"not an image"), "unit.png", "image/png"))
    assert response.status_code == 400
    assert response.get_json()["fields"][0]["field"] == "image"


def test_upload_failure_returns_502_and_writes_nothing(admin_client, app, monkeypatch):
    def refuse(*args, **kwargs):
        raise StorageError("Bucket not found")

    monkeypatch.setattr(app.extensions["media_bucket"], "upload", refuse)
    response = create_product(admin_client)
    assert response.status_code == 502
    payload = response.get_json()
    assert payload["code"] == "upload_error"
    assert payload["error"].startswith("Error uploading image: Bucket not found")
    with app.app_context():
        assert Product.query.count() == 0


def test_update_with_new_image_removes_old_file(admin_client, app):
    created = create_product(admin_client).get_json()["item"]
    bucket = app.extensions["media_bucket"]
    assert bucket.resolve(object_path_of(created))

    response = admin_client.post(
        f"/admin/products/{created['id']}",
        data={"name": "VRV A Series Plus", "image": image_field("new.png")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 200
    updated = response.get_json()["item"]
    assert updated["slug"] == "vrv-a-series-plus"
    assert object_path_of(updated) != object_path_of(created)
    assert bucket.resolve(object_path_of(updated))
    assert bucket.resolve(object_path_of(created)) is None


def test_update_without_image_keeps_existing(admin_client, app):
    created = create_product(admin_client).get_json()["item"]
    response = admin_client.post(f"/admin/products/{created['id']}", json={"description": "Updated copy"})
    assert response.status_code == 200
    updated = response.get_json()["item"]
    assert updated["description"] == "Updated copy"
    assert updated["image_path"] == created["image_path"]
    assert app.extensions["media_bucket"].resolve(object_path_of(created))


def test_update_missing_record_is_404(admin_client):
    response = admin_client.post("/admin/products/999", json={"name": "Ghost"})
    assert response.status_code == 404
    assert response.get_json()["code"] == "not_found"


def test_delete_requires_confirmation_then_removes_row_and_file(admin_client, app):
    created = create_product(admin_client).get_json()["item"]

    refused = admin_client.post(f"/admin/products/{created['id']}/delete", json={})
    assert refused.status_code == 400
    assert refused.get_json()["code"] == "confirmation_required"

    response = admin_client.post(f"/admin/products/{created['id']}/delete", json={"confirm": "yes"})
    assert response.status_code == 200
    assert response.get_json()["items"] == []
    assert app.extensions["media_bucket"].resolve(object_path_of(created)) is None
    assert admin_client.get(f"/admin/products/{created['id']}").status_code == 404


def test_faqs_default_order_and_sorting(admin_client):
    first = admin_client.post("/admin/faqs", json={"q": "Garansi?", "a": "Ya."}).get_json()["item"]
    assert first["order"] == 1
    admin_client.post("/admin/faqs", json={"q": "Konsultasi?", "a": "Gratis.", "order": 0})
    payload = admin_client.get("/admin/faqs").get_json()
    assert [item["q"] for item in payload["items"]] == ["Garansi?", "Konsultasi?"]
    assert payload["items"][1]["order"] == 2


def test_award_requires_year_name_and_institution(admin_client):
    response = admin_client.post("/admin/awards", json={"year": "", "name": "Elite"})
    assert response.status_code == 400
    assert {field["field"] for field in response.get_json()["fields"]} == {"year", "institution"}

    created = admin_client.post(
        "/admin/awards", json={"year": "2019-2020", "name": "Elite", "institution": "Daikin"}
    )
    assert created.status_code == 201


def test_articles_get_slug_read_time_and_defaults(admin_client):
    response = admin_client.post(
        "/admin/articles",
        data={"title": "Pentingnya Heat Load", "content": "<p>Beban panas</p>", "image": image_field()},
        content_type="multipart/form-data",
    )
    assert response.status_code == 201
    item = response.get_json()["item"]
    assert item["slug"] == "pentingnya-heat-load"
    assert item["read_time"] == "1 min"
    assert item["author"] == "Admin"
    assert item["category"] == "Education"
    assert item["published_at"]


def test_unknown_kind_is_404(admin_client):
    response = admin_client.get("/admin/widgets")
    assert response.status_code == 404
    assert response.get_json()["code"] == "unknown_kind"


def test_dashboard_counts_every_kind(admin_client):
    create_product(admin_client)
    admin_client.post("/admin/faqs", json={"q": "Garansi?", "a": "Ya."})
    counts = admin_client.get("/admin/dashboard").get_json()["counts"]
    assert counts == {
        "products": 1,
        "portfolios": 0,
        "articles": 0,
        "awards": 0,
        "testimonials": 0,
        "faqs": 1,
    }


def test_about_is_created_once_then_updated(admin_client, app):
    empty = admin_client.get("/admin/about").get_json()["item"]
    assert empty["projects_count"] == "0"

    first = admin_client.post("/admin/about", json={"content": "Since 1990", "projects_count": "500+"})
    assert first.status_code == 200
    second = admin_client.post("/admin/about", json={"vision": "Trusted HVAC partner"})
    item = second.get_json()["item"]
    assert item["id"] == first.get_json()["item"]["id"]
    assert item["content"] == "Since 1990"
    assert item["vision"] == "Trusted HVAC partner"


def test_assist_without_api_key_reports_unavailable(admin_client):
    response = admin_client.post("/admin/articles/assist", json={"title": "Masa Depan VRV"})
    assert response.status_code == 200
    payload = response.get_json()
    assert payload["status"] == "unavailable"
    assert payload["html"] == "AI Service Unavailable (Missing Configuration)"


def test_assist_rejects_unknown_field(admin_client):
    response = admin_client.post("/admin/articles/assist", json={"title": "VRV", "field": "price"})
    assert response.status_code == 400


def test_password_change_enforces_strength(admin_client):
    weak = admin_client.post(
        "/admin/password", json={"current_password": ADMIN_PASSWORD, "new_password": "short"}
    )
    assert weak.status_code == 400

    wrong = admin_client.post(
        "/admin/password", json={"current_password": "nope", "new_password": "Better-Pass-42"}
    )
    assert wrong.status_code == 400

    ok = admin_client.post(
        "/admin/password", json={"current_password": ADMIN_PASSWORD, "new_password": "Better-Pass-42"}
    )
    assert ok.status_code == 200


def test_logout_ends_session(admin_client):
    assert admin_client.post("/admin/logout").status_code == 200
    assert admin_client.get("/admin/products").status_code == 401


def test_admin_responses_are_not_cached_or_indexed(admin_client):
    response = admin_client.get("/admin/products")
    assert response.headers["Cache-Control"] == "no-store"
    assert response.headers["X-Robots-Tag"] == "noindex, nofollow, noarchive"


def test_product_write_is_visible_in_database(admin_client, app):
    item = create_product(admin_client, name="Modular Chiller").get_json()["item"]
    with app.app_context():
        stored = db.session.get(Product, item["id"])
        assert stored.name == "Modular Chiller"
        assert stored.image_object_path == item["image_object_path"]


def test_admin_list_filters_by_category(admin_client):
    create_product(admin_client, name="VRV A Series")
    create_product(admin_client, name="Split Home", category="Residential")

    payload = admin_client.get("/admin/products?category=Residential").get_json()
    assert payload["category"] == "Residential"
    assert [item["name"] for item in payload["items"]] == ["Split Home"]
    assert payload["counts"] == {"Residential": 1, "Commercial": 1}

    everything = admin_client.get("/admin/products").get_json()
    assert everything["category"] == "All"
    assert len(everything["items"]) == 2
