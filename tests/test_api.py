import main


def test_root(client):
    assert client.get("/").json()["status"] == "ok"


def test_health_reports_database(client):
    body = client.get("/api/health").json()
    assert body["backend"] == "running"
    assert body["database"] == "connected"


def test_app_logger_is_module_scoped():
    assert main.logger.name == main.__name__


def test_missing_upload_is_not_found(client):
    res = client.get("/uploads/missing_image.png")
    assert res.status_code == 404
    body = res.json()
    assert body["success"] is False
    assert body["error"]["code"] == "NOT_FOUND"


def test_swagger_document(client):
    res = client.get("/api/swagger")
    assert res.status_code == 200
    spec = res.json()
    assert spec["openapi"] == "3.0.0"
    assert "/api/orders/{id}/cancel" in spec["paths"]
    assert spec["components"]["schemas"]["Order"]["properties"]["status"]["enum"] == [
        "PENDING",
        "PROCESSING",
        "SHIPPED",
        "DELIVERED",
        "CANCELLED",
    ]
    assert set(spec["components"]["securitySchemes"]) == {"BearerAuth", "CookieAuth", "ApiKeyAuth"}


def test_swagger_ui_page(client):
    res = client.get("/api-docs")
    assert res.status_code == 200
    assert "/api/swagger" in res.text


def test_generated_docs_disabled(client):
    assert client.get("/docs").status_code == 404


def test_contact_form(client):
    res = client.post(
        "/api/contact",
        json={"name": "Ann", "email": "ann@qalab.hu", "subject": "Hi", "message": "Hello", "priority": "high"},
    )
    assert res.status_code == 200
    assert res.json()["success"] is True


def test_contact_missing_fields(client):
    res = client.post("/api/contact", json={"name": "Ann"})
    assert res.status_code == 400
    assert res.json()["message"] == "Missing required fields: email, subject, message"


def test_contact_bad_priority(client):
    res = client.post(
        "/api/contact",
        json={"name": "Ann", "email": "a@qalab.hu", "subject": "s", "message": "m", "priority": "urgent"},
    )
    assert res.status_code == 400
    assert res.json()["error"]["details"][0]["field"] == "priority"


def test_unknown_route_uses_error_envelope(client):
    res = client.get("/api/nope")
    assert res.status_code == 404
    body = res.json()
    assert body["success"] is False
    assert body["error"]["code"] == "NOT_FOUND"
    assert "timestamp" in body
