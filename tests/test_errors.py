from fastapi.testclient import TestClient
from screenbot.main import app
import pytest

client = TestClient(app)

def test_404_not_found():
    response = client.get("/non-existent-route")
    assert response.status_code == 404
    data = response.json()
    assert "error" in data
    assert "code" in data
    assert data["code"] == "HTTP_ERROR"

def test_405_on_webhook_get():
    response = client.get("/webhook")
    assert response.status_code == 405
    assert response.json()["code"] == "HTTP_ERROR"

def test_validation_error_structure():
    # We can define a temporary route to test validation
    from pydantic import BaseModel

    class Item(BaseModel):
        name: str
        price: int

    @app.post("/test-validation")
    def create_item(item: Item):
        return item

    response = client.post("/test-validation", json={"name": "foo", "price": "invalid"})
    assert response.status_code == 422
    data = response.json()
    assert data["code"] == "VALIDATION_ERROR"
    assert "details" in data
    assert len(data["details"]) > 0

def test_custom_exception():
    from screenbot.core.exceptions import ExternalServiceError

    @app.get("/test-custom-error")
    def trigger_custom_error():
        raise ExternalServiceError(message="Provider unreachable", details={"provider": "greenapi"})

    response = client.get("/test-custom-error")
    assert response.status_code == 502
    data = response.json()
    assert data["code"] == "EXTERNAL_SERVICE_ERROR"
    assert data["error"] == "Provider unreachable"
    assert data["details"] == {"provider": "greenapi"}

def test_template_error_keeps_own_code():
    from screenbot.core.exceptions import TemplateError

    @app.get("/test-template-error")
    def trigger_template_error():
        raise TemplateError()

    response = client.get("/test-template-error")
    assert response.status_code == 502
    assert response.json()["code"] == "TEMPLATE_ERROR"

def test_unhandled_exception_is_wrapped():
    local_client = TestClient(app, raise_server_exceptions=False)

    @app.get("/test-unhandled")
    def trigger_unhandled():
        raise RuntimeError("kaboom")

    response = local_client.get("/test-unhandled")
    assert response.status_code == 500
    assert response.json()["code"] == "INTERNAL_ERROR"
