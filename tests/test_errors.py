from fastapi.testclient import TestClient
from app.main import app
import pytest

client = TestClient(app)

def test_404_not_found():
    response = client.get("/non-existent-route")
    assert response.status_code == 404
    data = response.json()
    assert "error" in data
    assert "code" in data
    assert data["code"] == "HTTP_ERROR"

def test_validation_error_structure():
    # Register a throwaway route to exercise request validation
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

@pytest.mark.parametrize(
    "exc_name,status,code",
    [
        ("ResourceNotFoundError", 404, "NOT_FOUND"),
        ("AuthenticationError", 401, "AUTHENTICATION_FAILED"),
        ("PermissionDeniedError", 403, "FORBIDDEN"),
        ("BadRequestError", 400, "BAD_REQUEST"),
        ("ConflictError", 409, "CONFLICT"),
        ("PaymentVerificationError", 400, "PAYMENT_VERIFICATION_FAILED"),
        ("ExternalServiceError", 502, "EXTERNAL_SERVICE_ERROR"),
    ],
)
def test_custom_exceptions(exc_name, status, code):
    from app.core import exceptions

    exc_class = getattr(exceptions, exc_name)
    path = f"/test-custom-error/{exc_name}"

    @app.get(path)
    def trigger_custom_error():
        raise exc_class(message="Something specific", details={"k": "v"})

    response = client.get(path)
    assert response.status_code == status
    data = response.json()
    assert data["code"] == code
    assert data["error"] == "Something specific"
    assert data["details"] == {"k": "v"}

def test_live_probe():
    response = client.get("/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}

def test_health_reports_unhealthy_database_without_connection():
    # Lifespan is not run by a bare TestClient, so no client exists
    response = client.get("/health")
    assert response.status_code == 503
    assert response.json()["checks"]["database"] == "unhealthy"

def test_process_time_header():
    response = client.get("/")
    assert response.status_code == 200
    assert "X-Process-Time" in response.headers
