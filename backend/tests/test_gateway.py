from backend.database.db_connection import Database
from backend.gateway.server import create_app


def test_health_reports_connected_database(client, mock_db):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok", "database": True}


def test_health_reports_disconnected_database(client, mock_db):
    database, _, _ = mock_db
    database.is_connected.return_value = False

    response = client.get("/api/health")
    assert response.get_json() == {"status": "ok", "database": False}


def test_app_starts_without_database_url(mocker):
    mocker.patch("backend.gateway.server.DATABASE_URL", None)
    mocker.patch("backend.gateway.server.atexit.register")

    app = create_app()
    response = app.test_client().get("/api/health")

    assert response.get_json() == {"status": "ok", "database": False}
    assert isinstance(app.extensions["history_db"], Database)


def test_unknown_route_returns_json(client):
    response = client.get("/api/nope")
    assert response.status_code == 404
    assert "error" in response.get_json()


def test_wrong_method_returns_json(client):
    response = client.get("/api/describe")
    assert response.status_code == 405
    assert "error" in response.get_json()


def test_oversized_body_rejected(app, client):
    app.config["MAX_CONTENT_LENGTH"] = 16
    response = client.post("/api/describe", json={"image": "A" * 64})
    assert response.status_code == 413
    assert "error" in response.get_json()
