import pytest
from unittest.mock import MagicMock

from backend.database.db_connection import Database
from backend.gateway.server import create_app

# 1x1 transparent PNG
TINY_PNG_B64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


@pytest.fixture
def mock_db(mocker):
    """
    Mocks the database handle, its pooled connection and cursor.
    """
    mock_database = MagicMock(spec=Database)
    mock_conn = MagicMock()
    mock_cursor = MagicMock()

    # Setup the context manager for the borrowed connection
    mock_database.connection.return_value.__enter__.return_value = mock_conn
    mock_database.connection.return_value.__exit__.return_value = None
    mock_database.is_connected.return_value = True

    # Setup the context manager for cursor
    mock_cursor.__enter__.return_value = mock_cursor
    mock_cursor.__exit__.return_value = None
    mock_conn.cursor.return_value = mock_cursor
    mock_cursor.fetchone.return_value = {"history_id": 1}

    return mock_database, mock_conn, mock_cursor


@pytest.fixture
def app(mock_db):
    database, _, _ = mock_db
    app = create_app(database=database)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def image_b64():
    return TINY_PNG_B64


@pytest.fixture
def history_inserts(mock_db):
    """
    Returns a callable listing the parameters of every history INSERT.
    """
    _, _, mock_cursor = mock_db

    def _inserts():
        return [
            c.args[1] for c in mock_cursor.execute.call_args_list
            if "INSERT INTO history" in c.args[0]
        ]

    return _inserts
