"""This module contains fixtures for setting up the testing environment for the harvest_tracking application.
It includes the application, a database without application, and pre-filled categories and descriptions."""
import os
import tempfile
import logging
from pathlib import Path
import pytest

from harvest_tracking import create_app, db_actions
from harvest_tracking.database import Database, get_db, init_db, session_scope

logger = logging.getLogger(__name__)


def _db_path():
    """
    Temporary database file, or instance/test_db.sql when DEBUG is set so it can be inspected.
    """
    if os.getenv('DEBUG'):
        db_path = Path(os.path.join("instance", "test_db.sql"))
        db_path.unlink(missing_ok=True)
        logger.debug("DB is here %s", db_path)
        return None, db_path
    return tempfile.mkstemp()


def _cleanup(db_fd, db_path):
    if not os.getenv('DEBUG'):
        os.close(db_fd)
        os.unlink(db_path)


def seed(session):
    """
    Two categories and a three level description tree:
        Vegetables: Tomato > Cherry tomato > Sungold, Carrot
        Fruits: Apple
    Returns the ids by short name.
    """
    vegetables = db_actions.create_category(session, "Vegetables", order=0)["DB_ACTION_OUTPUT"][0]
    fruits = db_actions.create_category(session, "Fruits", order=1)["DB_ACTION_OUTPUT"][0]

    def add(text, category, parent=None):
        return db_actions.create_description(
            session,
            description=text,
            category_id=category.id,
            created_by="u1",
            parent_id=parent
        )["DB_ACTION_OUTPUT"][0].id

    tomato = add("Tomato", vegetables)
    cherry_tomato = add("Cherry tomato", vegetables, parent=tomato)
    sungold = add("Sungold", vegetables, parent=cherry_tomato)
    carrot = add("Carrot", vegetables)
    apple = add("Apple", fruits)

    return {
        "vegetables": vegetables.id,
        "fruits": fruits.id,
        "tomato": tomato,
        "cherry_tomato": cherry_tomato,
        "sungold": sungold,
        "carrot": carrot,
        "apple": apple
    }


@pytest.fixture
def app():
    """
    Create a Flask application for testing with a temporary database.
    This fixture sets up the application context, initializes the database,
    and yields the application instance for use in tests.
    """
    db_fd, db_path = _db_path()

    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret-key',
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{db_path}",
    })

    with app.app_context():
        init_db()

    yield app

    get_db(app).dispose()
    _cleanup(db_fd, db_path)


@pytest.fixture
def seeded(app):
    """
    Pre-filled categories and descriptions in the app database, returns their ids.
    """
    with app.app_context():
        with session_scope() as session:
            ids = seed(session)
    return ids


@pytest.fixture
def storage():
    """
    Storage client without an application context, on a temporary database.
    """
    db_fd, db_path = _db_path()
    db = Database(f'sqlite:///{db_path}')
    db.create_all()

    try:
        yield db
    finally:
        db.dispose()
        _cleanup(db_fd, db_path)


@pytest.fixture
def not_app_db(storage):
    """
    Database session without an application context.
    """
    return storage.get_session()


@pytest.fixture
def client(app):
    """
    This fixture initializes the Flask application and returns a test client
    that can be used to make requests to the application during testing.
    """
    return app.test_client()


@pytest.fixture
def runner(app):
    """
    This fixture initializes the Flask application and returns a test runner
    that can be used to invoke command-line commands during testing.
    """
    return app.test_cli_runner()


@pytest.fixture
def seeded_db(storage):
    """
    Pre-filled categories and descriptions without an application context, returns their ids.
    """
    with storage.session_scope() as session:
        ids = seed(session)
    return ids
