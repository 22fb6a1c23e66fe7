"""Module providing database tables and operations support."""
import logging
from contextlib import contextmanager

import click
import flask
from flask.cli import with_appcontext
from sqlalchemy import (
    create_engine,
    event
    )

from sqlalchemy.orm import sessionmaker, scoped_session

logger = logging.getLogger(__name__)

EXTENSION_KEY = "harvest_tracking.db"


def _configure_sqlite(engine):
    """
    pysqlite opens transactions lazily and commits on RELEASE of an outermost
    SAVEPOINT, so BEGIN is emitted by SQLAlchemy instead.
    Foreign keys are off by default on SQLite.
    """
    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


class Database:
    """
    Storage client: owns the engine, the session factory and the thread local
    session registry. Build it explicitly, bind it to an app with init_app and
    dispose it when the process stops.
    """

    def __init__(self, db_uri=None, echo=False):
        self.engine = None
        self.session_factory = None
        self.registry = None
        self.uri = None
        if db_uri is not None:
            self.connect(db_uri, echo=echo)

    def connect(self, db_uri, echo=False):
        """(Re)create the engine for db_uri"""
        logger.debug('Connecting to %s', db_uri)
        self.dispose()
        self.engine = create_engine(db_uri, echo=echo)
        if self.engine.dialect.name == "sqlite":
            _configure_sqlite(self.engine)
        self.session_factory = sessionmaker(bind=self.engine, autoflush=False)
        self.registry = scoped_session(self.session_factory)
        self.uri = db_uri
        return self

    @property
    def connected(self):
        return self.engine is not None

    def get_session(self):
        """
        Session of the current thread, the same object is returned until remove_session is called
        """
        if not self.connected:
            raise RuntimeError("Database is not connected, call connect or init_app first")
        return self.registry()

    def remove_session(self, exception=None):
        if self.registry is not None:
            self.registry.remove()

    @contextmanager
    def session_scope(self):
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_all(self, flush=False):
        """
        Create the tables
        WARNING: drop existing tables first if flush is true
        """
        from . import model
        if flush:
            model.Base.metadata.drop_all(self.engine)
        model.Base.metadata.create_all(self.engine)

    def dispose(self):
        """Release every pooled connection, the client can be reconnected afterward"""
        if self.registry is not None:
            self.registry.remove()
        if self.engine is not None:
            logger.debug('Disposing engine for %s', self.uri)
            self.engine.dispose()
        self.engine = None
        self.session_factory = None
        self.registry = None

    def init_app(self, app):
        db_uri = app.config["SQLALCHEMY_DATABASE_URI"]
        if not self.connected or self.uri != db_uri:
            self.connect(db_uri)
        app.extensions[EXTENSION_KEY] = self
        app.teardown_appcontext(self.remove_session)
        app.cli.add_command(init_db_command)
        app.cli.add_command(version_command)


def get_db(app=None):
    """Storage client bound to app, or to the current app"""
    if app is None:
        app = flask.current_app
    try:
        return app.extensions[EXTENSION_KEY]
    except KeyError as error:
        raise RuntimeError("No Database bound to this app, call Database.init_app") from error


def get_session():
    return get_db().get_session()


@contextmanager
def session_scope():
    with get_db().session_scope() as session:
        yield session


def init_db(db_uri=None, flush=False):
    """
    db_uri is required if db is initialised outside of the flask app
    """
    if db_uri is None:
        try:
            get_db().create_all(flush=flush)
        except RuntimeError as e:
            logger.error("It seems that you are initialising the db outside of an app, please provide the db_uri")
            raise e
        return

    db = Database(db_uri)
    try:
        db.create_all(flush=flush)
    finally:
        db.dispose()


@click.command('init-db')
@click.option('--db-uri', default=None)
@click.option('--flush', is_flag=True)
@with_appcontext
def init_db_command(db_uri=None, flush=False):
    """Create new tables
     WARNING: flush existing data if flush is true
     """
    init_db(db_uri, flush)
    click.echo('Database initialized')


@click.command('version')
@with_appcontext
def version_command():
    """Print the version of the API of the database"""
    from .__version__ import __version__
    click.echo(__version__)
