"""
Daily harvest tracking API
"""
import atexit
import logging
import os
from collections import defaultdict
from datetime import datetime, timezone

from flask import Flask, request, make_response, jsonify
from marshmallow import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from . import db_actions
from . import api
from . import database
from . import vocabulary as vb
from .__version__ import __version__
from .cache import ListingCache


def create_app(test_config=None, db=None):
    """
    Application factory.
    db: storage client to bind, a new database.Database is built when None
    """
    app = Flask(__name__, instance_relative_config=True, static_folder=None)
    app.url_map.strict_slashes = False

    if app.config['DEBUG']:
        level = logging.DEBUG
    else:
        level = logging.getLevelName(os.getenv('LOG_LEVEL', 'INFO'))

    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s %(name)s %(threadName)s: %(message)s'
    )

    app.config.from_mapping(
        SQLALCHEMY_DATABASE_URI=f'sqlite:///{os.path.join(app.instance_path, "harvest_db.sql")}',
        BATCH_MAX_OPERATIONS=vb.BATCH_MAX_OPERATIONS,
    )
    app.config.from_prefixed_env("HARVEST")

    if test_config is None:
        app.config.from_pyfile('config.py', silent=True)
    else:
        app.config.from_mapping(test_config)

    logging.debug(f'SQLALCHEMY_DATABASE_URI: {app.config["SQLALCHEMY_DATABASE_URI"]}')

    try:
        os.makedirs(app.instance_path)
    except OSError:
        pass

    @app.after_request
    def after_request(response):
        """
        Logging after every request.
        """
        logger = logging.getLogger("app.access")
        logger.info(
            "%s [%s] %s %s %s %s %s %s %s",
            request.remote_addr,
            datetime.now(timezone.utc).strftime(vb.DATE_LONG_FMT),
            request.method,
            request.path,
            request.scheme,
            response.status,
            response.content_length,
            request.referrer,
            request.user_agent
        )
        return response

    @app.errorhandler(db_actions.Error)
    def handle_exception(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return jsonify({
            "success": False,
            "data": None,
            "error": "Validation error",
            "details": e.messages
        }), 400

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(e):
        logging.getLogger(__name__).error(f"Database error: {e}")
        return jsonify(db_actions.errors.DatabaseError().to_dict()), 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        if isinstance(e, HTTPException):
            return e
        logging.getLogger(__name__).exception(f"Unexpected error: {e}")
        return jsonify(db_actions.errors.UnexpectedError().to_dict()), 500

    @app.route('/')
    def welcome():
        return 'Welcome to the daily harvest tracking API!\n'

    @app.route('/version')
    def version():
        """
        Get the current version of the application.
        """
        return jsonify({"version": __version__})

    for bp in api.blueprints:
        app.register_blueprint(bp)

    @app.route('/help')
    def help():
        endpoint = defaultdict(lambda: defaultdict(list))
        links = []
        for rule in app.url_map.iter_rules():
            endpoint[rule.endpoint]['rule'].append(rule.rule)
            endpoint[rule.endpoint]['methods'] = sorted(rule.methods - {'HEAD', 'OPTIONS'})
            endpoint[rule.endpoint]['doc'] = app.view_functions[rule.endpoint].__doc__

        for _, value in endpoint.items():
            links.append(
                """----------
URL:
        {}
METHODS: {}
DOC: {}
""".format('\n\t'.join(value['rule']), ', '.join(value['methods']), value['doc'])
            )

        response = make_response('\n'.join(links), 200)
        response.headers["content-type"] = "text/plain"
        return response

    if db is None:
        db = database.Database()
        atexit.register(db.dispose)
    db.init_app(app)
    ListingCache().init_app(app)

    return app
