from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import logging

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def _build_engine(db_url: str):
    if db_url.endswith(':memory:'):
        # one shared in-memory SQLite database across all sessions
        return create_engine(db_url, future=True, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    return create_engine(db_url, future=True)


def _error_payload(status: int, title: str, detail: Any):
    return {'success': False, 'error': {'status': status, 'title': title, 'detail': detail}}, status


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    from .config.settings import settings_from_env
    from .services.grants import CACHE_EXTENSION_KEY, UserModulesCache

    app = Flask(__name__)
    app.config.update(settings_from_env())
    if config:
        # allow tests or callers to override env-derived values
        app.config.update(config)

    level = getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO)
    app.logger.setLevel(level)
    logging.getLogger('bakery').setLevel(level)

    db_engine = _build_engine(app.config['DATABASE_URL'])
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)
    app.extensions[CACHE_EXTENSION_KEY] = UserModulesCache(
        ttl=app.config['USER_MODULES_STALE_SECONDS'],
        maxsize=app.config['USER_MODULES_CACHE_SIZE'],
    )

    from .routes.access import access_bp
    app.register_blueprint(access_bp, url_prefix='/api')

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            return _error_payload(e.code, e.name, e.description)
        # drop any half-finished unit of work before answering
        SessionLocal().rollback()
        app.logger.exception('Unhandled exception')
        return _error_payload(500, 'Internal Server Error', 'Unexpected error')

    return app


def get_db():
    return SessionLocal()
