import logging
import os
from pathlib import Path

from flask import Flask, jsonify
from sqlalchemy import text, event

from models import db
from trackd_core.errors import install_json_error_handlers
from trackd_core.metrics import metrics_bp
from trackd_core.auth import auth_bp
from trackd_core.friends import friends_bp
from trackd_core.suggestions import suggestions_bp
from trackd_core.watchlist import watchlist_bp
from trackd_core.tmdb import tmdb_bp


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless enabled per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_app(config=None):
    app = Flask(__name__, template_folder="templates")

    # Load env config
    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", "dev-secret")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["SIGNIN_SECRET"] = os.getenv("SIGNIN_SECRET")
    app.config["RESEND_API_KEY"] = os.getenv("RESEND_API_KEY")
    app.config["EMAIL_FROM"] = os.getenv("EMAIL_FROM", "Trackd <noreply@trackd.app>")
    app.config["APP_URL"] = os.getenv("APP_URL", "http://localhost:8000")
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(log_level)
    if not isinstance(level, int):
        app.logger.warning("Unknown LOG_LEVEL %r, falling back to INFO", log_level)
        level = logging.INFO
    app.logger.setLevel(level)

    # Database configuration
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        app.config["SQLALCHEMY_DATABASE_URI"] = database_url
    else:
        instance_db = Path(app.instance_path) / "trackd.db"
        instance_db.parent.mkdir(parents=True, exist_ok=True)
        app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{instance_db}"

    # explicit overrides (tests) win over the environment
    if config:
        app.config.update(config)

    safe_dest = app.config["SQLALCHEMY_DATABASE_URI"].split("@", 1)[-1]
    app.logger.info("[Trackd] Using database -> %s", safe_dest)

    # Installing JSON error handlers & SQLAlchemy
    install_json_error_handlers(app)
    db.init_app(app)

    # Initializing database safely
    with app.app_context():
        if db.engine.dialect.name == "sqlite":
            event.listen(db.engine, "connect", _enable_sqlite_foreign_keys)
        try:
            db.create_all()
        except Exception:
            app.logger.exception("Database initialization skipped due to error")

    # HEALTH CHECK ENDPOINT
    @app.route("/health")
    def health():
        """
        Basic health endpoint for monitoring.
        Returns 200 if DB is reachable, 500 otherwise.
        """
        db_ok = True
        try:
            db.session.execute(text("SELECT 1"))
        except Exception:
            db.session.rollback()
            app.logger.warning("Health check could not reach the database", exc_info=True)
            db_ok = False

        status_code = 200 if db_ok else 500
        return jsonify({"success": db_ok, "status": "ok" if db_ok else "error", "database": db_ok}), status_code

    # Register blueprints
    app.register_blueprint(metrics_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(friends_bp)
    app.register_blueprint(suggestions_bp)
    app.register_blueprint(watchlist_bp)
    app.register_blueprint(tmdb_bp)

    return app


# Development only
if __name__ == "__main__":
    port = int(os.getenv("PORT", 8000))
    create_app().run(host="0.0.0.0", port=port, debug=True)
