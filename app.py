"""Flask application factory for the Swach Sewa waste-management dashboard."""
import os
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, render_template, request
from sqlalchemy import create_engine, text
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import OperationalError

from extensions import csrf, db, login_manager, migrate
from utils.logger import init_logging
from utils.notify import pending_notifications
from utils.security import apply_security_headers
from utils.session import init_session_provider

NAVIGATION_ITEMS: list[tuple[str, str]] = [
    ("Dashboard", "main.dashboard"),
    ("Training", "training.list_modules"),
    ("Report Waste", "reports.new_report"),
    ("Facilities", "facilities.list_facilities"),
    ("Incentives", "incentives.ledger"),
    ("Profile", "profile.edit"),
]


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(403)
    def forbidden(error):
        app.logger.warning("403 Forbidden", extra={"path": request.path, "method": request.method})
        return render_template("errors/403.html"), 403

    @app.errorhandler(404)
    def not_found_error(error):
        app.logger.warning("404 Not Found", extra={"path": request.path, "method": request.method})
        return render_template("errors/404.html"), 404

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.exception("500 Internal Server Error")
        return render_template("errors/500.html"), 500


def ensure_database_exists(database_uri: str) -> None:
    """Create the target database if it does not exist (PostgreSQL + SQLite support)."""
    url = make_url(database_uri)

    if url.drivername.startswith("sqlite"):
        # For SQLite just make sure the parent directory exists.
        if url.database and url.database != ":memory:":
            os.makedirs(os.path.dirname(url.database) or ".", exist_ok=True)
        return

    if url.drivername.startswith("postgres"):
        db_name = url.database
        admin_url = url.set(database=os.getenv("POSTGRES_DB_ADMIN", "postgres"))
        engine = create_engine(admin_url, isolation_level="AUTOCOMMIT")
        try:
            with engine.connect() as conn:
                exists = conn.execute(
                    text("SELECT 1 FROM pg_database WHERE datname = :name"), {"name": db_name}
                ).scalar()
                if not exists:
                    conn.execute(text(f'CREATE DATABASE "{db_name}"'))
        except OperationalError:
            # If we cannot connect/create, let the normal app startup fail loudly later.
            pass
        finally:
            engine.dispose()


def create_app(config_name: Optional[str] = None) -> Flask:
    """Application factory with environment-aware configuration."""
    load_dotenv()

    app = Flask(__name__, instance_relative_config=True)

    from config import DevelopmentConfig, ProductionConfig, TestingConfig

    config_key = (config_name or os.getenv("FLASK_CONFIG") or os.getenv("FLASK_ENV") or "production").lower()
    config_map = {
        "development": DevelopmentConfig,
        "dev": DevelopmentConfig,
        "production": ProductionConfig,
        "prod": ProductionConfig,
        "testing": TestingConfig,
        "test": TestingConfig,
    }
    config_class = config_map.get(config_key, ProductionConfig)
    app.config.from_object(config_class())

    ensure_database_exists(app.config["SQLALCHEMY_DATABASE_URI"])

    # Optional instance-specific overrides
    if not app.config.get("TESTING"):
        app.config.from_pyfile("config.py", silent=True)
    os.makedirs(app.instance_path, exist_ok=True)
    os.makedirs(app.config["REPORT_UPLOAD_FOLDER"], exist_ok=True)

    # Initialize logging early
    logger = init_logging(app)
    app.logger = logger

    csrf.init_app(app)
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    login_manager.login_view = "auth.login"
    login_manager.session_protection = "strong"
    login_manager.login_message = "Please sign in to continue."
    login_manager.login_message_category = "default"

    @login_manager.user_loader
    def load_user(user_id):
        from models import User  # Local import to avoid circular dependency

        if not user_id:
            return None
        return db.session.get(User, str(user_id))

    init_session_provider(app)

    from routes import auth_bp, facilities_bp, incentives_bp, main_bp, profile_bp, reports_bp, training_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(training_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(facilities_bp)
    app.register_blueprint(incentives_bp)
    app.register_blueprint(profile_bp)

    @app.route("/favicon.ico")
    def favicon():
        """Serve a favicon if present; otherwise return an empty response to avoid 404 noise."""
        static_ico = os.path.join(app.static_folder or "static", "favicon.ico")
        if os.path.exists(static_ico):
            return app.send_static_file("favicon.ico")
        return "", 204

    @app.cli.command("seed-catalog")
    def seed_catalog_command():
        """Load default training modules and facilities into empty catalog tables."""
        from utils.catalog import seed_catalog

        created = seed_catalog()
        print(f"Seeded {created['training_modules']} training modules and {created['waste_facilities']} facilities.")

    register_error_handlers(app)

    @app.template_filter("short_date")
    def short_date(value):
        return str(value)[:10] if value else ""

    @app.context_processor
    def inject_shell_context():
        return {
            "navigation_items": NAVIGATION_ITEMS,
            "pending_notifications": pending_notifications,
        }

    @app.after_request
    def _after_request(response):
        return apply_security_headers(response, force_https=app.config.get("PREFERRED_URL_SCHEME") == "https")

    # Ensure tables exist so first run creates the database structure automatically.
    with app.app_context():
        import models  # noqa: F401  Register tables on the shared metadata.

        db.create_all()

    return app


# Expose the Flask application for WSGI servers (e.g., gunicorn app:app).
app = create_app()


if __name__ == "__main__":
    port = int(os.getenv("PORT", 5000))
    app.run(host="0.0.0.0", port=port, use_reloader=False)
