import logging
import os
from typing import Any, Callable, Mapping, Optional

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_login import LoginManager

# Load environment variables conditionally
# Only load from .env when DATABASE_URL is not already defined by the environment
if not os.getenv("DATABASE_URL"):
    load_dotenv()

logger = logging.getLogger(__name__)


def _is_test_mode(app: Flask) -> bool:
    from salon_booking.core.limiter_config import is_test_mode

    return is_test_mode() or bool(app.config.get("TESTING"))


def create_app(
    config: Optional[Mapping[str, Any]] = None,
    session_factory: Optional[Callable] = None,
    auth_adapter=None,
    clock: Optional[Callable] = None,
):  # noqa: C901
    """Application factory.

    Args:
        config: Extra Flask config applied before extensions are initialised
        session_factory: Callable returning SQLAlchemy sessions; defaults to
            the lazy engine built from DATABASE_URL
        auth_adapter: IAuthAdapter resolving bearer tokens; defaults to JWT
        clock: Callable returning the current aware instant
    """
    # Determine environment
    env = os.getenv("FLASK_ENV", "development")
    is_production = env == "production"

    app = Flask(__name__)

    # Set TESTING config from environment variable (before any other configuration)
    testing_env = os.getenv("TESTING", "").lower().strip()
    if testing_env in ("true", "1", "yes"):
        app.config["TESTING"] = True
    if config:
        app.config.update(config)

    # Configure structured logging (after app creation so we can register hooks)
    from salon_booking.core.logging_config import setup_logging

    setup_logging(
        app=app,  # Pass app to register request/response hooks
        log_level=logging.INFO if is_production else logging.DEBUG,
        enable_sql_echo=not is_production,  # SQL timing in dev only
        # log_to_file controlled by LOG_TO_FILE env var (1=files, 0=stdout only)
        use_json_format=is_production,  # JSON logs in production, colored in dev
    )

    from salon_booking.core.config import (
        APP_TZ,
        HEALTH_CHECK_TOKEN,
        SLOT_GRANULARITY_MINUTES,
        log_booking_config,
        log_timezone_config,
        utc_now,
    )

    log_timezone_config()
    log_booking_config()

    app.config.setdefault("APP_TZ", APP_TZ)
    app.config.setdefault("SLOT_GRANULARITY_MINUTES", SLOT_GRANULARITY_MINUTES)
    app.config.setdefault("HEALTH_CHECK_TOKEN", HEALTH_CHECK_TOKEN)
    app.config["GIT_SHA"] = os.getenv("GIT_SHA", "")

    # Sentry Integration
    # Initialize Sentry for error tracking and performance monitoring
    sentry_dsn = os.getenv("SENTRY_DSN")
    if sentry_dsn:
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration
        from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

        sentry_sdk.init(
            dsn=sentry_dsn,
            environment=env,
            release=os.getenv("GIT_SHA", "unknown"),
            integrations=[
                FlaskIntegration(),
                SqlalchemyIntegration(),
            ],
            traces_sample_rate=0.1,  # 10% of transactions for performance monitoring
            send_default_pii=False,  # Don't send PII by default
        )
        logger.info(
            "Sentry initialized",
            extra={"context": {"environment": env, "traces_sample_rate": 0.1}},
        )
    else:
        logger.info(
            "Sentry not initialized (SENTRY_DSN not set)",
            extra={"context": {"environment": env}},
        )

    # Prometheus Metrics
    # Expose /metrics endpoint for Prometheus scraping
    # MUST be initialized BEFORE limiter to avoid being rate-limited
    # A registry per app keeps repeated create_app() calls from colliding
    from prometheus_client import CollectorRegistry
    from prometheus_flask_exporter import PrometheusMetrics

    metrics = PrometheusMetrics(app, registry=CollectorRegistry())
    metrics.info(
        "app_info",
        "Application information",
        version=os.getenv("GIT_SHA", "unknown"),
        environment=env,
    )
    logger.info(
        "Prometheus metrics initialized",
        extra={"context": {"metrics_endpoint": "/metrics"}},
    )

    # Configuration
    app.config["SECRET_KEY"] = os.getenv("FLASK_SECRET_KEY", "dev-secret-change-me")

    # Initialize Flask-Limiter (rate limiting) with environment-aware storage
    from salon_booking.core.limiter_config import limiter

    app.config["RATELIMIT_STORAGE_URI"] = os.getenv(
        "LIMITER_STORAGE_URI", "memory://"
    )
    limiter.init_app(app)

    # Disable rate limiting in test mode if RATE_LIMIT_ENABLED=0
    if _is_test_mode(app) and os.getenv("RATE_LIMIT_ENABLED", "1") == "0":
        limiter.enabled = False
        logger.info(
            "Rate limiting disabled for testing", extra={"context": {"test_mode": True}}
        )

    # Production validation: fail fast if weak secrets are used
    if is_production:
        weak_secrets = ["dev-secret-change-me", "dev-jwt-secret-change-me", "secret123"]
        secret_key = app.config["SECRET_KEY"]
        if secret_key in weak_secrets or len(secret_key) < 32:
            raise ValueError(
                "Production deployment requires strong SECRET_KEY (min 32 chars). "
                "Set FLASK_SECRET_KEY environment variable."
            )

    # Cookie and Session Hardening
    app.config.setdefault("SESSION_COOKIE_SECURE", is_production)
    app.config.setdefault("SESSION_COOKIE_HTTPONLY", True)
    app.config.setdefault("SESSION_COOKIE_SAMESITE", "Lax")

    # CSRF Protection
    # JSON API routes are exempted per route; they authenticate with bearer tokens
    from salon_booking.core.csrf_config import csrf

    app.config["WTF_CSRF_TIME_LIMIT"] = None  # Tokens don't expire
    app.config["WTF_CSRF_SSL_STRICT"] = is_production  # HTTPS in prod
    csrf.init_app(app)

    # HTTPS Enforcement with Talisman
    # Force HTTPS, add HSTS, XFO, XCTO, CSP and Referrer-Policy headers
    if is_production:
        from flask_talisman import Talisman

        Talisman(
            app,
            content_security_policy={"default-src": "'none'"},
            force_https=True,
            strict_transport_security=True,
            strict_transport_security_max_age=63072000,  # 2 years
            strict_transport_security_include_subdomains=True,
            frame_options="DENY",
            referrer_policy="no-referrer",
        )

    # Database
    if session_factory is None:
        from salon_booking.db.session import create_tables, get_engine, get_sessionmaker

        session_factory = get_sessionmaker()
        if os.getenv("AUTO_CREATE_TABLES", "1") == "1":
            create_tables()
            eng = get_engine()
            logger.info(
                "Database ready",
                extra={
                    "context": {
                        "url": eng.url.render_as_string(hide_password=True),
                        "driver": eng.dialect.name,
                    }
                },
            )

    if auth_adapter is None:
        from salon_booking.core.security import JWTAuthAdapter

        auth_adapter = JWTAuthAdapter()

    app.extensions["session_factory"] = session_factory
    app.extensions["auth_adapter"] = auth_adapter
    app.extensions["clock"] = clock or utc_now

    # Initialize Flask-Login
    login_manager = LoginManager()
    login_manager.init_app(app)

    @login_manager.request_loader
    def load_user_from_request(request):
        """Load the caller from the Authorization: Bearer header."""
        from salon_booking.core.auth_decorators import load_user_from_header

        return load_user_from_header(request.headers.get("Authorization"))

    @login_manager.unauthorized_handler
    def unauthorized():
        """Return 401 JSON instead of redirecting to a login page."""
        return (
            jsonify(
                {
                    "success": False,
                    "message": "Authentication required",
                }
            ),
            401,
        )

    # Register blueprints
    from salon_booking.controllers.appointment_controller import appointment_bp
    from salon_booking.controllers.health_controller import health_bp

    app.register_blueprint(appointment_bp)
    app.register_blueprint(health_bp)

    @app.errorhandler(404)
    def not_found(_error):
        return jsonify({"success": False, "message": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(_error):
        return jsonify({"success": False, "message": "Method not allowed"}), 405

    @app.errorhandler(429)
    def rate_limited(_error):
        return jsonify({"success": False, "message": "Too many requests"}), 429

    logger.info(
        "Application created",
        extra={"context": {"environment": env, "testing": app.config.get("TESTING")}},
    )
    return app
