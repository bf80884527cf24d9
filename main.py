"""SupportDesk Backend API - Main entry point"""
from flask import Flask, jsonify
from flask_cors import CORS
import logging
from datetime import datetime, timezone
from dotenv import load_dotenv

# Load environment variables early
load_dotenv()

from supportdesk import __version__
from supportdesk.config import configure_logging, get_settings
from supportdesk.database import SupabaseClientSingleton
from supportdesk.auth import auth_bp
from supportdesk.users import users_bp
from supportdesk.tickets import tickets_bp
from supportdesk.analytics import analytics_bp

logger = logging.getLogger(__name__)


def create_app(settings=None) -> Flask:
    settings = settings or get_settings()
    configure_logging(settings)

    app = Flask(__name__)

    CORS(app, resources={r"/api/*": {
        "origins": settings.CORS_ALLOWED_ORIGINS,
        "methods": ["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        "allow_headers": ["Content-Type", "Authorization"],
    }})

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(users_bp, url_prefix='/api/users')
    app.register_blueprint(tickets_bp, url_prefix='/api/tickets')
    app.register_blueprint(analytics_bp, url_prefix='/api/dashboard')

    @app.route("/health")
    def health():
        """
        Health check endpoint for load balancer monitoring.

        Returns 200 if the server is running and can reach the database.
        Returns 503 if the database is unreachable.
        """
        checks = {"server": "ok"}
        status_code = 200

        try:
            supabase = SupabaseClientSingleton.get_instance()
            supabase.table("users").select("id").limit(1).execute()
            checks["database"] = "ok"
        except Exception as e:
            logger.error(f"Health check could not reach database: {e}")
            checks["database"] = f"error: {str(e)[:100]}"
            status_code = 503

        return jsonify({
            "status": "healthy" if status_code == 200 else "unhealthy",
            "version": __version__,
            "checks": checks,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }), status_code

    logger.info(f"SupportDesk API v{__version__} initialised")
    return app


app = create_app()


if __name__ == "__main__":
    port = get_settings().PORT
    print(f"\nServer starting at: http://0.0.0.0:{port}")
    app.run(host="0.0.0.0", port=port, use_reloader=False)
