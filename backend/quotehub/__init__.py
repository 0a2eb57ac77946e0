from flask import Flask
from flask_cors import CORS
import os
import logging
import atexit
from .config import Config


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Configure Logging
    log_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # File handler - saves to logs/backend.log
    log_dir = 'logs'
    if not os.path.exists(log_dir):
        os.makedirs(log_dir)

    file_handler = logging.FileHandler(os.path.join(log_dir, 'backend.log'))
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(log_formatter)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(log_formatter)

    # Configure root logger
    logging.basicConfig(
        level=logging.INFO,
        handlers=[file_handler, console_handler]
    )

    # CORS
    CORS(app, resources={r"/api/*": {"origins": "*"}})

    # Initialize Extensions
    from .models import db
    db.init_app(app)

    # Market data components, one set per app
    from .services.market_data import build_market_data_service, build_quote_resolver
    app.extensions['market_data'] = build_market_data_service(app.config)
    app.extensions['quote_resolver'] = build_quote_resolver(app.config)

    # Initialize Scheduler (not in debug reloader, not when disabled)
    if app.config.get('SCHEDULER_ENABLED', True) and not os.environ.get('WERKZEUG_RUN_MAIN'):
        from .scheduler import init_scheduler, shutdown_scheduler

        with app.app_context():
            init_scheduler(app)

        # Ensure scheduler shuts down properly
        atexit.register(shutdown_scheduler)

    # Register Blueprints
    from .api.market import market_bp
    from .api.metrics import metrics_bp

    app.register_blueprint(market_bp)
    app.register_blueprint(metrics_bp)

    @app.route('/health')
    def health():
        return {'status': 'ok'}

    # Manual cache sweep, same job the scheduler runs
    from .auth import require_admin_token

    @app.route('/api/admin/sweep-cache', methods=['POST'])
    @require_admin_token
    def trigger_cache_sweep():
        try:
            from .scheduler import sweep_expired_cache
            removed = sweep_expired_cache(app.extensions['market_data'])
            return {'success': True, 'removed': removed}
        except Exception as e:
            return {'success': False, 'error': str(e)}, 500

    @app.cli.command('init-db')
    def init_db_command():
        """Create the cache and stock tables."""
        db.create_all()
        print("Database tables created")

    return app
