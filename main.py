from flask import Flask, jsonify
from flask_compress import Compress
from datetime import datetime, timedelta, timezone
import os
import logging

from config import APP_CONFIG
from accounts import init_accounts
from quiz_rewards import init_quiz_rewards

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# Reduce werkzeug logging for health checks
logging.getLogger('werkzeug').setLevel(logging.ERROR)
logging.getLogger('httpx').setLevel(logging.ERROR)


def create_app(config_overrides=None, store=None, chain=None):
    """
    Build the Flask application

    Args:
        config_overrides: Flask config values applied last (tests use this)
        store: storage backend; Supabase or in-memory when omitted
        chain: reward chain client; built from CHAIN_CONFIG when omitted
    """
    app = Flask(__name__)
    app.secret_key = APP_CONFIG['SECRET_KEY']

    # Enable gzip compression
    compress = Compress()
    compress.init_app(app)

    # Configure session for better persistence
    app.permanent_session_lifetime = timedelta(hours=APP_CONFIG['SESSION_LIFETIME_HOURS'])
    app.config['SESSION_COOKIE_SECURE'] = APP_CONFIG['SESSION_COOKIE_SECURE']
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'
    app.config['MAX_CONTENT_LENGTH'] = 1 * 1024 * 1024
    app.config['SEED_SAMPLE_QUIZZES'] = APP_CONFIG['SEED_SAMPLE_QUIZZES']

    if config_overrides:
        app.config.update(config_overrides)

    init_quiz_rewards(app, store=store, chain=chain, seed_samples=app.config['SEED_SAMPLE_QUIZZES'])
    init_accounts(app)

    @app.route('/api/health', methods=['GET'])
    def health_check():
        return jsonify({
            'status': 'ok',
            'timestamp': datetime.now(timezone.utc).isoformat()
        }), 200

    logger.info("🚀 Quiz Rewards app ready")
    return app


if __name__ == '__main__':
    app = create_app()
    port = int(os.environ.get('PORT', 5000))
    app.run(host='0.0.0.0', port=port, debug=False)
