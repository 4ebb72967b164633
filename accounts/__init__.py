from .routes import accounts_bp, login_required, public_user


def init_accounts(app):
    """Register account routes."""
    app.register_blueprint(accounts_bp)
    return True


__all__ = ['accounts_bp', 'login_required', 'public_user', 'init_accounts']
