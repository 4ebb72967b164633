import logging
from functools import wraps

from flask import Blueprint, jsonify, request, session
from web3 import Web3
from werkzeug.security import check_password_hash, generate_password_hash

from quiz_rewards.blockchain import mask_wallet_address
from quiz_rewards.scoring import format_amount
from quiz_rewards.services import get_services

logger = logging.getLogger(__name__)

accounts_bp = Blueprint('accounts', __name__, url_prefix='/api')


def public_user(user):
    """User row without the password hash"""
    return {
        'id': user['id'],
        'username': user['username'],
        'email': user['email'],
        'walletAddress': user.get('wallet_address'),
        'balance': format_amount(user.get('balance')),
        'createdAt': user.get('created_at'),
    }


def login_required(f):
    """Session validation; passes the current user row as first argument"""
    @wraps(f)
    def decorated(*args, **kwargs):
        user_id = session.get('user_id')
        if not user_id:
            return jsonify({'success': False, 'error': 'Authentication required', 'auth_required': True}), 401

        user = get_services().store.get_user(user_id)
        if not user:
            logger.warning(f"❌ Session user {user_id} no longer exists")
            session.pop('user_id', None)
            return jsonify({'success': False, 'error': 'Authentication required', 'auth_required': True}), 401

        return f(user, *args, **kwargs)
    return decorated


@accounts_bp.route('/register', methods=['POST'])
def register():
    """Create an account and log it in"""
    data = request.get_json(silent=True) or {}
    username = str(data.get('username') or '').strip()
    email = str(data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    confirm_password = data.get('confirmPassword') or ''

    if not username or not email or not password:
        return jsonify({'success': False, 'error': 'Username, email and password are required'}), 400
    if '@' not in email:
        return jsonify({'success': False, 'error': 'Invalid email address'}), 400
    if password != confirm_password:
        return jsonify({'success': False, 'error': "Passwords don't match"}), 400

    try:
        store = get_services().store
        if store.get_user_by_username(username):
            return jsonify({'success': False, 'error': 'Username already exists'}), 400
        if store.get_user_by_email(email):
            return jsonify({'success': False, 'error': 'Email already registered'}), 400

        user = store.create_user({
            'username': username,
            'email': email,
            'password_hash': generate_password_hash(password),
        })

        session['user_id'] = user['id']
        session.permanent = True
        logger.info(f"✅ Registered user {user['id']} ({username})")
        return jsonify(public_user(user)), 201

    except Exception as e:
        logger.error(f"❌ Error registering {username}: {e}", exc_info=True)
        return jsonify({'success': False, 'error': 'Registration failed. Please try again.'}), 500


@accounts_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    username = str(data.get('username') or '').strip()
    password = data.get('password') or ''

    if not username or not password:
        return jsonify({'success': False, 'error': 'Username and password are required'}), 400

    try:
        user = get_services().store.get_user_by_username(username)
        if not user or not check_password_hash(user['password_hash'], password):
            logger.warning(f"❌ Failed login for {username}")
            return jsonify({'success': False, 'error': 'Invalid username or password'}), 401

        session['user_id'] = user['id']
        session.permanent = True
        logger.info(f"🔐 User {user['id']} logged in")
        return jsonify(public_user(user)), 200

    except Exception as e:
        logger.error(f"❌ Error logging in {username}: {e}", exc_info=True)
        return jsonify({'success': False, 'error': 'Login failed. Please try again.'}), 500


@accounts_bp.route('/logout', methods=['POST'])
def logout():
    session.pop('user_id', None)
    return jsonify({'success': True}), 200


@accounts_bp.route('/user', methods=['GET'])
@login_required
def current_user_info(current_user):
    return jsonify(public_user(current_user)), 200


@accounts_bp.route('/user/wallet', methods=['PUT'])
@login_required
def update_wallet(current_user):
    """Link a wallet address to the account"""
    data = request.get_json(silent=True) or {}
    wallet_address = data.get('walletAddress')

    if not wallet_address:
        return jsonify({'success': False, 'error': 'Wallet address is required'}), 400
    if not isinstance(wallet_address, str) or not Web3.is_address(wallet_address):
        return jsonify({'success': False, 'error': 'Invalid wallet address'}), 400

    try:
        checksum_address = Web3.to_checksum_address(wallet_address)
        user = get_services().store.update_user_wallet(current_user['id'], checksum_address)
        if not user:
            return jsonify({'success': False, 'error': 'User not found'}), 404

        logger.info(f"👛 User {current_user['id']} linked wallet {mask_wallet_address(checksum_address)}")
        return jsonify(public_user(user)), 200

    except Exception as e:
        logger.error(f"❌ Error updating wallet for user {current_user['id']}: {e}", exc_info=True)
        return jsonify({'success': False, 'error': 'Failed to update wallet'}), 500
