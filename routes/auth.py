from flask import Blueprint, jsonify, request
from flask_login import login_user, logout_user, current_user, login_required
from auth.utils import create_user, authenticate, EmailAlreadyRegisteredError
from services.language_utils import is_supported_code
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('auth', __name__, url_prefix='/auth')


@bp.route('/register', methods=['POST'])
def register():
    """
    Register a new learner account and log it in.

    Request body:
    {
        "email": "learner@example.com",
        "password": "secret123",
        "native_language_code": "es",    // optional
        "learning_language_code": "de"   // optional
    }
    """
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'success': False, 'error': 'No JSON data provided'}), 400

    email = data.get('email')
    password = data.get('password')
    if not email or not password:
        return jsonify({'success': False, 'error': 'Email and password are required'}), 400

    native_code = data.get('native_language_code')
    learning_code = data.get('learning_language_code')
    for code in (native_code, learning_code):
        if code and not is_supported_code(code):
            return jsonify({'success': False, 'error': f'Unsupported language: {code}'}), 400

    try:
        user = create_user(
            email=email,
            password=password,
            native_language_code=native_code,
            learning_language_code=learning_code
        )
    except EmailAlreadyRegisteredError:
        return jsonify({'success': False, 'error': 'Email already registered'}), 409
    except ValueError as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    except Exception as e:
        logger.exception(f'Registration failed for {email}: {str(e)}')
        return jsonify({'success': False, 'error': 'Registration failed'}), 500

    login_user(user)
    return jsonify({'success': True, 'user': user.to_dict()}), 201


@bp.route('/login', methods=['POST'])
def login():
    """Log in with email and password"""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'success': False, 'error': 'No JSON data provided'}), 400

    user = authenticate(data.get('email'), data.get('password'))
    if not user:
        return jsonify({'success': False, 'error': 'Invalid email or password'}), 401

    login_user(user, remember=bool(data.get('remember')))
    logger.info(f'User logged in: {user.email}')
    return jsonify({'success': True, 'user': user.to_dict()}), 200


@bp.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'success': True}), 200


@bp.route('/me', methods=['GET'])
def me():
    """Current user, or authenticated=false"""
    if not current_user.is_authenticated:
        return jsonify({'success': True, 'authenticated': False}), 200
    return jsonify({'success': True, 'authenticated': True, 'user': current_user.to_dict()}), 200
