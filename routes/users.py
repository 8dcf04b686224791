from flask import Blueprint, jsonify, request
from flask_login import current_user
from models import db
from models.user import User
from auth.utils import admin_required, create_user, EmailAlreadyRegisteredError
from services.language_utils import is_supported_code
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('users', __name__, url_prefix='/api/users')


@bp.route('', methods=['GET'])
@admin_required
def list_users():
    users = User.query.order_by(User.created_at.desc()).all()
    return jsonify({
        'success': True,
        'users': [user.to_dict() for user in users],
        'count': len(users)
    }), 200


@bp.route('', methods=['POST'])
@admin_required
def add_user():
    """
    Create a user (admin only).

    Request body:
    {
        "email": "user@example.com",
        "password": "secret123",
        "role": "USER",                  // optional, USER or ADMIN
        "native_language_code": "es",    // optional
        "learning_language_code": "en"   // optional
    }
    """
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'success': False, 'error': 'No JSON data provided'}), 400

    if not data.get('email') or not data.get('password'):
        return jsonify({'success': False, 'error': 'Email and password are required'}), 400

    for field in ('native_language_code', 'learning_language_code'):
        code = data.get(field)
        if code and not is_supported_code(code):
            return jsonify({'success': False, 'error': f'Unsupported language: {code}'}), 400

    try:
        user = create_user(
            email=data['email'],
            password=data['password'],
            role=data.get('role', 'USER'),
            native_language_code=data.get('native_language_code'),
            learning_language_code=data.get('learning_language_code')
        )
    except EmailAlreadyRegisteredError:
        return jsonify({'success': False, 'error': 'Email already registered'}), 409
    except ValueError as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    except Exception as e:
        logger.exception(f'Failed to create user: {str(e)}')
        return jsonify({'success': False, 'error': 'Failed to create user'}), 500

    return jsonify({'success': True, 'user': user.to_dict()}), 201


@bp.route('/<int:user_id>', methods=['GET'])
@admin_required
def get_user(user_id):
    user = User.query.get(user_id)
    if not user:
        return jsonify({'success': False, 'error': 'User not found'}), 404
    return jsonify({'success': True, 'user': user.to_dict()}), 200


@bp.route('/<int:user_id>', methods=['PUT'])
@admin_required
def update_user(user_id):
    """Update email, role, password or language pair of a user (admin only)"""
    user = User.query.get(user_id)
    if not user:
        return jsonify({'success': False, 'error': 'User not found'}), 404

    data = request.get_json(silent=True)
    if not data:
        return jsonify({'success': False, 'error': 'No JSON data provided'}), 400

    try:
        if data.get('email') and data['email'].strip().lower() != user.email:
            if User.query.filter_by(email=data['email'].strip().lower()).first():
                return jsonify({'success': False, 'error': 'Email already registered'}), 409
            user.email = data['email']

        if 'role' in data:
            user.role = data['role']

        for field in ('native_language_code', 'learning_language_code'):
            if field in data:
                code = data[field]
                if code and not is_supported_code(code):
                    return jsonify({'success': False, 'error': f'Unsupported language: {code}'}), 400
                setattr(user, field, code or None)

        if data.get('password'):
            user.set_password(data['password'])

        db.session.commit()
        logger.info(f'User {user.id} updated by admin {current_user.email}')
        return jsonify({'success': True, 'user': user.to_dict()}), 200

    except ValueError as e:
        db.session.rollback()
        return jsonify({'success': False, 'error': str(e)}), 400
    except Exception as e:
        db.session.rollback()
        logger.exception(f'Failed to update user {user_id}: {str(e)}')
        return jsonify({'success': False, 'error': 'Failed to update user'}), 500


@bp.route('/<int:user_id>', methods=['DELETE'])
@admin_required
def delete_user(user_id):
    user = User.query.get(user_id)
    if not user:
        return jsonify({'success': False, 'error': 'User not found'}), 404

    if user.id == current_user.id:
        return jsonify({'success': False, 'error': 'Cannot delete your own account'}), 400

    try:
        db.session.delete(user)
        db.session.commit()
        logger.info(f'User {user_id} deleted by admin {current_user.email}')
        return jsonify({'success': True}), 200
    except Exception as e:
        db.session.rollback()
        logger.exception(f'Failed to delete user {user_id}: {str(e)}')
        return jsonify({'success': False, 'error': 'Failed to delete user'}), 500
