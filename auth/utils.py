from functools import wraps
from models import db
from models.user import User
from flask import jsonify
from flask_login import current_user
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class EmailAlreadyRegisteredError(ValueError):
    """A user with this email already exists"""


def create_user(
    email: str,
    password: str,
    role: str = 'USER',
    native_language_code: Optional[str] = None,
    learning_language_code: Optional[str] = None
) -> User:
    """
    Create and commit a new user.

    Raises:
        EmailAlreadyRegisteredError: If the email is taken
        ValueError: If email, password or role is invalid
    """
    if not email or not password:
        raise ValueError('Email and password are required')

    if User.query.filter_by(email=email.strip().lower()).first():
        raise EmailAlreadyRegisteredError(f'Email already registered: {email}')

    user = User(
        email=email,
        role=role,
        native_language_code=native_language_code,
        learning_language_code=learning_language_code
    )
    user.set_password(password)

    try:
        db.session.add(user)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(f'Created new user: {user.email} ({user.role})')
    return user


def authenticate(email: str, password: str) -> Optional[User]:
    """
    Check credentials.

    Returns:
        User object or None if the email is unknown or the password is wrong
    """
    if not email or not password:
        return None

    user = User.query.filter_by(email=email.strip().lower()).first()
    if not user or not user.check_password(password):
        logger.info(f'Failed login attempt for {email}')
        return None
    return user


def admin_required(view):
    """Restrict a view to authenticated admins; 401/403 JSON otherwise"""
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({'success': False, 'error': 'User not authenticated'}), 401
        if not current_user.is_admin:
            return jsonify({'success': False, 'error': 'Access denied. Administrator role required.'}), 403
        return view(*args, **kwargs)
    return wrapper
