from models import db
from datetime import datetime
from flask_login import UserMixin
from sqlalchemy.orm import validates
from werkzeug.security import generate_password_hash, check_password_hash
import re

USER_ROLES = ('USER', 'ADMIN')


class User(UserMixin, db.Model):
    """User model - stores credentials and language preferences"""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String, unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String, nullable=False)

    # USER or ADMIN; only admins may generate phrases and manage users
    role = db.Column(db.String(10), nullable=False, default='USER')

    native_language_code = db.Column(db.String(10), db.ForeignKey('languages.code'))
    learning_language_code = db.Column(db.String(10), db.ForeignKey('languages.code'))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    native_language = db.relationship('Language', foreign_keys=[native_language_code])
    learning_language = db.relationship('Language', foreign_keys=[learning_language_code])
    progress = db.relationship('UserPhraseProgress', back_populates='user', lazy='dynamic',
                               cascade='all, delete-orphan')

    @validates('email')
    def validate_email(self, key, email):
        if not email:
            raise ValueError('Email is required')
        email = email.strip().lower()
        # Basic email format validation
        pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not re.match(pattern, email):
            raise ValueError(f'Invalid email format: {email}')
        return email

    @validates('role')
    def validate_role(self, key, role):
        if role not in USER_ROLES:
            raise ValueError(f'Invalid role: {role}. Must be one of {", ".join(USER_ROLES)}')
        return role

    def set_password(self, password: str):
        if not password or len(password) < 6:
            raise ValueError('Password must be at least 6 characters')
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        if not password or not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self) -> bool:
        return self.role == 'ADMIN'

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'role': self.role,
            'native_language_code': self.native_language_code,
            'learning_language_code': self.learning_language_code,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }

    def __repr__(self):
        return f'<User {self.email}>'
