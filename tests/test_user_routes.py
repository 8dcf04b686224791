"""
Integration tests for admin user management routes (/api/users/*).
"""

import sys
import os
import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import create_app
from models import db
from models.language import Language
from models.user import User


@pytest.fixture(scope='function')
def client():
    """Create a test client with fresh database for each test"""
    app = create_app('testing')

    with app.app_context():
        db.create_all()

        db.session.add_all([
            Language(code='es', original_name='Español', en_name='Spanish', display_order=1),
            Language(code='en', original_name='English', en_name='English', display_order=2),
        ])
        for email, role in (('learner@example.com', 'USER'), ('admin@example.com', 'ADMIN')):
            user = User(email=email, role=role)
            user.set_password('secret123')
            db.session.add(user)
        db.session.commit()

        with app.test_client() as client:
            yield client

        db.session.remove()
        db.drop_all()


@pytest.fixture
def admin(client):
    client.post('/auth/login', json={'email': 'admin@example.com', 'password': 'secret123'})
    return client


def user_id(email):
    return User.query.filter_by(email=email).first().id


class TestUserAdministration:
    """Tests for /api/users"""

    def test_requires_authentication(self, client):
        assert client.get('/api/users').status_code == 401

    def test_requires_admin_role(self, client):
        client.post('/auth/login', json={'email': 'learner@example.com', 'password': 'secret123'})

        response = client.get('/api/users')

        assert response.status_code == 403

    def test_list_users(self, admin):
        data = admin.get('/api/users').get_json()

        assert data['count'] == 2
        assert {u['email'] for u in data['users']} == {'learner@example.com', 'admin@example.com'}

    def test_create_user(self, admin):
        response = admin.post('/api/users', json={
            'email': 'teacher@example.com',
            'password': 'secret123',
            'role': 'ADMIN',
            'native_language_code': 'es',
            'learning_language_code': 'en'
        })

        assert response.status_code == 201
        assert response.get_json()['user']['role'] == 'ADMIN'

    @pytest.mark.parametrize('payload, status_code', [
        ({'email': 'learner@example.com', 'password': 'secret123'}, 409),
        ({'email': 'new@example.com', 'password': 'secret123', 'role': 'OWNER'}, 400),
        ({'email': 'new@example.com'}, 400),
        ({'email': 'new@example.com', 'password': 'secret123', 'native_language_code': 'xx'}, 400),
    ])
    def test_create_user_invalid(self, admin, payload, status_code):
        response = admin.post('/api/users', json=payload)

        assert response.status_code == status_code
        assert User.query.count() == 2

    def test_get_user(self, admin):
        response = admin.get(f'/api/users/{user_id("learner@example.com")}')

        assert response.status_code == 200
        assert response.get_json()['user']['email'] == 'learner@example.com'

    def test_get_missing_user(self, admin):
        assert admin.get('/api/users/999').status_code == 404

    def test_update_user(self, admin):
        target = user_id('learner@example.com')

        response = admin.put(f'/api/users/{target}', json={'role': 'ADMIN', 'learning_language_code': 'en'})

        assert response.status_code == 200
        user = User.query.get(target)
        assert user.role == 'ADMIN'
        assert user.learning_language_code == 'en'

    def test_update_email_to_taken_one(self, admin):
        target = user_id('learner@example.com')

        response = admin.put(f'/api/users/{target}', json={'email': 'admin@example.com'})

        assert response.status_code == 409

    def test_delete_user(self, admin):
        target = user_id('learner@example.com')

        assert admin.delete(f'/api/users/{target}').status_code == 200
        assert User.query.get(target) is None

    def test_cannot_delete_self(self, admin):
        response = admin.delete(f'/api/users/{user_id("admin@example.com")}')

        assert response.status_code == 400
        assert User.query.count() == 2
