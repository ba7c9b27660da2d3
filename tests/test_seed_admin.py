"""Tests for the admin seeding script."""

from models import db
from models.credential import Credential
from models.user import User
from scripts.seed_admin import seed_admin


def test_seed_admin_creates_admin_that_can_login(app, client):
    with app.app_context():
        assert seed_admin("Admin@Example.com", "admin123") == "created"

    response = client.post("/auth/login", json={"email": "admin@example.com", "password": "admin123"})

    assert response.status_code == 200
    assert response.get_json()["user"]["role"] == "admin"


def test_seed_admin_promotes_existing_user(app, make_user):
    user_id = make_user("boss@example.com", "oldpass1", active=False)

    with app.app_context():
        assert seed_admin("boss@example.com", "newpass1") == "updated"

        user = db.session.get(User, user_id)
        credential = Credential.query.filter_by(user_id=user_id).one()
        assert user.role == "admin"
        assert user.is_active is True
        assert credential.is_active is True
        assert credential.check_password("newpass1")
        assert User.query.count() == 1
