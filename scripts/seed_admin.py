"""Seed an administrator user and its login credential."""

from app import create_app
from models import db
from models.credential import Credential
from models.user import Role, User


def seed_admin(email: str, password: str) -> str:
    """Create or promote the admin identity; must run inside an app context."""

    email = email.strip().lower()
    admin = User.query.filter_by(email=email).first()
    if admin is None:
        admin = User(name="Admin User", email=email, role=Role.ADMIN.value)
        db.session.add(admin)
        action = "created"
    else:
        admin.role = Role.ADMIN.value
        admin.is_active = True
        action = "updated"

    credential = admin.credential
    if credential is None:
        credential = Credential(user=admin, email=email)
        db.session.add(credential)
    credential.is_active = True
    credential.set_password(password)

    db.session.commit()
    return action


def main() -> None:
    app = create_app()
    with app.app_context():
        email = app.config["ADMIN_EMAIL"]
        action = seed_admin(email, app.config["ADMIN_PASSWORD"])
        print(f"Admin user {action}: {email}")


if __name__ == "__main__":
    main()
