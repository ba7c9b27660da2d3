"""Product catalog model."""

from datetime import datetime
from decimal import Decimal

from . import db


class Product(db.Model):
    """Represents an item offered in the storefront catalog."""

    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    category = db.Column(db.String(120), nullable=True)
    image = db.Column(db.String(512), nullable=True)
    stock = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def to_dict(self) -> dict:
        """Serialize the product to a dictionary."""

        price = float(self.price) if isinstance(self.price, Decimal) else self.price
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": price,
            "category": self.category,
            "image": self.image,
            "stock": self.stock,
            "isActive": self.is_active,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<Product id={self.id} name={self.name}>"
