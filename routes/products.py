"""Products blueprint with paginated catalog and admin CRUD."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import NotFound

from models import db
from models.product import Product
from storage import StorageError, get_image_storage, is_data_uri
from utils.auth import authenticate, current_user_id, require_admin
from utils.errors import UpstreamFailure, ValidationError
from utils.pagination import paginate
from utils.request_validation import parse_bool, parse_json_request, parse_whole_number

products_bp = Blueprint("products", __name__)

MAX_NAME_LENGTH = 200
MAX_CATEGORY_LENGTH = 120
MAX_IMAGE_URL_LENGTH = 512
MAX_PRICE = Decimal("99999999.99")
IMAGE_URL_PREFIXES = ("http://", "https://", "/uploads/")


def _get_product_or_404(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFound("Product not found")
    return product


def _validate_product_payload(data: dict, partial: bool = False):
    errors = []
    cleaned = {}

    if "name" in data or not partial:
        name = str(data.get("name") or "").strip()
        if len(name) < 2:
            errors.append("Product name is required and must be at least 2 characters")
        elif len(name) > MAX_NAME_LENGTH:
            errors.append(f"Product name must be at most {MAX_NAME_LENGTH} characters")
        else:
            cleaned["name"] = name

    if "price" in data or not partial:
        try:
            price = Decimal(str(data.get("price")))
            if not price.is_finite() or price < 0 or price > MAX_PRICE:
                raise InvalidOperation
        except (InvalidOperation, TypeError, ValueError):
            errors.append("Valid price is required and must be positive")
        else:
            cleaned["price"] = price

    if "stock" in data or not partial:
        stock = parse_whole_number(data.get("stock", 0 if not partial else None))
        if stock is None or stock < 0:
            errors.append("Valid stock is required and must be positive")
        else:
            cleaned["stock"] = stock

    if "description" in data:
        cleaned["description"] = str(data.get("description") or "").strip() or None

    if "category" in data:
        category = str(data.get("category") or "").strip()
        if len(category) > MAX_CATEGORY_LENGTH:
            errors.append(f"Category must be at most {MAX_CATEGORY_LENGTH} characters")
        else:
            cleaned["category"] = category or None

    if "isActive" in data:
        parsed = parse_bool(data.get("isActive"))
        if parsed is None:
            errors.append("isActive must be boolean")
        else:
            cleaned["is_active"] = parsed

    if "image" in data:
        image = data.get("image")
        if image in (None, ""):
            cleaned["image"] = None
        elif not isinstance(image, str):
            errors.append("image must be a URL or an image data URI")
        elif is_data_uri(image):
            cleaned["image"] = image
        elif len(image) > MAX_IMAGE_URL_LENGTH or not image.startswith(IMAGE_URL_PREFIXES):
            errors.append("image must be a URL or an image data URI")
        else:
            cleaned["image"] = image

    return errors, cleaned


def _upload_if_needed(fields: dict) -> None:
    """Replace an inline data URI image with the URL returned by the image host."""

    image = fields.get("image")
    if not is_data_uri(image):
        return
    try:
        fields["image"] = get_image_storage().save_data_uri(image, "products")
    except StorageError as exc:
        current_app.logger.warning("Product image upload failed: %s", exc)
        raise UpstreamFailure(str(exc))


@products_bp.route("", methods=["GET"])
@authenticate
def list_products():
    """Return active products, newest first."""

    query = Product.query.filter_by(is_active=True).order_by(
        Product.created_at.desc(), Product.id.desc()
    )
    return jsonify(paginate(query, Product.to_dict))


@products_bp.route("/<int:product_id>", methods=["GET"])
@authenticate
def get_product(product_id: int):
    return jsonify({"product": _get_product_or_404(product_id).to_dict()})


@products_bp.route("", methods=["POST"])
@require_admin
def create_product():
    data = parse_json_request(request)
    errors, fields = _validate_product_payload(data)
    if errors:
        raise ValidationError("Validation failed", details=errors)

    _upload_if_needed(fields)
    product = Product(**fields)
    db.session.add(product)
    db.session.commit()

    current_app.logger.info("Admin %s created product %s", current_user_id(), product.id)
    return jsonify({"product": product.to_dict()}), 201


@products_bp.route("/<int:product_id>", methods=["PUT"])
@require_admin
def update_product(product_id: int):
    product = _get_product_or_404(product_id)
    data = parse_json_request(request)
    errors, fields = _validate_product_payload(data, partial=True)
    if errors:
        raise ValidationError("Validation failed", details=errors)

    _upload_if_needed(fields)
    for attribute, value in fields.items():
        setattr(product, attribute, value)
    db.session.commit()

    current_app.logger.info("Admin %s updated product %s", current_user_id(), product.id)
    return jsonify({"product": product.to_dict()})


@products_bp.route("/<int:product_id>", methods=["DELETE"])
@require_admin
def delete_product(product_id: int):
    product = _get_product_or_404(product_id)
    db.session.delete(product)
    db.session.commit()

    current_app.logger.info("Admin %s deleted product %s", current_user_id(), product_id)
    return jsonify({"message": "Product deleted successfully"})
