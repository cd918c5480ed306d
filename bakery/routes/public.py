# bakery/routes/public.py
"""
Unauthenticated surface: health check, public catalog, marketing pages.
"""
import time

from flask import Blueprint, current_app, render_template, request
from sqlalchemy import text

from ..extensions import db
from ..services import product_service
from ..time_utils import to_utc_z, utcnow

public_bp = Blueprint("public", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        return {"status": "healthy", "latency_ms": round((time.time() - start_time) * 1000, 2)}
    except Exception:
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "error": "Database connection failed",
        }


@public_bp.get("/api/health")
def health():
    """
    Returns:
    - 200: database reachable
    - 503: database unreachable
    """
    database = check_database_health()
    healthy = database["status"] == "healthy"
    return {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database},
    }, (200 if healthy else 503)


@public_bp.get("/api/public/products")
def public_products():
    """Active products with display prices. Query params: category, search."""
    products = product_service.list_public_products(
        category=request.args.get("category"),
        search=request.args.get("search"),
    )
    return {"products": [p.to_public_dict() for p in products]}


@public_bp.get("/")
def home_page():
    return render_template("home.html")


@public_bp.get("/about")
def about_page():
    return render_template("about.html")


@public_bp.get("/menu")
def menu_page():
    products = product_service.list_public_products()
    return render_template("menu.html", products=[p.to_public_dict() for p in products])
