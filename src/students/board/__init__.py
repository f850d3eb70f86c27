"""Blueprint registration for the student admin routes."""

# pylint: disable=wrong-import-position,cyclic-import

from flask import Blueprint

bp = Blueprint("students", __name__, url_prefix="/students")

# Import routes after blueprint creation to avoid circular imports.
from students.board import routes
