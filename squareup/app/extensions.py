"""
extensions.py — Unbound extension objects, attached in create_app().

Models import `db` from here, and create_app() calls db.init_app(app) and
ma.init_app(app), so nothing in app/ needs an application at import time.

Request schemas in app/schemas/ subclass marshmallow.Schema rather than
ma.Schema: the unit tests load them with no application context.
"""

from flask_marshmallow import Marshmallow
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
ma = Marshmallow()
