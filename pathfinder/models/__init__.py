"""
HR Path-Finder
Database models package.

``db`` is the shared Flask-SQLAlchemy handle; every model module imports it
from here and ``create_app`` binds it to the application.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
