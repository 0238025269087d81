"""
Activity Tracker — SQLAlchemy models.

The shared ``db`` instance lives here so models, services and the app
factory all import the same extension object.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
