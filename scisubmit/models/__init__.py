"""
SciSubmit Review Core
SQLAlchemy database handle shared by every model module.

Usage:
    from scisubmit.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
