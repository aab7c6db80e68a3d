"""
Base SQLAlchemy model class.

This module defines the base class for all SQLAlchemy models in the application.
"""

from sqlalchemy.orm import declarative_base

Base = declarative_base()
