"""
Schools module - School tenant management.
"""

from schoolhub.modules.schools.models import School
from schoolhub.modules.schools.repository import SchoolRepository

__all__ = ["School", "SchoolRepository"]
