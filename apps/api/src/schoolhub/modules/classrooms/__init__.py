"""
Classrooms module - Classrooms within a school.
"""

from schoolhub.modules.classrooms.models import Classroom
from schoolhub.modules.classrooms.repository import ClassroomRepository

__all__ = ["Classroom", "ClassroomRepository"]
