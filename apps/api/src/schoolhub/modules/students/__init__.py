"""
Students module - Student records and student numbers.
"""

from schoolhub.modules.students.models import Student
from schoolhub.modules.students.repository import StudentRepository

__all__ = ["Student", "StudentRepository"]
