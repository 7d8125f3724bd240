"""
Shared module - Base model and mixins used by every entity.
"""

from schoolhub.modules.shared.models import BaseModel, SoftDeleteMixin

__all__ = ["BaseModel", "SoftDeleteMixin"]
