"""
Transfer requests module - Moving students between schools.
"""

from schoolhub.modules.transfer_requests.models import TransferRequest, TransferStatus
from schoolhub.modules.transfer_requests.service import TransferService

__all__ = ["TransferRequest", "TransferService", "TransferStatus"]
