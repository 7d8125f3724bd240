"""
Counters module - Atomic sequence numbers for human-readable identifiers.
"""

from schoolhub.modules.counters.helpers import format_identifier
from schoolhub.modules.counters.models import SequenceCounter
from schoolhub.modules.counters.repository import next_sequence

__all__ = ["SequenceCounter", "format_identifier", "next_sequence"]
