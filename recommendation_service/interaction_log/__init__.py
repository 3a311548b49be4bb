"""
Interaction Log Subsystem

Append-only store of user interactions that feeds feature extraction.
"""

from .interaction_log import InteractionLog
from .interaction_types import InteractionType
from .models import Interaction, InteractionPayload

__all__ = ['InteractionLog', 'InteractionType', 'Interaction', 'InteractionPayload']
