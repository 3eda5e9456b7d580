"""User profiles and online provider-weight learning.

Weights follow a bounded exponential moving average:

    new_weight = clamp(old_weight * (1 - lr) + signal * lr, 0, 1)

where ``signal`` is 1.0 for an accepted suggestion and 0.0 otherwise.
"""

from .models import ProviderFeedback, UserProfile
from .store import ProfileStore

__all__ = [
    "ProviderFeedback",
    "UserProfile",
    "ProfileStore",
]
