from .counters.models import LocationCounter
from .counters.models import StatusCounter
from .counters.models import VolumeCounter

__all__ = [
    "LocationCounter",
    "StatusCounter",
    "VolumeCounter",
]
