from LifeMap.timeline.lifecycle import DraftDefaults, ExperienceLifecycle, InvalidDraftError
from LifeMap.timeline.organizer import TimelineOrganizer, year_range

__all__ = [
    "DraftDefaults",
    "ExperienceLifecycle",
    "InvalidDraftError",
    "TimelineOrganizer",
    "year_range",
]
