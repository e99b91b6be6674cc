# datefunnel/models/__init__.py
from datefunnel.models.base import Base  # noqa: F401

from datefunnel.models.trip import Trip, TripTraveler  # noqa: F401
from datefunnel.models.availability import AvailabilityEntry  # noqa: F401
from datefunnel.models.date_window import DateWindow, DateWindowPreference  # noqa: F401
from datefunnel.models.date_reaction import DateProposalReaction  # noqa: F401
