"""Service clients for the upstream availability provider."""

from .availability_client import AvailabilityClient, AvailabilityGateway, AvailabilityPayload

__all__ = [
    "AvailabilityClient",
    "AvailabilityGateway",
    "AvailabilityPayload",
]
