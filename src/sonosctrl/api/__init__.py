"""UPnP/SOAP clients for speaker services."""

from sonosctrl.api.catalog import CatalogBridge, CatalogItem, MusicServiceBridge
from sonosctrl.api.description import DeviceDescriptionResolver
from sonosctrl.api.events import EventPath, EventSubscriptionService, SubscriptionError
from sonosctrl.api.library import MusicLibraryService
from sonosctrl.api.rendering import RenderingService
from sonosctrl.api.soap import (
    Service,
    SoapClient,
    SoapConnectionError,
    SoapError,
    SoapHTTPError,
    SoapNoDataError,
)
from sonosctrl.api.transport import TransportService
from sonosctrl.api.zone import ZoneService, parse_groups

__all__ = [
    "CatalogBridge",
    "CatalogItem",
    "DeviceDescriptionResolver",
    "EventPath",
    "EventSubscriptionService",
    "MusicLibraryService",
    "MusicServiceBridge",
    "RenderingService",
    "Service",
    "SoapClient",
    "SoapConnectionError",
    "SoapError",
    "SoapHTTPError",
    "SoapNoDataError",
    "SubscriptionError",
    "TransportService",
    "ZoneService",
    "parse_groups",
]
