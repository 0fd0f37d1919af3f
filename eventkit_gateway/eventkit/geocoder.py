"""
Bounded address-to-coordinate resolution.

Geocoding is best effort: whatever happens, the caller gets a LocationRef.
A resolved reference carries the coordinate and a zero radius; an
unresolved one carries only the address text.
"""

import logging
from typing import Callable, Optional

from eventkit_gateway.core.models import LocationRef
from eventkit_gateway.core.store import GeocodeCompletion
from eventkit_gateway.eventkit.bridge import CallbackSlot

logger = logging.getLogger(__name__)

# Adding an event waits longer than updating one.
ADD_GEOCODE_TIMEOUT = 5.0
UPDATE_GEOCODE_TIMEOUT = 2.0

GeocodeRequest = Callable[[str, GeocodeCompletion], None]


class LocationResolver:
    """Synchronous adapter over an asynchronous geocoder"""

    def __init__(self, geocode: GeocodeRequest, pump: Optional[Callable[[float], None]] = None):
        """
        Args:
            geocode: Starts a lookup; calls completion(latitude, longitude, error)
            pump: Optional run-loop servicer; CLGeocoder delivers on the main run loop
        """
        self.geocode = geocode
        self.pump = pump

    def resolve(self, address: str, timeout: float = ADD_GEOCODE_TIMEOUT) -> LocationRef:
        """
        Resolve an address, never raising.

        Args:
            address: Free-form address text
            timeout: Ceiling in seconds

        Returns:
            LocationRef, with coordinate when the lookup succeeded in time
        """
        unresolved = LocationRef(title=address)
        slot = CallbackSlot()

        try:
            self.geocode(address, slot.resolve)
            finished = slot.wait(timeout, self.pump)
        except Exception as e:
            logger.warning(f"Geocoding '{address}' failed: {e}")
            return unresolved

        if not finished:
            logger.info(f"Geocoding '{address}' timed out after {timeout}s, keeping title only")
            return unresolved

        latitude, longitude, error = slot.values
        if error or latitude is None or longitude is None:
            logger.info(f"Geocoding '{address}' found nothing: {error}")
            return unresolved

        logger.debug(f"Geocoded '{address}' to {latitude},{longitude}")
        return LocationRef(title=address, latitude=float(latitude), longitude=float(longitude), radius=0.0)
