"""
Blocking access gate over the two EventKit grant channels.

Calendar access is requested first and awaited, then reminders access. Both
outcomes are observed before any policy is applied:

- a channel that reports an error fails the gate with that error
- a gate where neither channel granted fails as "both denied"
- a single granted channel is enough; commands that only touch the other
  entity type will fail later at the store instead of here
"""

import logging
from typing import Callable, Optional, Tuple

from eventkit_gateway.core.errors import PermissionDeniedError
from eventkit_gateway.core.models import AccessResult
from eventkit_gateway.core.store import GrantCompletion
from eventkit_gateway.eventkit.bridge import CallbackSlot

logger = logging.getLogger(__name__)

DEFAULT_ACCESS_TIMEOUT = 120.0  # seconds

GrantRequest = Callable[[GrantCompletion], None]


class AccessGate:
    """Synchronous adapter over asynchronous calendar/reminders grant requests"""

    def __init__(
        self,
        request_calendar: GrantRequest,
        request_reminders: GrantRequest,
        timeout: Optional[float] = DEFAULT_ACCESS_TIMEOUT,
        pump: Optional[Callable[[float], None]] = None
    ):
        """
        Args:
            request_calendar: Starts the calendar grant; calls completion(granted, error)
            request_reminders: Starts the reminders grant; calls completion(granted, error)
            timeout: Ceiling per channel in seconds
            pump: Optional run-loop servicer used while waiting
        """
        self.request_calendar = request_calendar
        self.request_reminders = request_reminders
        self.timeout = timeout
        self.pump = pump

    def _await_channel(self, name: str, request: GrantRequest) -> Tuple[bool, Optional[str]]:
        slot = CallbackSlot()
        request(slot.resolve)

        if not slot.wait(self.timeout, self.pump):
            logger.error(f"{name} access request timed out after {self.timeout}s")
            raise PermissionDeniedError(
                PermissionDeniedError.TIMEOUT,
                f"{name} access request timed out after {self.timeout:g} seconds. "
                "Respond to the system permission prompt and try again."
            )

        granted, error = slot.values
        logger.debug(f"{name} access: granted={bool(granted)} error={error}")
        return bool(granted), error

    def request_access(self) -> AccessResult:
        """
        Request calendar and reminders access, blocking until both resolve.

        Returns:
            AccessResult with the per-channel grants

        Raises:
            PermissionDeniedError: On a channel error, a timeout, or when both are denied
        """
        calendar_granted, calendar_error = self._await_channel("Calendar", self.request_calendar)
        reminders_granted, reminders_error = self._await_channel("Reminders", self.request_reminders)

        result = AccessResult(
            calendar_granted=calendar_granted,
            reminders_granted=reminders_granted,
            calendar_error=calendar_error,
            reminders_error=reminders_error,
        )

        if calendar_error:
            raise PermissionDeniedError(
                PermissionDeniedError.CHANNEL_FAILURE,
                f"Calendar access error: {calendar_error}"
            )
        if reminders_error:
            raise PermissionDeniedError(
                PermissionDeniedError.CHANNEL_FAILURE,
                f"Reminders access error: {reminders_error}"
            )
        if not calendar_granted and not reminders_granted:
            raise PermissionDeniedError(
                PermissionDeniedError.BOTH_DENIED,
                "Permission denied for both Calendar and Reminders. "
                "Please grant access in System Settings > Privacy & Security."
            )

        if not (calendar_granted and reminders_granted):
            logger.info(
                f"Partial access: calendar={calendar_granted} reminders={reminders_granted}"
            )
        return result
