"""
Alarm offset conversion.

Users give alarms in minutes relative to the event start ("30" means half an
hour before). EventKit stores relative offsets in seconds with the opposite
sign, so 30 becomes -1800.
"""

import logging
import math
from typing import List, Optional

logger = logging.getLogger(__name__)


def parse_alarm_offsets(tokens: Optional[str]) -> Optional[List[float]]:
    """
    Convert a comma-separated list of minutes to EventKit relative offsets.

    Args:
        tokens: e.g. "30,-15", or None when the option was not given

    Returns:
        None when tokens is None (leave alarms alone), otherwise the list of
        offsets in seconds; an explicitly empty string yields [] (no alarms)
    """
    if tokens is None:
        return None

    offsets = []
    for token in tokens.split(","):
        token = token.strip()
        if not token:
            continue
        try:
            minutes = float(token)
        except ValueError:
            logger.debug(f"Dropping non-numeric alarm '{token}'")
            continue
        if not math.isfinite(minutes):
            logger.debug(f"Dropping non-finite alarm '{token}'")
            continue
        offsets.append(minutes * -60)

    return offsets
