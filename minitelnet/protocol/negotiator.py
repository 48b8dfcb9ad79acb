"""
Telnet option negotiation policy.

Only NAWS is accepted: DO/DONT NAWS is answered with WILL NAWS plus the
window size. Every other DO/DONT gets WONT, every WILL/WONT gets DONT.
"""

import logging
from collections import deque
from typing import Deque, Tuple

from ..utils.logging_utils import log_negotiation_event
from .decoder import Negotiate, NegotiationKind
from .utils import (
    DEFAULT_WINDOW_SIZE,
    DONT,
    TELOPT_NAWS,
    WONT,
    format_bytes,
    iac_command,
    naws_acceptance,
    option_name,
)

logger = logging.getLogger(__name__)

# Answered requests kept for inspection; older entries are dropped
HISTORY_SIZE = 32


class Negotiator:
    """
    Builds replies to option negotiation requests from the remote.

    The negotiator is stateless towards the wire; it keeps a history of the
    most recent requests it answered for inspection.
    """

    def __init__(self, window_size: Tuple[int, int] = DEFAULT_WINDOW_SIZE) -> None:
        self.window_size = window_size
        self._naws_reply = naws_acceptance(window_size)
        self.history: Deque[Tuple[Negotiate, bytes]] = deque(maxlen=HISTORY_SIZE)

    def reply_for(self, request: Negotiate) -> bytes:
        """
        Return the bytes to send in answer to ``request``.

        Args:
            request: Negotiation item received from the remote.

        Returns:
            Reply bytes, never empty.
        """
        if request.kind in (NegotiationKind.DO, NegotiationKind.DONT):
            if request.option == TELOPT_NAWS:
                reply = self._naws_reply
                columns, rows = self.window_size
                log_negotiation_event(
                    logger, "Accepting NAWS", f"{columns}x{rows}"
                )
            else:
                reply = iac_command(WONT, request.option)
                log_negotiation_event(
                    logger, "Refusing", f"WONT {option_name(request.option)}"
                )
        else:
            reply = iac_command(DONT, request.option)
            log_negotiation_event(
                logger, "Refusing", f"DONT {option_name(request.option)}"
            )
        logger.debug(f"[TELNET] Reply to {request}: {format_bytes(reply)}")
        self.history.append((request, reply))
        return reply
