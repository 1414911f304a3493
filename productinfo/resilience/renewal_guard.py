"""
Per-vendor renewal state tracking.
Guarantees at most one refresh in flight per vendor and records refresh outcomes.
"""
from enum import Enum
from datetime import datetime
import logging
import threading
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class RenewalState(Enum):
    """Renewal states of a vendor."""
    IDLE = "idle"  # Waiting for the next cycle
    REFRESHING = "refreshing"  # A refresh is in flight
    FAILED = "failed"  # The last refresh failed, transient until reset to IDLE


class RenewalGuard:
    """
    Renewal state machine of a single vendor.

    State machine:
    - IDLE: No refresh in flight
    - REFRESHING: Exactly one refresh in flight, further begin() calls are refused
    - FAILED: The refresh failed; the guard passes through it back to IDLE

    Transitions:
    - IDLE -> REFRESHING: begin()
    - REFRESHING -> IDLE: succeed()
    - REFRESHING -> FAILED -> IDLE: fail()
    """

    def __init__(self, vendor: str):
        """
        Initialize renewal guard.

        Args:
            vendor: Name of the vendor (e.g., "azure", "ec2")
        """
        self.vendor = vendor
        self._lock = threading.Lock()

        # State tracking
        self.state = RenewalState.IDLE
        self.consecutive_failures = 0
        self.last_success_at: Optional[datetime] = None
        self.last_failure_at: Optional[datetime] = None
        self.last_error: Optional[str] = None

    def begin(self) -> bool:
        """
        Try to start a refresh.

        Returns:
            True if the caller owns the refresh, False if one is already in flight
        """
        with self._lock:
            if self.state == RenewalState.REFRESHING:
                return False
            self.state = RenewalState.REFRESHING
            return True

    def succeed(self) -> None:
        """Record a successful refresh and return to IDLE."""
        with self._lock:
            self.state = RenewalState.IDLE
            self.consecutive_failures = 0
            self.last_success_at = datetime.utcnow()
            self.last_error = None

    def fail(self, error: BaseException) -> None:
        """Record a failed refresh and return to IDLE."""
        with self._lock:
            self.state = RenewalState.FAILED
            self.consecutive_failures += 1
            self.last_failure_at = datetime.utcnow()
            self.last_error = str(error) or type(error).__name__
            logger.warning(
                f"Renewal of {self.vendor}: REFRESHING -> FAILED "
                f"({self.consecutive_failures} consecutive failures): {self.last_error}"
            )
            self.state = RenewalState.IDLE

    def abandon(self) -> None:
        """Release an in-flight refresh without recording an outcome (e.g., on shutdown)."""
        with self._lock:
            self.state = RenewalState.IDLE

    def current_state(self) -> RenewalState:
        """
        Get current renewal state.

        Returns:
            Current RenewalState
        """
        return self.state

    def status(self) -> Dict[str, Any]:
        """Snapshot of the guard for status reporting."""
        with self._lock:
            return {
                "vendor": self.vendor,
                "state": self.state.value,
                "consecutive_failures": self.consecutive_failures,
                "last_success_at": self.last_success_at.isoformat() if self.last_success_at else None,
                "last_failure_at": self.last_failure_at.isoformat() if self.last_failure_at else None,
                "last_error": self.last_error,
            }
