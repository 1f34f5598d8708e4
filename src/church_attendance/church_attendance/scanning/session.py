from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Protocol, Tuple

from ..core.enums import RegistrationOutcome, RegistrationSource, ResolutionKind, Role, ScanStatus
from ..core.exceptions import DomainError
from ..identity.service import IdentityResolver, Resolution
from ..registrations.model import Registration
from ..registrations.service import RegistrationLedger

logger = logging.getLogger(__name__)


class CameraStream(Protocol):
    def stop(self) -> None:
        ...


@dataclass
class OperatorContext:
    """Who is operating the scanner, for which church, and the open camera."""

    operator_id: str
    church_id: str
    role: Role = Role.OPERATOR
    operator_email: Optional[str] = None
    camera: Optional[CameraStream] = None

    @property
    def can_manage(self) -> bool:
        return self.role.can_manage

    def refresh_from(self, other: "OperatorContext") -> None:
        """Take the session fields of a newer request; the camera stays."""
        self.church_id = other.church_id
        self.role = other.role
        self.operator_email = other.operator_email


@dataclass(frozen=True)
class ScanOutcome:
    status: ScanStatus
    message: str
    registration: Optional[Registration] = None
    resolution: Optional[Resolution] = None
    redirect_query: Optional[str] = None
    offer_child_check_in: bool = False

    @property
    def success(self) -> bool:
        return self.status in (ScanStatus.REGISTERED, ScanStatus.ALREADY_REGISTERED, ScanStatus.REDIRECT)


class ScanLoop:
    """One scanner per operator session.

    A decode flips the busy guard, is fully processed (resolve -> register ->
    offer child check-in) and releases the guard; overlapping decodes are
    ignored. The guard is always released and, for camera scans, the camera is
    always stopped, whatever the outcome.
    """

    def __init__(
        self,
        resolver: IdentityResolver,
        ledger: RegistrationLedger,
        *,
        context: OperatorContext,
        event_id: str,
    ):
        self._resolver = resolver
        self._ledger = ledger
        self._context = context
        self._event_id = event_id
        self._state_lock = threading.Lock()
        self._busy = False

    @property
    def busy(self) -> bool:
        with self._state_lock:
            return self._busy

    @property
    def context(self) -> OperatorContext:
        return self._context

    def attach_camera(self, camera: CameraStream) -> None:
        self._stop_camera()
        self._context.camera = camera

    def handle_decode(self, text: str) -> ScanOutcome:
        if not self._try_acquire():
            return ScanOutcome(ScanStatus.IGNORED, "A scan is already being processed")
        try:
            return self._process(text, RegistrationSource.QR_SCAN)
        finally:
            self._stop_camera()
            self._release()

    def submit_manual(self, text: str) -> ScanOutcome:
        if not self._try_acquire():
            return ScanOutcome(ScanStatus.IGNORED, "A scan is already being processed")
        try:
            outcome = self._process(text, RegistrationSource.MANUAL_CHECKIN)
            if outcome.success:
                self._stop_camera()
            return outcome
        finally:
            self._release()

    def abort(self) -> None:
        self._stop_camera()
        self._release()

    def _process(self, text: str, source: RegistrationSource) -> ScanOutcome:
        try:
            resolution = self._resolver.resolve(text, church_id=self._context.church_id)
            if resolution.kind != ResolutionKind.RESOLVED:
                return ScanOutcome(
                    ScanStatus.REDIRECT,
                    "No member found; continue with member signup",
                    resolution=resolution,
                    redirect_query=resolution.signup_query(self._event_id),
                )

            result = self._ledger.register(
                self._event_id,
                resolution.person_id,
                source,
                church_id=self._context.church_id,
                person=resolution.person,
            )
        except DomainError as e:
            logger.info("Scan for event %s rejected: %s", self._event_id, e)
            return ScanOutcome(ScanStatus.ERROR, str(e))
        except Exception:
            logger.exception("Error recording attendance for event %s", self._event_id)
            return ScanOutcome(ScanStatus.ERROR, "Error recording attendance")

        name = result.registration.full_name or result.registration.person_id
        if result.outcome == RegistrationOutcome.ALREADY_EXISTS:
            return ScanOutcome(
                ScanStatus.ALREADY_REGISTERED,
                f"{name} is already registered",
                registration=result.registration,
                resolution=resolution,
                offer_child_check_in=True,
            )
        return ScanOutcome(
            ScanStatus.REGISTERED,
            f"{name} registered for event!",
            registration=result.registration,
            resolution=resolution,
            offer_child_check_in=True,
        )

    def _try_acquire(self) -> bool:
        with self._state_lock:
            if self._busy:
                return False
            self._busy = True
            return True

    def _release(self) -> None:
        with self._state_lock:
            self._busy = False

    def _stop_camera(self) -> None:
        camera, self._context.camera = self._context.camera, None
        if camera is None:
            return
        try:
            camera.stop()
        except Exception:
            logger.exception("Error stopping camera stream for operator %s", self._context.operator_id)


@dataclass
class ScanLoopRegistry:
    """Keeps one ScanLoop per (operator, event) across requests."""

    factory: Callable[[OperatorContext, str], ScanLoop]
    _loops: Dict[Tuple[str, str], ScanLoop] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def get(self, context: OperatorContext, event_id: str) -> ScanLoop:
        key = (context.operator_id, event_id)
        with self._lock:
            loop = self._loops.get(key)
            if loop is None:
                loop = self.factory(context, event_id)
                self._loops[key] = loop
            else:
                loop.context.refresh_from(context)
            return loop

    def close(self, operator_id: str, event_id: str) -> bool:
        with self._lock:
            loop = self._loops.pop((operator_id, event_id), None)
        if loop is None:
            return False
        loop.abort()
        return True
