"""Two-phase pairing handshake between the hub and a driver."""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from uuid import UUID

from berryhub.core.driver_calls import call_driver
from berryhub.core.errors import DriverFailureError, NotFoundError, PairingExpiredError
from berryhub.core.model import PairedDevice, PairingSession
from berryhub.core.registry import DriverRegistry, coerce_uuid
from berryhub.core.storage import PairedDeviceRepository
from berryhub.driver.base import DriverDescriptor

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class _PendingSession:
    session: PairingSession
    started_at: float


class PairingCoordinator:
    """Drives start/finalize against a driver and persists successful pairings.

    Sessions returned by `start_pairing` are remembered until they are
    finalized, whatever the outcome. The driver remains the authority on
    whether a session id is valid: ids this coordinator never issued are
    still forwarded. When `session_ttl_s` is set, finalizing a remembered
    session older than the TTL raises `PairingExpiredError`.
    """

    def __init__(
        self,
        registry: DriverRegistry,
        repository: PairedDeviceRepository,
        *,
        timeout_s: float | None = None,
        session_ttl_s: float | None = None,
        max_pending_sessions: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._registry = registry
        self._repository = repository
        self._timeout_s = timeout_s
        self._session_ttl_s = session_ttl_s
        self._max_pending = max_pending_sessions
        self._clock = clock
        self._lock = threading.Lock()
        self._pending: OrderedDict[UUID, _PendingSession] = OrderedDict()

    def _require_driver(self, driver_id: UUID | str) -> tuple[UUID, DriverDescriptor]:
        key = coerce_uuid(driver_id)
        driver = self._registry.get_driver(key) if key is not None else None
        if key is None or driver is None:
            raise NotFoundError(f"Driver '{driver_id}' not found")
        return key, driver

    def pending_sessions(self) -> list[PairingSession]:
        with self._lock:
            return [entry.session for entry in self._pending.values()]

    def _remember(self, session: PairingSession) -> None:
        with self._lock:
            self._pending[session.pairing_request_id] = _PendingSession(session, self._clock())
            while len(self._pending) > self._max_pending:
                evicted, _ = self._pending.popitem(last=False)
                LOGGER.warning("Dropping oldest pending pairing session %s", evicted)

    def _forget(self, pairing_request_id: UUID) -> _PendingSession | None:
        with self._lock:
            return self._pending.pop(pairing_request_id, None)

    def start_pairing(
        self,
        driver_id: UUID | str,
        device_id: str,
        remote_name: str,
        *,
        timeout_s: float | None = None,
    ) -> PairingSession:
        key, driver = self._require_driver(driver_id)
        device_info = self._registry.get_device_info(driver, device_id)
        if device_info is None:
            raise NotFoundError(f"Device '{device_id}' not found for driver '{driver_id}'")

        result = call_driver(
            "start_pairing",
            lambda: driver.start_pairing(device_info, remote_name),
            driver_id=key,
            device_id=device_id,
            timeout_s=timeout_s if timeout_s is not None else self._timeout_s,
        )
        try:
            pairing_request_id = UUID(str(result.pairing_request_id))
        except (AttributeError, ValueError) as exc:
            LOGGER.error(
                "Driver %s returned an invalid pairing request for device %s: %r",
                driver_id,
                device_id,
                result,
            )
            raise DriverFailureError("Driver returned an invalid pairing request") from exc

        session = PairingSession(
            pairing_request_id=pairing_request_id,
            driver_id=key,
            device_id=device_id,
            device_provides_pin=bool(result.device_provides_pin),
        )
        self._remember(session)
        LOGGER.info(
            "Started pairing %s with device %s via driver %s",
            session.pairing_request_id,
            device_id,
            driver.display_name,
        )
        return session

    def finalize_pairing(
        self,
        driver_id: UUID | str,
        device_id: str,
        pairing_request_id: UUID | str,
        pin: str | None,
        device_provides_pin: bool,
        *,
        timeout_s: float | None = None,
    ) -> bool:
        """Finish a pairing and persist the device when the driver reports success.

        Returns the driver's verdict; nothing is persisted when it is False
        or when the driver fails.
        """
        key, driver = self._require_driver(driver_id)

        pending = None
        request_uuid = coerce_uuid(pairing_request_id)
        if request_uuid is not None:
            pending = self._forget(request_uuid)
        if pending is not None and self._expired(pending):
            LOGGER.warning("Pairing session %s expired before finalize", pairing_request_id)
            raise PairingExpiredError(f"Pairing session '{pairing_request_id}' has expired")

        paired = call_driver(
            "finalize_pairing",
            lambda: driver.finalize_pairing(str(pairing_request_id), pin, device_provides_pin),
            driver_id=key,
            device_id=device_id,
            timeout_s=timeout_s if timeout_s is not None else self._timeout_s,
        )
        if not paired:
            LOGGER.info(
                "Driver %s rejected pairing %s for device %s",
                driver.display_name,
                pairing_request_id,
                device_id,
            )
            return False

        paired_device = PairedDevice(
            id=uuid.uuid4(),
            driver_id=str(key),
            device_id=device_id,
            device_name=self._paired_name(driver, device_id),
        )
        self._warn_if_duplicate(paired_device)
        self._repository.save(paired_device)
        LOGGER.info("Paired device %s as %s (%s)", device_id, paired_device.id, paired_device.device_name)
        return True

    def _expired(self, pending: _PendingSession) -> bool:
        if self._session_ttl_s is None:
            return False
        return self._clock() - pending.started_at > self._session_ttl_s

    def _paired_name(self, driver: DriverDescriptor, device_id: str) -> str:
        device_info = self._registry.get_device_info(driver, device_id)
        if device_info is None:
            LOGGER.warning(
                "Device %s vanished from driver %s after pairing, naming it by id",
                device_id,
                driver.display_name,
            )
            device_name = device_id
        else:
            device_name = device_info.name
        return f"{device_name} ({driver.display_name})"

    def _warn_if_duplicate(self, device: PairedDevice) -> None:
        for existing in self._repository.find_all():
            if existing.driver_id == device.driver_id and existing.device_id == device.device_id:
                LOGGER.warning(
                    "Device %s of driver %s is already paired as %s; adding pairing %s",
                    device.device_id,
                    device.driver_id,
                    existing.id,
                    device.id,
                )
                return

