from __future__ import annotations

import uuid
from uuid import UUID

import pytest

from berryhub.core.errors import (
    DriverFailureError,
    DriverTimeoutError,
    InvalidRequestError,
    NotFoundError,
    PairingExpiredError,
)
from berryhub.core.pairing import PairingCoordinator

UNKNOWN_DRIVER = UUID("4a3f2c1e-0000-4000-8000-000000000000")


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def coordinator(registry, repository) -> PairingCoordinator:
    return PairingCoordinator(registry, repository)


def test_start_then_finalize_persists_one_paired_device(coordinator, repository, descriptor) -> None:
    session = coordinator.start_pairing(descriptor.driver_id, "tv-1", "Hub")
    assert session.device_provides_pin is True
    assert session.driver_id == descriptor.driver_id

    paired = coordinator.finalize_pairing(
        descriptor.driver_id, "tv-1", session.pairing_request_id, "1234", session.device_provides_pin
    )

    assert paired is True
    rows = repository.find_all()
    assert len(rows) == 1
    assert rows[0].device_name == "Living Room TV (Fake TV)"
    assert rows[0].driver_id == str(descriptor.driver_id)
    assert rows[0].device_id == "tv-1"


def test_wrong_pin_does_not_persist(coordinator, repository, descriptor) -> None:
    session = coordinator.start_pairing(descriptor.driver_id, "tv-1", "Hub")

    paired = coordinator.finalize_pairing(descriptor.driver_id, "tv-1", session.pairing_request_id, "0000", True)

    assert paired is False
    assert repository.find_all() == []


def test_start_with_unknown_driver_or_device(coordinator, descriptor) -> None:
    with pytest.raises(NotFoundError):
        coordinator.start_pairing(UNKNOWN_DRIVER, "tv-1", "Hub")
    with pytest.raises(NotFoundError):
        coordinator.start_pairing(descriptor.driver_id, "tv-9", "Hub")


def test_finalize_with_unknown_driver(coordinator) -> None:
    with pytest.raises(NotFoundError):
        coordinator.finalize_pairing(UNKNOWN_DRIVER, "tv-1", uuid.uuid4(), "1234", True)


def test_start_failure_is_reported_as_driver_failure(coordinator, descriptor) -> None:
    descriptor.fail_start = True
    with pytest.raises(DriverFailureError) as exc:
        coordinator.start_pairing(descriptor.driver_id, "tv-1", "Hub")
    assert "refused" not in str(exc.value)
    assert coordinator.pending_sessions() == []


def test_finalize_failure_persists_nothing(coordinator, repository, descriptor) -> None:
    session = coordinator.start_pairing(descriptor.driver_id, "tv-1", "Hub")
    descriptor.fail_finalize = True

    with pytest.raises(DriverFailureError):
        coordinator.finalize_pairing(descriptor.driver_id, "tv-1", session.pairing_request_id, "1234", True)

    assert repository.find_all() == []
    assert coordinator.pending_sessions() == []


def test_invalid_pairing_request_id_from_driver(coordinator, descriptor, monkeypatch) -> None:
    from berryhub.driver.base import StartPairingResult

    monkeypatch.setattr(
        descriptor,
        "start_pairing",
        lambda info, name: StartPairingResult(pairing_request_id="abc", device_provides_pin=False),
    )
    with pytest.raises(DriverFailureError):
        coordinator.start_pairing(descriptor.driver_id, "tv-1", "Hub")


def test_start_pairing_timeout(registry, repository, descriptor) -> None:
    descriptor.start_delay_s = 0.5
    coordinator = PairingCoordinator(registry, repository, timeout_s=0.05)

    with pytest.raises(DriverTimeoutError):
        coordinator.start_pairing(descriptor.driver_id, "tv-1", "Hub")


def test_finalize_removes_pending_session_on_success_and_failure(coordinator, descriptor) -> None:
    first = coordinator.start_pairing(descriptor.driver_id, "tv-1", "Hub")
    second = coordinator.start_pairing(descriptor.driver_id, "tv-2", "Hub")
    assert len(coordinator.pending_sessions()) == 2

    coordinator.finalize_pairing(descriptor.driver_id, "tv-1", first.pairing_request_id, "1234", True)
    coordinator.finalize_pairing(descriptor.driver_id, "tv-2", second.pairing_request_id, "bad", True)

    assert coordinator.pending_sessions() == []


def test_pending_sessions_are_bounded(registry, repository, descriptor) -> None:
    coordinator = PairingCoordinator(registry, repository, max_pending_sessions=2)
    sessions = [coordinator.start_pairing(descriptor.driver_id, "tv-1", "Hub") for _ in range(3)]

    pending = coordinator.pending_sessions()
    assert [s.pairing_request_id for s in pending] == [s.pairing_request_id for s in sessions[1:]]


def test_untracked_session_is_left_to_the_driver(coordinator, descriptor) -> None:
    request_id = str(uuid.uuid4())
    descriptor.sessions[request_id] = "tv-1"

    assert coordinator.finalize_pairing(descriptor.driver_id, "tv-1", request_id, "1234", True) is True


def test_no_expiry_by_default(registry, repository, descriptor) -> None:
    clock = FakeClock()
    coordinator = PairingCoordinator(registry, repository, clock=clock)
    session = coordinator.start_pairing(descriptor.driver_id, "tv-1", "Hub")
    clock.now += 86400

    assert coordinator.finalize_pairing(descriptor.driver_id, "tv-1", session.pairing_request_id, "1234", True)


def test_session_ttl_rejects_stale_sessions(registry, repository, descriptor) -> None:
    clock = FakeClock()
    coordinator = PairingCoordinator(registry, repository, session_ttl_s=60, clock=clock)
    session = coordinator.start_pairing(descriptor.driver_id, "tv-1", "Hub")
    clock.now += 61

    with pytest.raises(PairingExpiredError) as excinfo:
        coordinator.finalize_pairing(descriptor.driver_id, "tv-1", session.pairing_request_id, "1234", True)
    assert isinstance(excinfo.value, InvalidRequestError)
    assert not isinstance(excinfo.value, DriverFailureError)
    assert repository.find_all() == []
    assert coordinator.pending_sessions() == []


def test_duplicate_pairing_is_allowed_and_logged(coordinator, repository, descriptor, caplog) -> None:
    for _ in range(2):
        session = coordinator.start_pairing(descriptor.driver_id, "tv-1", "Hub")
        coordinator.finalize_pairing(descriptor.driver_id, "tv-1", session.pairing_request_id, "1234", True)

    assert len(repository.find_all()) == 2
    assert "already paired" in caplog.text


def test_device_vanishing_after_pairing_falls_back_to_id(coordinator, repository, descriptor) -> None:
    session = coordinator.start_pairing(descriptor.driver_id, "tv-1", "Hub")
    descriptor.devices = []

    assert coordinator.finalize_pairing(descriptor.driver_id, "tv-1", session.pairing_request_id, "1234", True)
    assert repository.find_all()[0].device_name == "tv-1 (Fake TV)"
