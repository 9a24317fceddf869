"""Tests for debounced zone change handling."""

import pytest

from keystonesync.challenge import SessionStateMachine, ZoneWatcher
from keystonesync.database.models import Season
from keystonesync.events import LibraryEvent


@pytest.fixture()
def watcher(host, machine, scheduler):
    return ZoneWatcher(host, machine, scheduler, debounce=1.0)


class TestZoneWatcher:
    """Coalescing and instance-left detection."""

    def test_burst_is_coalesced(self, watcher, machine, scheduler, recorder_for) -> None:
        left = recorder_for(LibraryEvent.INSTANCE_LEFT)
        machine.on_challenge_started()

        for _ in range(3):
            watcher.on_zone_changed(False, False)
        scheduler.advance(1.0)

        assert watcher.coalesced == 2
        assert left.count == 1

    def test_nothing_before_debounce(self, watcher, machine, scheduler, recorder_for) -> None:
        left = recorder_for(LibraryEvent.INSTANCE_LEFT)
        machine.on_challenge_started()

        watcher.on_zone_changed(False, False)
        scheduler.advance(0.5)

        assert left.count == 0

    def test_player_still_inside(self, watcher, host, machine, scheduler, recorder_for) -> None:
        left = recorder_for(LibraryEvent.INSTANCE_LEFT)
        machine.on_challenge_started()
        host.challenge_mode_active = True

        watcher.on_zone_changed(False, False)
        scheduler.advance(1.0)

        assert left.count == 0

    def test_no_session(self, watcher, scheduler, recorder_for) -> None:
        left = recorder_for(LibraryEvent.INSTANCE_LEFT)
        watcher.on_zone_changed(False, False)
        scheduler.advance(1.0)
        assert left.count == 0

    def test_reload_recovers_missed_start(self, watcher, host, machine, scheduler) -> None:
        host.challenge_mode_active = True

        watcher.on_zone_changed(False, True)
        scheduler.advance(1.0)

        assert machine.is_active()

    def test_login_flag_survives_coalescing(self, watcher, host, machine, scheduler, recorder_for) -> None:
        """A plain zone change right after login does not hide the login."""
        left = recorder_for(LibraryEvent.INSTANCE_LEFT)
        host.challenge_mode_active = True

        watcher.on_zone_changed(True, False)
        watcher.on_zone_changed(False, False)
        scheduler.advance(1.0)

        assert machine.is_active()
        assert left.count == 0

    def test_reload_with_restored_session_is_quiet(self, watcher, machine, scheduler, recorder_for) -> None:
        started = recorder_for(LibraryEvent.SESSION_STARTED)
        left = recorder_for(LibraryEvent.INSTANCE_LEFT)
        machine.on_challenge_started()

        watcher.on_zone_changed(False, True)
        scheduler.advance(1.0)

        assert started.count == 1
        assert left.count == 0

    def test_reload_without_season_data(self, host, bus, store, scheduler, config) -> None:
        host.challenge_mode_active = True
        machine = SessionStateMachine(host, bus, Season(), store, scheduler, config)
        watcher = ZoneWatcher(host, machine, scheduler, debounce=1.0)

        watcher.on_zone_changed(True, False)
        scheduler.advance(1.0)

        assert not machine.is_active()

    def test_cancel(self, watcher, machine, scheduler, recorder_for) -> None:
        left = recorder_for(LibraryEvent.INSTANCE_LEFT)
        machine.on_challenge_started()

        watcher.on_zone_changed(False, False)
        watcher.cancel()
        scheduler.advance(1.0)

        assert left.count == 0
