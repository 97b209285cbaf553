"""
Tests for the walk detection state machine.
"""

import random

import pytest

from walk_tracker.engine import (
    Confirmation,
    DetectionState,
    DetectorConfig,
    WalkCompleted,
    WalkDetector,
    WalkStarted,
)
from walk_tracker.errors import PreconditionViolation
from walk_tracker.geo import distance_km
from walk_tracker.models import Coordinate, Zone

from conftest import east_km


HOME = Coordinate(0.0, 0.0)


def _path_length(path):
    return sum(distance_km(a, b) for a, b in zip(path, path[1:]))


def _assert_invariant(detector):
    walking = detector.state in (DetectionState.WALKING, DetectionState.RETURNING)
    assert walking == (detector.current_walk is not None)
    assert walking == detector.is_walking


@pytest.fixture
def detector(home_zone, park_zone):
    return WalkDetector(DetectorConfig(home=home_zone, zones=(park_zone,)))


def _start(detector, t0=0):
    """Drive the detector into WALKING with three outside samples."""
    detector.ingest(east_km(0.1), t0)
    detector.ingest(east_km(0.2), t0 + 1000)
    event = detector.ingest(east_km(0.3), t0 + 2000)
    assert isinstance(event, WalkStarted)
    return event


class TestStartDebounce:
    def test_initial_state(self, detector):
        assert detector.state is DetectionState.AT_HOME
        assert detector.confirmation == Confirmation()
        assert detector.current_walk is None

    def test_inside_sample_is_noop(self, detector):
        assert detector.ingest(HOME, 1000) is None
        assert detector.state is DetectionState.AT_HOME

    def test_two_outside_samples_do_not_start(self, detector):
        assert detector.ingest(east_km(0.1), 1000) is None
        assert detector.state is DetectionState.LEAVING
        assert detector.confirmation.pending_confirmations == 1
        assert detector.ingest(east_km(0.1), 2000) is None
        assert detector.state is DetectionState.LEAVING
        assert detector.confirmation.pending_confirmations == 2
        assert detector.current_walk is None

    def test_third_outside_sample_starts_walk_at_first(self, detector):
        first = east_km(0.1)
        detector.ingest(first, 1000)
        detector.ingest(east_km(0.2), 2000)
        event = detector.ingest(east_km(0.3), 3000)

        assert event == WalkStarted(start_time=1000, start_position=first)
        assert detector.state is DetectionState.WALKING
        walk = detector.current_walk
        assert walk is not None
        assert walk.id == "walk_1000"
        assert walk.start_time == 1000
        assert walk.path == [first]
        assert walk.distance_km == 0.0
        assert walk.zones_visited == set()
        assert detector.confirmation == Confirmation()

    def test_revert_to_home_clears_confirmation(self, detector):
        detector.ingest(east_km(0.1), 1000)
        assert detector.ingest(HOME, 2000) is None
        assert detector.state is DetectionState.AT_HOME
        assert detector.confirmation == Confirmation()

        # fresh excursion needs a full three-sample run again
        assert detector.ingest(east_km(0.1), 3000) is None
        assert detector.ingest(east_km(0.1), 4000) is None
        assert detector.state is DetectionState.LEAVING
        event = detector.ingest(east_km(0.1), 5000)
        assert isinstance(event, WalkStarted)
        assert event.start_time == 3000

    def test_custom_start_count(self, home_zone):
        detector = WalkDetector(DetectorConfig(home=home_zone, start_confirmation_count=2))
        assert detector.ingest(east_km(0.1), 1000) is None
        assert isinstance(detector.ingest(east_km(0.1), 2000), WalkStarted)


class TestEndDebounce:
    def test_return_commits_on_second_inside_sample(self, detector):
        _start(detector, t0=0)
        assert detector.ingest(east_km(0.5), 60_000) is None

        assert detector.ingest(east_km(0.01), 125_500) is None
        assert detector.state is DetectionState.RETURNING
        assert detector.confirmation.pending_confirmations == 1
        assert detector.confirmation.candidate_start_time == 125_500
        walk = detector.current_walk

        event = detector.ingest(HOME, 200_000)
        assert isinstance(event, WalkCompleted)
        assert event.walk is walk
        assert walk.end_time == 125_500
        assert walk.duration_seconds == 125
        assert detector.state is DetectionState.AT_HOME
        assert detector.current_walk is None
        assert detector.confirmation == Confirmation()

    def test_duration_is_floored(self, detector):
        _start(detector, t0=0)
        detector.ingest(HOME, 1999)
        event = detector.ingest(HOME, 5000)
        assert isinstance(event, WalkCompleted)
        assert event.walk.duration_seconds == 1

    def test_inside_sample_while_walking_is_recorded(self, detector):
        _start(detector)
        detector.ingest(east_km(0.02), 10_000)
        assert detector.current_walk.path[-1] == east_km(0.02)

    def test_interruption_resumes_walk(self, detector):
        _start(detector)
        detector.ingest(east_km(0.4), 10_000)
        detector.ingest(east_km(0.01), 20_000)
        assert detector.state is DetectionState.RETURNING

        walk = detector.current_walk
        assert detector.ingest(east_km(0.3), 30_000) is None
        assert detector.state is DetectionState.WALKING
        assert detector.current_walk is walk
        assert walk.end_time is None
        assert detector.confirmation == Confirmation()

        detector.ingest(east_km(0.6), 40_000)
        assert walk.path == [east_km(0.1), east_km(0.4), east_km(0.01), east_km(0.6)]
        assert walk.distance_km == pytest.approx(_path_length(walk.path))

    def test_new_walk_after_completion(self, detector):
        _start(detector, t0=0)
        detector.ingest(HOME, 10_000)
        detector.ingest(HOME, 11_000)
        event = _start(detector, t0=20_000)
        assert event.start_time == 20_000
        assert detector.current_walk.id == "walk_20000"


class TestAccumulation:
    def test_distance_equals_sum_of_path_segments(self, home_zone):
        detector = WalkDetector(DetectorConfig(home=home_zone))
        _start(detector)
        rng = random.Random(7)
        for i in range(50):
            p = Coordinate(rng.uniform(-0.05, 0.05), rng.uniform(0.002, 0.05))
            detector.ingest(p, 10_000 + i * 1000)
            assert detector.state is DetectionState.WALKING
        walk = detector.current_walk
        assert len(walk.path) == 51
        assert walk.distance_km == pytest.approx(_path_length(walk.path))

    def test_zone_recorded_once(self, detector, park_zone):
        _start(detector)
        for i in range(5):
            detector.ingest(east_km(1.0 + i * 0.01), 10_000 + i * 1000)
        detector.ingest(east_km(2.0), 20_000)
        detector.ingest(east_km(1.0), 30_000)
        assert detector.current_walk.zones_visited == {park_zone.name}

    def test_zone_outside_radius_not_recorded(self, detector):
        _start(detector)
        detector.ingest(east_km(0.85), 10_000)
        assert detector.current_walk.zones_visited == set()

    def test_zones_only_checked_while_walking(self, home_zone):
        near_home = Zone(id="zone_2", name="Gate", center=east_km(0.1), radius_km=0.2, color="#60A5FA")
        detector = WalkDetector(DetectorConfig(home=home_zone, zones=(near_home,)))
        _start(detector)
        assert detector.current_walk.zones_visited == set()
        detector.ingest(east_km(0.1), 10_000)
        assert detector.current_walk.zones_visited == {"Gate"}

    def test_configure_keeps_walk(self, detector, home_zone):
        _start(detector)
        walk = detector.current_walk
        cafe = Zone(id="zone_3", name="Cafe", center=east_km(3.0), radius_km=0.1, color="#FBBF24")
        detector.configure(DetectorConfig(home=home_zone, zones=(cafe,)))
        detector.ingest(east_km(3.0), 10_000)
        assert detector.current_walk is walk
        assert walk.zones_visited == {"Cafe"}


class TestInvariant:
    def test_state_matches_walk_presence(self, detector):
        rng = random.Random(42)
        for i in range(500):
            if rng.random() < 0.5:
                p = east_km(rng.uniform(0.0, 0.04))
            else:
                p = east_km(rng.uniform(0.06, 2.0))
            detector.ingest(p, i * 1000)
            _assert_invariant(detector)
            if detector.current_walk is not None:
                walk = detector.current_walk
                assert walk.distance_km == pytest.approx(_path_length(walk.path))

    def test_implausible_coordinates_accepted(self, detector):
        detector.ingest(Coordinate(1000.0, -5000.0), 1000)
        _assert_invariant(detector)


class TestManual:
    def test_manual_start_from_home(self, detector):
        event = detector.start_manual(east_km(0.01), 5000)
        assert event == WalkStarted(start_time=5000, start_position=east_km(0.01))
        assert detector.state is DetectionState.WALKING
        assert detector.current_walk.path == [east_km(0.01)]

    def test_manual_start_discards_leaving_confirmation(self, detector):
        detector.ingest(east_km(0.1), 1000)
        detector.start_manual(east_km(0.1), 2000)
        assert detector.state is DetectionState.WALKING
        assert detector.confirmation == Confirmation()
        assert detector.current_walk.start_time == 2000

    def test_manual_start_rejected_while_walking(self, detector):
        _start(detector)
        walk = detector.current_walk
        with pytest.raises(PreconditionViolation):
            detector.start_manual(east_km(0.5), 9000)
        assert detector.state is DetectionState.WALKING
        assert detector.current_walk is walk
        assert walk.start_time == 0

    def test_manual_start_rejected_while_returning(self, detector):
        _start(detector)
        detector.ingest(HOME, 5000)
        with pytest.raises(PreconditionViolation):
            detector.start_manual(HOME, 6000)
        assert detector.state is DetectionState.RETURNING

    def test_manual_walk_ends_by_detection(self, detector):
        detector.start_manual(HOME, 0)
        detector.ingest(east_km(0.5), 10_000)
        detector.ingest(HOME, 20_000)
        event = detector.ingest(HOME, 30_000)
        assert isinstance(event, WalkCompleted)
        assert event.walk.duration_seconds == 20

    def test_manual_stop(self, detector):
        _start(detector, t0=0)
        event = detector.stop_manual(42_000)
        assert event.walk.end_time == 42_000
        assert event.walk.duration_seconds == 42
        assert detector.state is DetectionState.AT_HOME
        assert detector.current_walk is None

    def test_manual_stop_while_returning_uses_first_return_time(self, detector):
        _start(detector, t0=0)
        detector.ingest(HOME, 30_000)
        event = detector.stop_manual(90_000)
        assert event.walk.end_time == 30_000

    def test_manual_stop_without_walk(self, detector):
        with pytest.raises(PreconditionViolation):
            detector.stop_manual(1000)
        assert detector.state is DetectionState.AT_HOME

    def test_manual_stop_while_leaving(self, detector):
        detector.ingest(east_km(0.1), 1000)
        detector.ingest(east_km(0.2), 2000)
        with pytest.raises(PreconditionViolation):
            detector.stop_manual(3000)
        assert detector.state is DetectionState.LEAVING
        assert detector.confirmation.pending_confirmations == 2

        event = detector.ingest(east_km(0.3), 3000)
        assert event == WalkStarted(start_time=1000, start_position=east_km(0.1))


class TestPreconditions:
    def test_ingest_without_home(self):
        detector = WalkDetector(DetectorConfig(home=None))
        with pytest.raises(PreconditionViolation):
            detector.ingest(east_km(1.0), 1000)
        assert detector.state is DetectionState.AT_HOME
        assert detector.confirmation == Confirmation()

    @pytest.mark.parametrize("start,end", [(0, 2), (3, 0), (-1, 2)])
    def test_invalid_counts(self, home_zone, start, end):
        with pytest.raises(ValueError):
            DetectorConfig(home=home_zone, start_confirmation_count=start, end_confirmation_count=end)
