"""Tests for the grid landmark generator and its change-notification handling."""

import copy

import pytest
from py_landmarks.config import get_settings
from py_landmarks.core import (
    BatchReason, CartesianTraits, DegenerateGridError, EditEvent, Feature, FeatureKind,
    GeneratorNotBuiltError, GridLandmarkGenerator, LocalEditKind, NotificationState,
    Point, VoronoiArrangement, arrangement_from_points, batched_locate
)


SQUARE = [Point(0, 0), Point(10, 0), Point(0, 10), Point(10, 10)]


class CountingLocator:
    """Batched locator that counts how often it is called."""

    def __init__(self):
        self.calls = 0

    def __call__(self, subdivision, points):
        self.calls += 1
        return batched_locate(subdivision, points)


class TestConstruction:
    """Test building the landmark set on attach."""

    def test_square_scenario(self):
        """Four corners and four landmarks: (9, 9) resolves to (10, 10)."""
        arr = arrangement_from_points(SQUARE)
        gen = GridLandmarkGenerator(arr, 4)

        params = gen.grid_parameters
        assert params.resolution == 2
        assert params.step_x == params.step_y == 10.0
        assert [e.point for e in gen.landmarks] == [
            Point(0, 0), Point(0, 10), Point(10, 0), Point(10, 10)
        ]

        point, feature = gen.closest_landmark(Point(9, 9))
        assert point == Point(10, 10)
        assert feature == Feature.vertex(3)

    def test_builds_before_returning(self):
        """The generator is built as soon as construction returns."""
        gen = GridLandmarkGenerator(arrangement_from_points(SQUARE))

        assert gen.is_built
        assert not gen.ignoring_notifications
        assert gen.state == NotificationState.IDLE

    def test_single_vertex(self):
        """A single vertex answers every query with itself."""
        gen = GridLandmarkGenerator(arrangement_from_points([Point(5, 5)]))

        assert gen.grid_parameters.resolution == 1
        for q in [Point(5, 5), Point(-100, 3), Point(7, 700)]:
            assert gen.closest_landmark(q).point == Point(5, 5)

    def test_empty_subdivision(self):
        """An empty subdivision constructs fine but cannot be queried."""
        gen = GridLandmarkGenerator(VoronoiArrangement())

        assert not gen.is_built
        assert len(gen) == 0
        with pytest.raises(GeneratorNotBuiltError):
            gen.closest_landmark(Point(0, 0))

    def test_unattached(self):
        """A generator without a subdivision is inert."""
        gen = GridLandmarkGenerator()

        assert gen.subdivision is None
        with pytest.raises(GeneratorNotBuiltError):
            gen.closest_landmark(Point(0, 0))
        with pytest.raises(GeneratorNotBuiltError):
            gen.build_landmark_set()

    def test_invalid_request(self):
        """One landmark for several vertices is a precondition violation."""
        with pytest.raises(DegenerateGridError):
            GridLandmarkGenerator(arrangement_from_points(SQUARE), 1)

    def test_negative_count(self):
        """Negative landmark counts are rejected."""
        with pytest.raises(ValueError):
            GridLandmarkGenerator(arrangement_from_points(SQUARE), -4)

    def test_default_count_from_settings(self):
        """Without an explicit count the configured default is used."""
        settings = get_settings(default_landmark_count=16)
        gen = GridLandmarkGenerator(arrangement_from_points(SQUARE), settings=settings)

        assert gen.number_of_landmarks == 16
        assert gen.grid_parameters.resolution == 4
        assert len(gen) == 16

    def test_not_copyable(self):
        """Generators refuse to be copied."""
        gen = GridLandmarkGenerator(arrangement_from_points(SQUARE))

        with pytest.raises(TypeError):
            copy.copy(gen)
        with pytest.raises(TypeError):
            copy.deepcopy(gen)


class TestLandmarkSetProperties:
    """Test invariants of built landmark sets."""

    @pytest.mark.parametrize("target", [0, 4, 5, 10, 37, 100])
    def test_size_and_order(self, target):
        """The set holds resolution squared entries in lexicographic order."""
        arr = arrangement_from_points([Point(-2, 1), Point(8, 3), Point(4, -6), Point(1, 9), Point(3, 3)])
        gen = GridLandmarkGenerator(arr, target)

        r = gen.grid_parameters.resolution
        requested = target or arr.number_of_vertices()
        assert len(gen) == r * r
        assert (r - 1) ** 2 < requested <= r * r
        points = [e.point for e in gen.landmarks]
        assert points == sorted(points)

    def test_grid_points_resolve_to_their_cell(self):
        """Querying an exact grid point returns that grid point's entry."""
        arr = VoronoiArrangement(sites=[Point(0, 0), Point(10, 1), Point(4, 9), Point(-3, 6)])
        gen = GridLandmarkGenerator(arr, 25)
        params = gen.grid_parameters
        r = params.resolution

        for i in range(r):
            for j in range(r):
                q = Point(params.x_min + i * params.step_x, params.y_min + j * params.step_y)
                assert gen.closest_landmark(q) == gen.landmarks[r * i + j]

    @pytest.mark.parametrize("qy", [-50.0, 0.0, 5.0, 10.0, 50.0])
    def test_clamping_left(self, qy):
        """Queries left of the box come from the first column."""
        gen = GridLandmarkGenerator(arrangement_from_points(SQUARE), 9)

        assert gen.closest_landmark(Point(-1, qy)).point[0] == 0.0

    @pytest.mark.parametrize("qx", [-50.0, 0.0, 5.0, 10.0, 50.0])
    def test_clamping_top(self, qx):
        """Queries above the box come from the last row."""
        gen = GridLandmarkGenerator(arrangement_from_points(SQUARE), 9)

        assert gen.closest_landmark(Point(qx, 11)).point[1] == 10.0

    def test_rebuild_is_idempotent(self):
        """Rebuilding without edits yields an identical landmark set."""
        arr = VoronoiArrangement(sites=[Point(0, 0), Point(10, 1), Point(4, 9)],
                                 isolated_vertices=[Point(0.3, 0.7)])
        gen = GridLandmarkGenerator(arr, 20)
        first = gen.landmarks

        gen.clear_landmark_set()
        gen.build_landmark_set()

        assert gen.landmarks == first

    def test_features_come_from_location(self):
        """Entries carry the feature containing their point."""
        arr = VoronoiArrangement(sites=[Point(0, 0), Point(10, 0), Point(5, 10)],
                                 isolated_vertices=[Point(0, -5), Point(10, 10)])
        gen = GridLandmarkGenerator(arr, 9)

        kinds = {e.feature.kind for e in gen.landmarks}
        assert FeatureKind.FACE in kinds
        assert gen.closest_landmark(Point(10, 10)).feature == Feature.vertex(2)


class TestChangeNotifications:
    """Test the rebuild state machine."""

    def setup_method(self):
        self.arr = arrangement_from_points(SQUARE)
        self.locator = CountingLocator()
        self.gen = GridLandmarkGenerator(self.arr, 0, locator=self.locator)

    def test_attach_builds_once(self):
        """Attaching triggers exactly one build."""
        assert self.locator.calls == 1

    def test_local_edits_rebuild_each_time(self):
        """Every local edit outside a batch triggers a rebuild."""
        for k in range(5):
            self.arr.add_isolated_vertex(Point(k + 1, 2 * k + 1))

        assert self.locator.calls == 1 + 5
        assert self.gen.is_built

    def test_batched_edits_rebuild_once(self):
        """Local edits inside a global change trigger a single rebuild."""
        with self.arr.global_change():
            for k in range(5):
                self.arr.add_isolated_vertex(Point(k + 1, 2 * k + 1))
            assert self.gen.ignoring_notifications
            assert not self.gen.is_built

        assert self.locator.calls == 1 + 1
        assert self.gen.is_built
        assert not self.gen.ignoring_notifications

    def test_site_insertion_rebuilds_once(self):
        """A site insertion reports many edits but rebuilds once."""
        self.arr.insert_site(Point(2, 2))
        self.arr.insert_site(Point(8, 3))
        self.arr.insert_site(Point(5, 9))

        assert self.locator.calls == 1 + 3

    def test_rebuild_tracks_vertex_count(self):
        """With a zero target the grid follows the current vertex count."""
        assert self.gen.grid_parameters.resolution == 2

        self.arr.add_isolated_vertex(Point(5, 5))

        assert self.gen.number_of_landmarks == 0
        assert self.gen.grid_parameters.resolution == 3
        assert len(self.gen) == 9

    def test_rebuild_reflects_moves(self):
        """Moving a vertex moves the bounding box."""
        self.arr.move_isolated_vertex(3, Point(20, 20))

        assert self.gen.grid_parameters.x_max == 20.0
        assert self.gen.closest_landmark(Point(19, 19)).point == Point(20, 20)

    def test_clear(self):
        """Clearing the subdivision leaves an unbuilt generator."""
        self.arr.clear()

        assert not self.gen.is_built
        assert self.locator.calls == 1
        with pytest.raises(GeneratorNotBuiltError):
            self.gen.closest_landmark(Point(1, 1))

        self.arr.add_isolated_vertex(Point(1, 1))
        assert self.gen.closest_landmark(Point(40, 40)).point == Point(1, 1)

    def test_assign(self):
        """Assignment rebuilds once and adopts the source's traits."""
        traits = CartesianTraits()
        other = arrangement_from_points([Point(-5, -5), Point(5, 5)], traits=traits)

        self.arr.assign(other)

        assert self.locator.calls == 2
        assert self.gen.traits is traits
        assert self.gen.grid_parameters.x_min == -5.0

    def test_detach_and_reattach(self):
        """Detaching clears the set; reattaching rebuilds it."""
        self.gen.detach()

        assert not self.gen.is_built
        assert self.gen.subdivision is None
        with pytest.raises(GeneratorNotBuiltError):
            self.gen.closest_landmark(Point(9, 9))

        # edits after detaching are not observed
        self.arr.add_isolated_vertex(Point(3, 3))
        assert self.locator.calls == 1

        self.gen.attach(self.arr, 4)
        assert self.gen.is_built
        assert self.locator.calls == 2
        assert self.gen.closest_landmark(Point(9, 9)).point == Point(10, 10)

    def test_detach_twice(self):
        """Detaching an unattached generator does nothing."""
        self.gen.detach()
        self.gen.detach()

        assert self.arr.listeners == ()

    def test_subdivision_closed(self):
        """Closing the subdivision leaves the generator cleared and inert."""
        self.arr.close()

        assert not self.gen.is_built
        assert self.gen.subdivision is None

    def test_attach_elsewhere(self):
        """Attaching to a new subdivision detaches from the old one."""
        other = arrangement_from_points([Point(100, 100), Point(110, 120)])

        self.gen.attach(other)

        assert self.arr.listeners == ()
        assert other.listeners == (self.gen,)
        assert self.gen.grid_parameters.x_min == 100.0

    def test_batch_end_without_begin(self):
        """A stray batch end still leaves a built generator."""
        self.gen.on_edit(EditEvent.batch_end(BatchReason.GLOBAL_CHANGE))

        assert self.gen.is_built
        assert self.gen.state == NotificationState.IDLE

    def test_reentrant_batch_begin(self):
        """A second batch begin keeps batching until the end arrives."""
        self.gen.on_edit(EditEvent.batch_begin(BatchReason.GLOBAL_CHANGE))
        self.gen.on_edit(EditEvent.batch_begin(BatchReason.GLOBAL_CHANGE))
        self.gen.on_edit(EditEvent.local_edit(LocalEditKind.SPLIT_EDGE))

        assert self.gen.ignoring_notifications
        assert self.locator.calls == 1

        self.gen.on_edit(EditEvent.batch_end(BatchReason.GLOBAL_CHANGE))
        assert self.gen.is_built
        assert self.locator.calls == 2

    @pytest.mark.parametrize("edit", list(LocalEditKind))
    def test_every_local_edit_rebuilds(self, edit):
        """Each kind of local edit triggers a rebuild when idle."""
        self.gen.on_edit(EditEvent.local_edit(edit))

        assert self.locator.calls == 2
        assert self.gen.is_built

    def test_failed_rebuild_leaves_generator_unbuilt(self):
        """A rebuild that violates a precondition leaves no partial set."""
        self.arr.move_isolated_vertex(1, Point(0, 0))
        self.arr.move_isolated_vertex(2, Point(0, 0))

        with pytest.raises(DegenerateGridError):
            self.arr.move_isolated_vertex(3, Point(0, 0))

        assert not self.gen.is_built
        assert self.gen.state == NotificationState.IDLE


class TestFailedAttach:
    """Test generators whose first build fails."""

    def test_failed_construction_leaves_no_listener(self):
        """A generator that cannot build is not left registered on the subdivision."""
        arr = arrangement_from_points([Point(1, 1), Point(1, 1)])

        with pytest.raises(DegenerateGridError):
            GridLandmarkGenerator(arr)

        assert arr.listeners == ()
        # edits are no longer routed to the failed generator
        arr.move_isolated_vertex(0, Point(1, 1))

    def test_other_generators_follow_edits_after_failure(self):
        """A generator registered after a failing one still rebuilds."""
        arr = arrangement_from_points(SQUARE)
        first = GridLandmarkGenerator(arr, 0)
        second = GridLandmarkGenerator(arr, 4)

        arr.move_isolated_vertex(1, Point(0, 0))
        arr.move_isolated_vertex(2, Point(0, 0))
        with pytest.raises(DegenerateGridError):
            arr.move_isolated_vertex(3, Point(0, 0))

        assert not first.is_built
        assert not second.is_built

        arr.move_isolated_vertex(3, Point(50, 50))
        assert first.is_built and second.is_built
        assert second.grid_parameters.x_max == 50.0

    def test_rejected_site_keeps_landmarks(self):
        """A rejected site leaves the generator built on the unchanged subdivision."""
        arr = VoronoiArrangement(sites=[Point(0, 0), Point(10, 1), Point(4, 9)],
                                 isolated_vertices=[Point(-5, -5), Point(15, 15)])
        gen = GridLandmarkGenerator(arr, 9)
        before = gen.landmarks

        with pytest.raises(ValueError):
            arr.insert_site(Point(float("nan"), 0.0))

        assert gen.is_built
        assert gen.landmarks == before
