from workflow_canvas.geometry.paths import (
    find_insertion_index,
    fmt,
    generate_spline_path,
    get_point_on_spline,
    point_along_polyline,
    stub_point,
)
from workflow_canvas.models.geometry import EdgeSide, Point, PointWithEdge

START = PointWithEdge(x=80, y=0, edge=EdgeSide.RIGHT)
END = PointWithEdge(x=220, y=0, edge=EdgeSide.LEFT)


def test_fmt_trims_trailing_zeros():
    assert fmt(80.0) == "80"
    assert fmt(12.5) == "12.5"
    assert fmt(1 / 3) == "0.333"
    assert fmt(-0.0001) == "0"


def test_stub_point_follows_edge_normal():
    assert stub_point(START) == Point(x=100, y=0)
    assert stub_point(PointWithEdge(x=0, y=30, edge=EdgeSide.BOTTOM)) == Point(x=0, y=50)
    assert stub_point(Point(x=1, y=1)) is None


def test_spline_without_waypoints_has_stubs_and_curve():
    path = generate_spline_path(START, [], END)
    assert path == "M 80 0 L 100 0 C 135 0 165 0 200 0 L 220 0"


def test_spline_without_edges_is_straight():
    path = generate_spline_path(PointWithEdge(x=0, y=0), [], PointWithEdge(x=50, y=50))
    assert path == "M 0 0 L 50 50"


def test_spline_threads_every_waypoint():
    waypoints = [Point(x=150, y=-80), Point(x=180, y=40)]
    path = generate_spline_path(START, waypoints, END)
    assert path.startswith("M 80 0 L 100 0 C ")
    assert path.endswith("L 220 0")
    # One cubic segment per gap between stub, waypoints and stub
    assert path.count("C ") == 3
    assert " 150 -80 C " in path
    assert " 180 40 C " in path


def test_point_on_spline_endpoints_are_exact():
    waypoints = [Point(x=150, y=-80)]
    assert get_point_on_spline(START, waypoints, END, 0) == Point(x=80, y=0)
    assert get_point_on_spline(START, waypoints, END, 1) == Point(x=220, y=0)


def test_point_on_spline_midpoint():
    assert get_point_on_spline(START, [], END, 0.5) == Point(x=150, y=0)


def test_point_along_polyline_walks_segments():
    points = [Point(x=0, y=0), Point(x=10, y=0), Point(x=10, y=10)]
    assert point_along_polyline(points, 0.75) == Point(x=10, y=5)
    assert point_along_polyline([Point(x=3, y=3), Point(x=3, y=3)], 0.5) == Point(x=3, y=3)


def test_find_insertion_index_picks_nearest_segment():
    waypoints = [Point(x=100, y=100)]
    start, end = Point(x=0, y=0), Point(x=200, y=0)
    assert find_insertion_index(waypoints, start, end, Point(x=50, y=50)) == 0
    assert find_insertion_index(waypoints, start, end, Point(x=150, y=50)) == 1


def test_find_insertion_index_without_waypoints():
    assert find_insertion_index([], Point(x=0, y=0), Point(x=10, y=0), Point(x=99, y=99)) == 0


def test_find_insertion_index_on_third_of_four_segments():
    waypoints = [Point(x=100, y=0), Point(x=100, y=100), Point(x=200, y=100)]
    start, end = Point(x=0, y=0), Point(x=200, y=200)
    assert find_insertion_index(waypoints, start, end, Point(x=150, y=100)) == 2
    assert find_insertion_index(waypoints, start, end, Point(x=100, y=40)) == 1
    assert find_insertion_index(waypoints, start, end, Point(x=200, y=180)) == 3
