import unittest

from wanderer.region import DIRECTIONS, MAX_LAT, MAX_LNG, build_extent

from fakes import make_city


class BuildExtentTests(unittest.TestCase):
    def test_north_and_south_span_all_longitudes(self):
        city = make_city(1, lat=35.0, lng=139.0)
        north = build_extent(city, "n")
        self.assertEqual((north.xmin, north.ymin, north.xmax, north.ymax), (-MAX_LNG, 35.0, MAX_LNG, MAX_LAT))
        south = build_extent(city, "s")
        self.assertEqual((south.xmin, south.ymin, south.xmax, south.ymax), (-MAX_LNG, -MAX_LAT, MAX_LNG, 35.0))

    def test_east_without_wrap(self):
        extent = build_extent(make_city(1, lng=-30.0), "e")
        self.assertEqual((extent.xmin, extent.xmax), (-30.0, 150.0))
        self.assertEqual((extent.ymin, extent.ymax), (-MAX_LAT, MAX_LAT))

    def test_east_wraps_across_antimeridian(self):
        extent = build_extent(make_city(1, lng=170.0), "e")
        self.assertEqual(extent.xmin, 170.0)
        self.assertAlmostEqual(extent.xmax, -10.0)

    def test_west_without_wrap(self):
        extent = build_extent(make_city(1, lng=30.0), "w")
        self.assertEqual((extent.xmin, extent.xmax), (-150.0, 30.0))

    def test_west_wraps_once_by_subtraction(self):
        extent = build_extent(make_city(1, lng=-170.0), "w")
        self.assertAlmostEqual(extent.xmin, -710.0)
        self.assertEqual(extent.xmax, -170.0)

    def test_every_direction_has_a_region(self):
        city = make_city(1, lat=20.0, lng=40.0)
        for direction in DIRECTIONS:
            self.assertIsNotNone(build_extent(city, direction), direction)

    def test_unknown_direction_has_no_region(self):
        self.assertIsNone(build_extent(make_city(1), "ne"))
        self.assertIsNone(build_extent(make_city(1), "info"))

    def test_json_shape(self):
        data = build_extent(make_city(1, lat=10.0), "n").to_json()
        self.assertEqual(data["spatialReference"], {"wkid": 4326})
        self.assertEqual(data["ymin"], 10.0)


if __name__ == "__main__":
    unittest.main()
