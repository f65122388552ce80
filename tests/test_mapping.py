import unittest

import numpy as np

from detect_kit.errors import ClassIndexError, ConfigurationError
from detect_kit.mapping import map_boxes


NAMES = ["tyre", "door", "hood"]


class TestMapBoxes(unittest.TestCase):
    def _map_one(self, box, width, height, score=0.5, class_id=0):
        max_side = max(width, height)
        return map_boxes(
            [0],
            np.array([box], dtype=np.float32),
            np.array([score]),
            np.array([class_id]),
            NAMES,
            width,
            height,
            max_side / width,
            max_side / height,
        )

    def test_full_square_maps_to_whole_image(self) -> None:
        for width, height in [(400, 200), (200, 400), (333, 333), (1, 7), (640, 480), (1920, 1081)]:
            (obj,) = self._map_one([0.0, 0.0, 1.0, 1.0], width, height)
            self.assertEqual(obj.x, 0.0)
            self.assertEqual(obj.y, 0.0)
            self.assertEqual(obj.width, float(width))
            self.assertEqual(obj.height, float(height))

    def test_wide_image_example(self) -> None:
        (obj,) = self._map_one([0.25, 0.5, 0.75, 1.0], 400, 200, score=0.8, class_id=2)
        self.assertEqual((obj.x, obj.y, obj.width, obj.height), (200.0, 100.0, 200.0, 100.0))
        self.assertAlmostEqual(obj.score, 0.8)
        self.assertEqual(obj.class_id, 2)
        self.assertEqual(obj.class_name, "hood")

    def test_clamps_overshoot(self) -> None:
        (obj,) = self._map_one([-0.1, -0.2, 1.3, 1.1], 300, 300)
        self.assertEqual(obj.as_xyxy(), (0.0, 0.0, 300.0, 300.0))

    def test_box_in_padding_collapses(self) -> None:
        # Wide image: bottom half of the padded square is padding.
        (obj,) = self._map_one([0.6, 0.1, 0.9, 0.2], 400, 200)
        self.assertEqual(obj.y, 200.0)
        self.assertEqual(obj.height, 0.0)

    def test_order_follows_indices(self) -> None:
        boxes = np.array([[0.0, 0.0, 0.1, 0.1], [0.5, 0.5, 0.6, 0.6], [0.2, 0.2, 0.3, 0.3]])
        objs = map_boxes([1, 2, 0], boxes, np.array([0.1, 0.9, 0.5]), np.array([0, 1, 2]), NAMES, 100, 100, 1.0, 1.0)
        self.assertEqual([o.class_name for o in objs], ["door", "hood", "tyre"])
        self.assertEqual([o.score for o in objs], [0.9, 0.5, 0.1])

    def test_empty(self) -> None:
        self.assertEqual(map_boxes([], np.zeros((0, 4)), np.zeros(0), np.zeros(0), NAMES, 10, 10, 1.0, 1.0), [])

    def test_class_out_of_range(self) -> None:
        with self.assertRaises(ClassIndexError) as ctx:
            self._map_one([0.0, 0.0, 0.5, 0.5], 100, 100, class_id=3)
        self.assertIsInstance(ctx.exception, ConfigurationError)
        with self.assertRaises(ClassIndexError):
            self._map_one([0.0, 0.0, 0.5, 0.5], 100, 100, class_id=-1)

    def test_wire_shape(self) -> None:
        (obj,) = self._map_one([0.25, 0.5, 0.75, 1.0], 400, 200, score=0.8, class_id=1)
        self.assertEqual(
            obj.to_dict(),
            {"x": 200.0, "y": 100.0, "width": 200.0, "height": 100.0, "score": obj.score, "classId": 1, "class": "door"},
        )


if __name__ == "__main__":
    unittest.main()
