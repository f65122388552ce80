import unittest

from detect_kit.backends.onnxruntime_backend import OnnxRuntimeBackend, _dim
from detect_kit.errors import ConfigurationError


class TestOnnxInputShape(unittest.TestCase):
    def test_fixed_shape(self) -> None:
        self.assertEqual(OnnxRuntimeBackend._resolve_input_shape([1, 320, 320, 3]), (1, 320, 320, 3))
        self.assertEqual(OnnxRuntimeBackend._resolve_input_shape([1, 256, 416, 3]), (1, 256, 416, 3))

    def test_dynamic_dims_default_to_320(self) -> None:
        with self.assertLogs("detect_kit.backends.onnxruntime_backend", level="WARNING"):
            shape = OnnxRuntimeBackend._resolve_input_shape(["batch", "height", None, 3])
        self.assertEqual(shape, (1, 320, 320, 3))

    def test_dynamic_dim_reports_its_own_default(self) -> None:
        with self.assertLogs("detect_kit.backends.onnxruntime_backend", level="WARNING") as logs:
            self.assertEqual(_dim("width", "width", 416), 416)
        self.assertIn("width", logs.output[0])
        self.assertIn("416", logs.output[0])

    def test_undefined_shape(self) -> None:
        for shape in (None, [], [1, 320, 320]):
            with self.assertRaises(ConfigurationError):
                OnnxRuntimeBackend._resolve_input_shape(shape)

    def test_channels_first_rejected(self) -> None:
        with self.assertRaises(ConfigurationError):
            OnnxRuntimeBackend._resolve_input_shape([1, 3, 320, 320])


class TestOnnxOutputSelection(unittest.TestCase):
    def test_boxes_first(self) -> None:
        outputs = [("boxes", [1, "N", 4]), ("scores", [1, "N", 28])]
        self.assertEqual(OnnxRuntimeBackend._select_outputs(outputs), ("boxes", "scores"))

    def test_scores_exported_first(self) -> None:
        outputs = [("Identity", [1, 2034, 28]), ("Identity_1", [1, 2034, 4])]
        self.assertEqual(OnnxRuntimeBackend._select_outputs(outputs), ("Identity_1", "Identity"))

    def test_unknown_shapes_fall_back_to_order(self) -> None:
        outputs = [("a", None), ("b", [1, "N", "C"])]
        self.assertEqual(OnnxRuntimeBackend._select_outputs(outputs), ("a", "b"))

    def test_four_classes_keeps_order(self) -> None:
        outputs = [("boxes", [1, 10, 4]), ("scores", [1, 10, 4])]
        self.assertEqual(OnnxRuntimeBackend._select_outputs(outputs), ("boxes", "scores"))

    def test_configured_names_win(self) -> None:
        outputs = [("x", [1, 10, 4]), ("y", [1, 10, 4]), ("z", [1, 10, 7])]
        self.assertEqual(OnnxRuntimeBackend._select_outputs(outputs, "y", "z"), ("y", "z"))
        self.assertEqual(OnnxRuntimeBackend._select_outputs(outputs, scores_output="x"), ("y", "x"))
        self.assertEqual(OnnxRuntimeBackend._select_outputs(outputs, boxes_output="z"), ("z", "x"))

    def test_single_output_rejected(self) -> None:
        with self.assertRaises(ConfigurationError):
            OnnxRuntimeBackend._select_outputs([("out", [1, 10, 4])])


if __name__ == "__main__":
    unittest.main()
