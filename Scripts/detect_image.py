from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

import cv2

from detect_kit import (
    DEFAULT_MIN_SCORE,
    DetectorConfig,
    draw_detections,
    format_predictions,
    load,
    load_class_names,
    load_detector_config,
)


def read_image(path: str):
    img = cv2.imread(path)
    if img is None:
        raise FileNotFoundError(f"Could not read image at path: {path}")
    return img


def _build_config(args: argparse.Namespace) -> DetectorConfig:
    if args.config:
        cfg = load_detector_config(Path(args.config))
    else:
        if not args.model or not args.metadata:
            raise ValueError("Pass --config, or both --model and --metadata.")
        cfg = DetectorConfig(source=args.model, class_names=tuple(load_class_names(args.metadata)))

    overrides = {}
    if args.iou is not None:
        overrides["iou_threshold"] = args.iou
    if args.backend is not None:
        overrides["backend"] = args.backend
    if args.imgsz is not None:
        overrides["input_size"] = (args.imgsz, args.imgsz)
    if args.onnx_providers:
        overrides["providers"] = tuple(p.strip() for p in str(args.onnx_providers).split(",") if p.strip())
    return replace(cfg, **overrides) if overrides else cfg


def main() -> int:
    parser = argparse.ArgumentParser(description="Detect objects in one image and list/draw the results.")
    parser.add_argument("--image", required=True, help="Path to an input image.")
    parser.add_argument("--config", default=None, help="Detector config JSON (source + class_names).")
    parser.add_argument("--model", default=None, help="Model path (.onnx/.pt/.ts) when no --config is given.")
    parser.add_argument("--metadata", default=None, help="Class names (metadata.yaml or JSON) when no --config is given.")
    parser.add_argument("--conf", type=float, default=DEFAULT_MIN_SCORE, help="Minimum confidence.")
    parser.add_argument("--iou", type=float, default=None, help="IoU threshold for NMS (default 0.6).")
    parser.add_argument("--imgsz", type=int, default=None, help="Force a square model input size.")
    parser.add_argument("--backend", default=None, help="Force backend: onnxruntime / torchscript.")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--json", action="store_true", help="Print detections as JSON instead of text.")
    parser.add_argument("--show", action="store_true", help="Show a window with visualized detections.")
    parser.add_argument("--out", default=None, help="Optional output path to save the visualization.")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, ...).")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    pipeline = load(_build_config(args))

    img = read_image(args.image)
    rgb = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
    detections = pipeline.detect(rgb, args.conf)

    if args.json:
        print(json.dumps([det.to_dict() for det in detections], indent=2))
    else:
        if detections:
            print("Predictions:")
            for line in format_predictions(detections):
                print(f"  {line}")
        else:
            print("No detections.")
        if pipeline.last_timing is not None:
            print(f"Inference Time: {pipeline.last_timing.total_ms:.2f} ms")

    if args.out or args.show:
        vis = draw_detections(img, detections)
        if args.out:
            ok = cv2.imwrite(args.out, vis)
            if not ok:
                raise RuntimeError(f"Failed to write output image: {args.out}")
        if args.show:
            cv2.imshow("detections", vis)
            cv2.waitKey(0)
            cv2.destroyAllWindows()

    return 0


if __name__ == "__main__":
    sys.exit(main())
