"""
Run the light-trace pipeline over a video file or camera.

Frames go through the same FrameWorker the API uses, so a frame that arrives
while the previous one is still processing is dropped.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import cv2

from common.config import DEFAULT_MODEL_PATH, TRAINING_DATA_DIR
from common.settings import DetectionMode, settings_store
from cv.model import load_model
from cv.pipeline import FramePipeline, PipelineContext
from cv.worker import FrameWorker
from storage.media import write_classification_image

logger = logging.getLogger(__name__)


def _open_source(source: str) -> cv2.VideoCapture:
    if source.isdigit():
        return cv2.VideoCapture(int(source))
    return cv2.VideoCapture(source)


def run(
    source: str,
    mode: DetectionMode,
    model_path: str | None = None,
    show: bool = False,
    wait: bool = False,
    output_dir: Path = TRAINING_DATA_DIR,
    save_export: bool = True,
) -> str:
    settings_store.update({
        "detection_mode": mode.value,
        "inference": {"enabled": mode is DetectionMode.NEURAL},
    })
    model = load_model(model_path) if mode is DetectionMode.NEURAL else None
    pipeline = FramePipeline(PipelineContext(model=model, line_limit=settings_store.current().trace.line_limit))
    worker = FrameWorker(pipeline)

    cap = _open_source(source)
    if not cap.isOpened():
        worker.shutdown()
        raise RuntimeError(f"Failed to open source: {source}")

    frame_count = 0
    try:
        while True:
            ret, frame = cap.read()
            if not ret:
                break
            frame_count += 1

            future = worker.submit(frame)
            if future is not None and wait:
                future.result()

            if show:
                overlay = worker.latest_overlay()
                if overlay is not None:
                    cv2.imshow("light trace", overlay)
                if cv2.waitKey(1) & 0xFF == ord("q"):
                    break
    finally:
        cap.release()
        worker.shutdown(wait=True)
        if show:
            cv2.destroyAllWindows()

    logger.info(
        "Read %d frames: %d processed, %d dropped",
        frame_count, worker.processed_count, worker.dropped_count,
    )

    if save_export and settings_store.current().export.frame_image:
        path = write_classification_image(pipeline.export_trace(), output_dir)
        print(f"Trace image: {path}")

    return pipeline.trace_coordinates()


def main():
    parser = argparse.ArgumentParser(
        description="Track a moving light in a video and export its trace",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("source", help="Video file path or camera index")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in DetectionMode],
        default=DetectionMode.CONTOUR.value,
        help="Detection strategy",
    )
    parser.add_argument("--model", default=DEFAULT_MODEL_PATH, help="TorchScript model for --mode neural")
    parser.add_argument("--show", action="store_true", help="Display the overlay while processing")
    parser.add_argument("--wait", action="store_true", help="Wait for each frame instead of dropping while busy")
    parser.add_argument("--output-dir", type=Path, default=TRAINING_DATA_DIR, help="Where the 28x28 export is written")
    parser.add_argument("--no-export", action="store_true", help="Skip writing the classification image")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        coordinates = run(
            source=args.source,
            mode=DetectionMode(args.mode),
            model_path=args.model,
            show=args.show,
            wait=args.wait,
            output_dir=args.output_dir,
            save_export=not args.no_export,
        )
    except RuntimeError as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    print(coordinates)


if __name__ == "__main__":
    main()
