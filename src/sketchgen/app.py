"""sketchgen command-line entry point."""

import argparse
import logging
import sys
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from .errors import GeneratorError
from .hardware import DeviceSimulator, detect_host_profile
from .inference.backends import ExecutionTarget
from .inference.generator import DEFAULT_NUM_THREADS, Generator
from .inference.models import DEFAULT_MODELS_DIR, ModelVariant

log = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Generate an image from a line drawing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sketchgen drawing.png out.png                      # Float model on CPU
  sketchgen drawing.png out.png -m quantized -t 2    # Quantized, 2 threads
  sketchgen drawing.png out.png --device accel-b     # Run on the GPU
        """,
    )

    parser.add_argument("input", type=Path, help="Input drawing (any image format)")
    parser.add_argument("output", type=Path, help="Where to write the generated image")

    parser.add_argument(
        "--model", "-m",
        choices=[v.value for v in ModelVariant],
        default=ModelVariant.FLOAT.value,
        help="Model variant (default: float)",
    )

    parser.add_argument(
        "--device", "-d",
        choices=[t.value for t in ExecutionTarget],
        default=ExecutionTarget.DEFAULT.value,
        help="Execution target (default: cpu)",
    )

    parser.add_argument(
        "--threads", "-t",
        type=int,
        default=DEFAULT_NUM_THREADS,
        help=f"Engine thread count (default: {DEFAULT_NUM_THREADS})",
    )

    parser.add_argument(
        "--models",
        type=Path,
        default=DEFAULT_MODELS_DIR,
        help="Directory holding the model artifacts (default: ./models)",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log per-call timings and backend details",
    )

    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(message)s",
        datefmt="%H:%M:%S",
    )

    simulator = DeviceSimulator(detect_host_profile())

    try:
        drawing = Image.open(args.input)
        drawing.load()
    except (OSError, UnidentifiedImageError) as exc:
        print(f"Cannot read {args.input}: {exc}", file=sys.stderr)
        return 1

    try:
        with Generator(
            ModelVariant(args.model),
            ExecutionTarget(args.device),
            args.threads,
            models_dir=args.models,
            simulator=simulator,
        ) as generator:
            result = generator.generate_image(drawing)
    except GeneratorError as exc:
        print(f"Generation failed: {exc}", file=sys.stderr)
        return 1

    try:
        result.convert("RGB").save(args.output)
    except (OSError, ValueError) as exc:
        print(f"Cannot write {args.output}: {exc}", file=sys.stderr)
        return 1

    log.info(
        "Wrote %s (%dx%d) in %.0fms",
        args.output, result.width, result.height, simulator.state.last_inference_ms,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
