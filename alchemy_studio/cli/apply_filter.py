import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

# --- Centralized Logging Configuration ---
# This should be the first thing to run to ensure all modules use the same config.
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
    datefmt='%H:%M:%S'
)
# ───────────────────────────────────────────

from ..models.transform_params import TransformKind
from ..pipeline.export_page import render_export_page
from ..services.image_service import ImageService
from ..services.session_service import SessionService

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="alchemy-studio",
        description="Apply one Digital Alchemy filter to a single image.",
    )
    parser.add_argument("input", type=Path, help="Image file to load")
    parser.add_argument("filter", choices=[k.value for k in TransformKind], help="Filter to apply")
    parser.add_argument("-o", "--output", type=Path, default=None,
                        help="Output file (default: <input>_<filter>.png / .html / .txt)")
    parser.add_argument("--pixel-size", type=int, default=None, help="Pixelate block size")
    parser.add_argument("--threshold", type=int, default=None, help="Threshold level 0-255")
    parser.add_argument("--seed", type=int, default=None, help="Glitch random seed")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--html", action="store_true", help="Write the HTML export page instead of PNG")
    mode.add_argument("--text", action="store_true", help="Write the ASCII grid as text (ascii filter only)")
    parser.add_argument("--no-fit", action="store_true",
                        help="Keep the full resolution instead of fitting to the display area")
    return parser


def _default_output(input_path: Path, kind: TransformKind, suffix: str) -> Path:
    return input_path.with_name(f"{input_path.stem}_{kind.value}{suffix}")


def run(args: argparse.Namespace) -> Path:
    kind = TransformKind(args.filter)
    if args.text and kind is not TransformKind.ASCII:
        raise ValueError("--text only applies to the ascii filter")

    image_service = ImageService(max_width=0, max_height=0) if args.no_fit else ImageService()
    session_service = SessionService(image_service=image_service, glitch_seed=args.seed)

    session = session_service.create()
    session_service.update_settings(session, pixel_size=args.pixel_size, threshold_level=args.threshold)
    session_service.load_image(session, image_service.load(args.input))

    if args.text:
        text = session_service.transform_service.ascii_service.render_text(session.original)
        output = args.output or _default_output(args.input, kind, ".txt")
        output.write_text(text + "\n", encoding="utf-8")
        return output

    result = session_service.apply_effect(session, kind)
    if args.html:
        output = args.output or _default_output(args.input, kind, ".html")
        output.write_text(render_export_page(result, image_service=image_service), encoding="utf-8")
        return output

    output = args.output or _default_output(args.input, kind, ".png")
    return image_service.save(result, output)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        output = run(args)
    except (FileNotFoundError, ValueError) as err:
        logger.error(f"{err}")
        return 1
    logger.info(f"Wrote {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
