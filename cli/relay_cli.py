#!/usr/bin/env python3
"""
qr-relay: read the QR code in an image (file, URL or folder of images)
and write a freshly generated code with the same payload.
"""
import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from tqdm import tqdm

# Load environment variables first
load_dotenv()

from models.scan_result import STATUS_DECODED, STATUS_LOAD_FAILED
from pipeline.relay_source import relay_image, relay_source
from services.binarization_service import BinarizationService
from services.image_service import ImageService, is_url

EXIT_DECODED = 0
EXIT_NOT_FOUND = 1
EXIT_LOAD_FAILED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="qr-relay", description="Decode a QR code and regenerate it")
    parser.add_argument("source", help="Image file, http(s) URL, or directory of images")
    parser.add_argument("-o", "--output", default="qrcode.png",
                        help="Where to write the regenerated code (directory in batch mode)")
    parser.add_argument("--window", type=int, default=None, help="Binarization window side in pixels")
    parser.add_argument("--workers", type=int, default=None, help="Threads used to binarize row bands")
    parser.add_argument("--no-regenerate", action="store_true", help="Only print the decoded payload")
    parser.add_argument("--recursive", action="store_true", help="Descend into sub-folders in batch mode")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser


def run_single(args, binarization_service: BinarizationService) -> int:
    result = relay_source(
        args.source,
        binarization_service=binarization_service,
        regenerate=not args.no_regenerate,
        save=not args.no_regenerate,
        output_path=args.output,
    )
    if result.status == STATUS_DECODED:
        print(result.payload)
        if result.regenerated is not None:
            print(f"New QR code written to {result.regenerated.path}", file=sys.stderr)
        return EXIT_DECODED

    print(result.message, file=sys.stderr)
    return EXIT_LOAD_FAILED if result.status == STATUS_LOAD_FAILED else EXIT_NOT_FOUND


def batch_output_path(output_dir: Path, root: Path, source: str) -> Path:
    """Mirror the source sub-folders so equal file names never collide."""
    rel = Path(source).relative_to(root)
    return output_dir / rel.parent / f"{rel.stem}_qrcode.png"


def run_batch(args, binarization_service: BinarizationService) -> int:
    image_service = ImageService()
    root = Path(args.source)
    output_dir = Path(args.output if args.output != "qrcode.png" else "data/qr_output")

    decoded = total = 0
    for img in tqdm(image_service.stream_gallery(root, recursive=args.recursive), desc="scan", ncols=70):
        total += 1
        result = relay_image(
            img,
            binarization_service=binarization_service,
            regenerate=not args.no_regenerate,
            save=not args.no_regenerate,
            output_path=batch_output_path(output_dir, root, img.source),
        )
        if result.found:
            decoded += 1
            tqdm.write(f"{img.source}\t{result.payload}")
        else:
            tqdm.write(f"{img.source}\t<{result.message}>")

    if not total:
        print(f"No images found in {args.source}", file=sys.stderr)
        return EXIT_LOAD_FAILED

    print(f"Decoded {decoded}/{total} images", file=sys.stderr)
    return EXIT_DECODED if decoded else EXIT_NOT_FOUND


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # --- Centralized Logging Configuration ---
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )

    try:
        binarization_service = BinarizationService(window_size=args.window, workers=args.workers)
    except ValueError as e:
        parser.error(str(e))
    if not is_url(args.source) and Path(args.source).is_dir():
        return run_batch(args, binarization_service)
    return run_single(args, binarization_service)


if __name__ == "__main__":
    sys.exit(main())
