from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from ..config import GeneralConfig, load_general_config, load_variants
from ..errors import ConfigurationError, TransformFailure
from ..fields.optimized_images import OptimizedImagesField
from ..media.asset import ImageAsset
from ..media.codec import PillowCodecGateway
from ..media.downloader import ImageDownloader
from ..transforms.generator import VariantGenerator

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate optimized image variants for an asset")
    parser.add_argument("source", help="Local path or http(s) URL of the original image")
    parser.add_argument(
        "--variants", type=Path, default=None, help="JSON file with the variant list (defaults to the built-in set)"
    )
    parser.add_argument("--output", type=Path, default=None, help="Directory to store transformed images")
    parser.add_argument("--base-url", default=None, help="URL prefix the output directory is served under")
    parser.add_argument("--focal-point", default=None, help="Focal point as X,Y in the 0..1 range")
    parser.add_argument("--cache", type=Path, default=None, help="Optional cache directory for remote originals")
    parser.add_argument("--webp", action="store_true", help="Also write a .webp sibling for every transform")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def _parse_focal_point(raw: Optional[str]) -> Optional[dict]:
    if raw is None:
        return None
    try:
        x, y = (float(part) for part in raw.split(","))
    except ValueError as exc:
        raise ConfigurationError(f"Focal point must look like 0.5,0.5, got {raw!r}") from exc
    return {"x": x, "y": y}


def _build_config(args: argparse.Namespace) -> GeneralConfig:
    config = load_general_config()
    if args.output is not None:
        config.output_dir = args.output
    if args.base_url is not None:
        config.base_url = args.base_url
    if args.webp:
        config.webp_siblings = True
    return config


def run(args: argparse.Namespace) -> str:
    config = _build_config(args)
    codec = PillowCodecGateway(config.output_dir, config.base_url, webp_siblings=config.webp_siblings)
    variants = load_variants(args.variants) if args.variants is not None else None
    field = OptimizedImagesField(VariantGenerator(codec, config=config), variants=variants)

    focal_point = _parse_focal_point(args.focal_point)
    if args.source.startswith(("http://", "https://")):
        downloader = ImageDownloader(cache_dir=args.cache)
        asset = ImageAsset.from_url(args.source, codec, downloader, focal_point=focal_point)
    else:
        asset = ImageAsset.from_path(Path(args.source), codec, focal_point=focal_point)

    result = field.normalize(None, asset)
    return field.serialize(result)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    try:
        output = run(args)
    except ConfigurationError as exc:
        logger.error("Invalid configuration: %s", exc)
        raise SystemExit(1) from exc
    except TransformFailure as exc:
        logger.error("Transform failed: %s", exc)
        raise SystemExit(2) from exc
    except OSError as exc:
        logger.error("Unable to read source %s: %s", args.source, exc)
        raise SystemExit(1) from exc
    except RuntimeError as exc:  # pragma: no cover - network/HTTP errors
        logger.error("Failed to fetch %s: %s", args.source, exc)
        raise SystemExit(2) from exc
    sys.stdout.write(output + "\n")


if __name__ == "__main__":
    main()
