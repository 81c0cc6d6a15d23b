"""Command-line interface for batch texture conversion."""

import argparse
import logging
import os
import sys

from .config import ConversionConfig
from .core import ConversionRequest, setup_logging

logger = logging.getLogger("crunchkit")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="crunchkit",
        description="Batch-convert PNG images to CRN/DDS textures",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  crunchkit -f ./textures
  crunchkit -f "sprites/**/*.png" -q 0.8 --format dds
  crunchkit -f textures.txt -r border --no-premultiplied
  crunchkit -f ./textures -d --report results.json
  crunchkit --generate-config

Manifest (.txt) lines may end with a quality and/or resize keyword:
  sprites/hero.png 0.8 border
        """
    )
    parser.add_argument("--files", "-f", nargs="+",
                        help="Glob path(s), or path to a .txt file list of glob paths, "
                             "to .pngs to process")
    parser.add_argument("--quality", "-q", type=float,
                        help="Quality of crunch output, 0-1 (default 0.5)")
    parser.add_argument("--premultiplied", "-pm", dest="premultiply",
                        action=argparse.BooleanOptionalAction, default=None,
                        help="Convert inputs to premultiplied alpha first (default on)")
    parser.add_argument("--format", choices=["crn", "dds"],
                        help="Output container (default crn)")
    parser.add_argument("--delete-input", "--deleteInput", "-d", dest="delete_input",
                        action="store_true", default=None,
                        help="Delete input PNGs after they are converted")
    parser.add_argument("--resize", "-r", choices=["scale", "border"],
                        help="Fix invalid sizes by scaling up or adding a transparent "
                             "border; default skips invalid images")
    parser.add_argument("--config", "-c", help="Path to config YAML")
    parser.add_argument("--encoder", help="Path to the crunch executable")
    parser.add_argument("--report", help="Write a JSON results report to this path")
    parser.add_argument("--dry-run", action="store_true")
    parser.add_argument("--strict", action="store_true",
                        help="Exit with code 1 when any image fails")
    parser.add_argument("--generate-config", action="store_true",
                        help="Generate default config.yaml")
    parser.add_argument("--log-level",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    parser.add_argument("--log-file", help="Also write logs to this file")
    return parser


def main(argv=None):
    """Parse CLI arguments, run the conversion, and exit with its status."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.generate_config:
        config = ConversionConfig()
        dest = args.config or "config.yaml"
        if os.path.isdir(dest):
            dest = os.path.join(dest, "config.yaml")
        config.to_yaml(dest)
        logger.info("Generated default %s", dest)
        print(f"Generated default {dest}")
        return

    if not args.files:
        parser.print_help()
        sys.exit(1)

    # Ensure early validation warnings from from_yaml() are visible on stderr
    # before the configured logging is installed.
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")

    if args.config:
        if not os.path.exists(args.config):
            logger.error("Config file not found: %s", args.config)
            print(f"Error: Config file not found: {args.config}")
            sys.exit(1)
        try:
            config = ConversionConfig.from_yaml(args.config)
        except ValueError as e:
            logger.error("Invalid config file '%s': %s", args.config, e)
            print(f"Error: Invalid config: {e}")
            sys.exit(1)
    else:
        config = ConversionConfig()

    # CLI overrides
    if args.quality is not None:
        config.quality = args.quality
    if args.premultiply is not None:
        config.premultiply = args.premultiply
    if args.format:
        config.output_format = args.format
    if args.delete_input is not None:
        config.delete_source = args.delete_input
    if args.resize:
        config.resize = args.resize
    if args.encoder:
        config.encoder.tool_path = args.encoder
    if args.report:
        config.report_path = args.report
    if args.dry_run:
        config.dry_run = True
    if args.strict:
        config.fail_on_image_errors = True
    if args.log_level:
        config.log_level = args.log_level
    if args.log_file:
        config.log_file = args.log_file

    try:
        config.validate()
    except ValueError as e:
        logger.error(str(e))
        print(f"Error: {e}")
        sys.exit(1)

    setup_logging(config.log_level, config.log_file or None)

    targets = args.files[0] if len(args.files) == 1 else list(args.files)
    request = ConversionRequest.from_config(targets, config)

    from .pipeline import ConversionPipeline
    pipeline = ConversionPipeline(config)

    try:
        result = pipeline.run(request)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user.")
        sys.exit(130)

    if not result.ok:
        print(f"Error: {result.resolution_error}")
        sys.exit(1)
    if config.fail_on_image_errors and result.has_image_failures:
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
