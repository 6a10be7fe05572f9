"""Command line entry point: build collectors from a config file and print them."""
import argparse
import logging
import sys

from promvec.config import load_config
from promvec.exceptions import CollectionError, MetricsError
from promvec.registry import Collector


def setup_logging(log_level: str):
    """Setup logging configuration."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr
    )


def main(argv=None):
    """Main function."""
    parser = argparse.ArgumentParser(
        description="promvec - render collectors declared in a YAML file"
    )
    parser.add_argument(
        "--config",
        "-c",
        required=True,
        help="Path to configuration YAML file"
    )
    parser.add_argument(
        "--format",
        "-f",
        default=None,
        help="Serialization format (defaults to the config's global.format)"
    )

    args = parser.parse_args(argv)

    # Load configuration
    try:
        config = load_config(args.config)
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1

    setup_logging(config.global_.log_level)
    logger = logging.getLogger(__name__)
    logger.info(f"Configuration loaded from: {args.config}")
    logger.info(f"Metrics configured: {len(config.metrics)}")

    try:
        collector = Collector.from_config(config)
        text = collector.collect(args.format or config.global_.format)
    except CollectionError as e:
        logger.error(f"Collection finished with errors: {e}")
        sys.stdout.write(e.text or "")
        return 1
    except MetricsError as e:
        logger.error(f"Failed to collect metrics: {e}")
        return 1

    sys.stdout.write(text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
