"""Main entry point for the flat JSON metrics exporter."""
import argparse
import logging
import sys

from prometheus_client import CollectorRegistry, GCCollector, PlatformCollector, ProcessCollector
from pythonjsonlogger.json import JsonFormatter

from flatmetrics.config import load_config
from flatmetrics.exposition import JsonMetricsAPI
from flatmetrics.json_encoder import JsonEncoder
from flatmetrics.self_metrics import SelfMetrics
from flatmetrics.snapshot import collect_families


def setup_logging(log_level: str, log_format: str):
    """Setup logging configuration."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"

    handler = logging.StreamHandler(sys.stderr)
    if log_format == "json":
        handler.setFormatter(JsonFormatter(fmt, datefmt=datefmt))
    else:
        handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    logging.basicConfig(level=level, handlers=[handler], force=True)

    # Reduce noise from some libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def build_registry(include_process_metrics: bool) -> CollectorRegistry:
    """Create the registry served by this exporter."""
    # A private registry keeps the process-global REGISTRY out of the output
    registry = CollectorRegistry()
    if include_process_metrics:
        ProcessCollector(registry=registry)
        PlatformCollector(registry=registry)
        GCCollector(registry=registry)
    return registry


def main(argv=None):
    """Main function."""
    parser = argparse.ArgumentParser(
        description="Flat JSON Metrics Exporter - Serve metrics as dot-path -> number JSON"
    )
    parser.add_argument(
        "--config",
        "-c",
        default=None,
        help="Path to configuration YAML file"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Write one JSON document to stdout and exit"
    )

    args = parser.parse_args(argv)

    # Load configuration
    try:
        config = load_config(args.config)
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        sys.exit(1)

    # Setup logging
    setup_logging(config.global_.log_level, config.global_.log_format)
    logger = logging.getLogger(__name__)

    logger.info(f"Configuration loaded from: {args.config or '<defaults>'}")
    logger.info(f"Non-finite policy: {config.encoder.non_finite.value}")

    registry = build_registry(config.server.include_process_metrics)
    self_metrics = SelfMetrics(registry=registry, prefix=config.server.self_metrics_prefix)
    encoder = JsonEncoder(config.encoder.non_finite)

    if args.once:
        try:
            encoder.encode(collect_families(registry), sys.stdout.buffer)
            sys.stdout.buffer.flush()
        except Exception as e:
            logger.error(f"Failed to write metrics: {e}", exc_info=True)
            sys.exit(1)
        return

    api = JsonMetricsAPI(registry, encoder, config.server, self_metrics=self_metrics)

    logger.info(
        f"Serving flat JSON metrics on "
        f"{config.server.bind_address}:{config.server.port}{config.server.path}"
    )
    try:
        api.run(host=config.server.bind_address, port=config.server.port)
    except Exception as e:
        logger.error(f"Exporter error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
