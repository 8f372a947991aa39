#!/usr/bin/env python3
"""
podcopy - copy one file out of every pod that matches a selector.

Writes a single JSON document to stdout:
  {"copy/": {...}, "copy-errors/": {...}}
Logs go to stderr.
"""

import argparse
import logging
import sys
import threading
from typing import List, Optional

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", stream=sys.stderr
)

logger = logging.getLogger("podcopy")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Copy a file from every pod matching a label selector",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Read /etc/hosts from every app=web pod in namespace shop
  python main.py -n shop -l app=web --path /etc/hosts

  # Several selectors, a specific container, named collector
  python main.py -n shop -l app=web -l tier=cache -c sidecar --path /tmp/state.json --collector-name state
        """,
    )
    parser.add_argument("-n", "--namespace", default="default", help="Namespace to search (default: default)")
    parser.add_argument(
        "-l",
        "--selector",
        action="append",
        default=[],
        help="Label selector; repeat for several (default: all pods in the namespace)",
    )
    parser.add_argument("-c", "--container", help="Container to exec into (default: first container of each pod)")
    parser.add_argument("--path", required=True, help="Path of the file to read inside the container")
    parser.add_argument("--collector-name", help="Name used for the selector error file (<name>.json)")
    parser.add_argument(
        "--redact", action="store_true", default=None, help="Mask secrets in collected files before writing"
    )
    parser.add_argument("--kubeconfig", help="Path to a kubeconfig file")
    parser.add_argument("--context", help="Kubeconfig context to use")
    parser.add_argument("--max-workers", type=int, help="Pods fetched in parallel (default: 1)")
    parser.add_argument("--timeout", type=float, help="Per-pod exec timeout in seconds")
    parser.add_argument("--deadline", type=float, help="Deadline for the whole run in seconds")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    from pydantic import ValidationError

    from podcopy.collectors.copy import collect
    from podcopy.config import load_copy_config
    from podcopy.core.models import CollectionRequest
    from podcopy.errors import ConfigError, SerializationError
    from podcopy.providers.k8s_provider import build_k8s_provider
    from podcopy.redact import get_redactor
    from podcopy.report import write_report

    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    cfg = load_copy_config().with_overrides(
        kubeconfig=args.kubeconfig,
        context=args.context,
        exec_timeout_seconds=args.timeout,
        deadline_seconds=args.deadline,
        max_workers=args.max_workers,
        redact=args.redact,
    )

    try:
        request = CollectionRequest(
            namespace=args.namespace,
            selectors=args.selector,
            container_name=args.container,
            container_path=args.path,
            collector_name=args.collector_name,
        )
    except ValidationError as e:
        print(f"Invalid request: {e}", file=sys.stderr)
        return 2

    cancel = threading.Event()
    try:
        provider = build_k8s_provider(cfg)
        bundle = collect(request, provider, cfg=cfg, cancel=cancel)
        write_report(bundle, redactor=get_redactor(cfg.redact))
    except (ConfigError, SerializationError) as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        cancel.set()
        logger.warning("Interrupted; in-flight pod reads cancelled")
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
