"""CLI entrypoint for the node collector."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from node_collector import __version__
from node_collector.collector import Collector, CollectorConfig, CollectorConfigBuilder
from node_collector.config import Settings, get_settings
from node_collector.errors import CollectorError
from node_collector.manifest import available_templates


def _label(value: str) -> tuple[str, str]:
    key, sep, val = value.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected key=value, got {value!r}")
    return key, val


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Node collector: run a one-shot diagnostic job on a Kubernetes node and print its output.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--namespace",
        "-n",
        default=None,
        help="Namespace for collector jobs (default: from env or 'node-collector')",
    )
    parser.add_argument(
        "--kubeconfig",
        type=Path,
        default=None,
        help="Path to kubeconfig (default: KUBECONFIG env or ~/.kube/config)",
    )
    parser.add_argument("--context", default=None, help="Kubernetes context to use")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    sub = parser.add_subparsers(dest="command", required=True)

    def job_options(p: argparse.ArgumentParser) -> None:
        p.add_argument("node", help="Name of the node to collect from")
        p.add_argument("--template", default=None, help="Job template name")
        p.add_argument("--image", default=None, help="Override the collector image")
        p.add_argument(
            "--node-config",
            action="store_true",
            default=None,
            help="Pass --node to the workload and provision RBAC to read node configuration",
        )
        p.add_argument(
            "--label",
            "-l",
            type=_label,
            action="append",
            default=[],
            help="Extra job label, key=value (repeatable)",
        )

    collect = sub.add_parser("collect", help="Run a job on NODE, wait, print its output, clean up")
    job_options(collect)
    collect.add_argument("--timeout", type=float, default=None, help="Seconds to wait for the job")
    collect.add_argument(
        "--cleanup",
        action="store_true",
        help="Delete the collector namespace when done",
    )

    apply = sub.add_parser("apply", help="Submit a job for NODE and return immediately")
    job_options(apply)
    apply.add_argument("--name", required=True, help="Job name")
    apply.add_argument(
        "--use-node-selector",
        action="store_true",
        help="Pin the pod with a hostname node selector",
    )

    sub.add_parser("cleanup", help="Delete the collector namespace")
    sub.add_parser("templates", help="List the job templates that can be used with --template")
    return parser.parse_args(argv)


def _build_config(args: argparse.Namespace, settings: Settings) -> CollectorConfig:
    builder = CollectorConfigBuilder.from_settings(settings)
    if args.command == "cleanup":
        return builder.build()
    builder.with_template_name(args.template).with_image_ref(args.image).with_node_config(args.node_config)
    builder.with_labels(dict(args.label))
    if args.command == "collect":
        builder.with_timeout(args.timeout)
    else:
        builder.with_name(args.name).with_use_node_selector(args.use_node_selector)
    return builder.build()


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for the node-collector CLI."""
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )
    logger = logging.getLogger("node_collector")
    if not args.verbose:
        logger.setLevel(logging.WARNING)

    console = Console()
    try:
        settings = get_settings()
        if args.kubeconfig:
            settings.kubeconfig = args.kubeconfig
        if args.context:
            settings.context = args.context
        if args.namespace:
            settings.namespace = args.namespace

        if args.command == "templates":
            for name in available_templates(settings.template_dir):
                console.print(name, markup=False, highlight=False)
            return 0

        collector = Collector.from_settings(settings, _build_config(args, settings))
        if args.command == "collect":
            try:
                output = collector.apply_and_collect(args.node)
            finally:
                if args.cleanup:
                    collector.cleanup()
            console.print(output, markup=False, highlight=False, end="")
        elif args.command == "apply":
            job = collector.apply(args.node)
            console.print(f"job/{job.metadata.name} created in {job.metadata.namespace}")
        else:
            collector.cleanup()
        return 0
    except CollectorError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logging.exception("Collector failed")
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
