"""
Command-line interface for incremental dependency report loading.
"""

import argparse
import json
import logging
import signal
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List, Tuple

from .artifacts import REMOTE_SCHEMES, ArtifactLocationResolver
from .cancellation import CancellationToken
from .fetch import HttpFetchService, LocalFetchService
from .loader import DependencyReportLoader, LoaderConfig
from .models import LoadStatus, TargetInfo, TargetKey
from .reporting import export_dependency_csv, print_summary, save_result_json
from .state import JsonStateStore


def _load_manifest(path: Path) -> Tuple[List[TargetInfo], Dict[str, str], Dict[str, int]]:
    """Read the target manifest.

    Returns:
        Targets, plus digest and length for every remote report
    """
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, dict) or not isinstance(data.get("targets"), list):
        raise ValueError(f"Manifest {path} must contain a 'targets' list")

    targets = []
    digests: Dict[str, str] = {}
    lengths: Dict[str, int] = {}
    for item in data["targets"]:
        if not isinstance(item, dict) or "label" not in item:
            raise ValueError(f"Manifest target must have a label: {item!r}")
        report = item.get("report")
        targets.append(TargetInfo(key=TargetKey.parse(item["label"]), report=report))
        if report and "digest" in item:
            digests[report] = str(item["digest"])
        if report and "length" in item:
            lengths[report] = int(item["length"])
    return targets, digests, lengths


def main():
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Incrementally load compiler dependency reports for build targets"
    )

    parser.add_argument(
        "--manifest",
        required=True,
        help="JSON file listing the targets and their dependency reports"
    )

    parser.add_argument(
        "--state",
        required=True,
        help="JSON file holding the state of the previous run"
    )

    parser.add_argument(
        "--root",
        default=".",
        help="Workspace root that relative report paths are resolved against. Default: ."
    )

    parser.add_argument(
        "--cache-dir",
        default=None,
        help="Directory for downloaded remote reports. Default: <root>/.report-cache"
    )

    parser.add_argument(
        "--max-workers",
        type=int,
        default=None,
        help="Number of parallel parse workers. Default: cpu count + 4, at most 32"
    )

    parser.add_argument(
        "--query",
        action="append",
        default=[],
        help="Print the dependencies of this target label (repeatable)"
    )

    parser.add_argument(
        "--export-csv",
        default=None,
        help="Directory to export the dependency table to as CSV"
    )

    parser.add_argument(
        "--result-json",
        default=None,
        help="Directory to save the run summary to as JSON"
    )

    parser.add_argument(
        "--progress",
        action="store_true",
        help="Show progress bars"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    if args.max_workers is not None and args.max_workers < 1:
        parser.error("--max-workers must be at least 1")

    try:
        queries = [TargetKey.parse(label) for label in args.query]
        targets, digests, lengths = _load_manifest(Path(args.manifest))
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    root = Path(args.root)
    cache_dir = Path(args.cache_dir) if args.cache_dir else root / ".report-cache"
    config = LoaderConfig(max_workers=args.max_workers, show_progress=args.progress)
    resolver = ArtifactLocationResolver(
        root,
        cache_dir=cache_dir,
        remote_digests=digests,
        remote_lengths=lengths,
    )
    token = CancellationToken()
    previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: token.cancel())

    try:
        with ThreadPoolExecutor(max_workers=config.resolved_workers()) as executor:
            has_remote = any(
                target.report and target.report.startswith(REMOTE_SCHEMES) for target in targets
            )
            if has_remote:
                fetch_service = HttpFetchService(
                    cache_dir, executor, show_progress=args.progress, token=token
                )
            else:
                fetch_service = LocalFetchService()
            loader = DependencyReportLoader(resolver, fetch_service, executor, config=config)
            result = loader.sync(targets, JsonStateStore(Path(args.state)), token)
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    print_summary(result)

    if result.succeeded and result.lookup is not None:
        for target in queries:
            dependencies = result.lookup.lookup(target)
            print(target.label)
            if dependencies is None:
                print("  <absent>")
            else:
                for path in dependencies:
                    print(f"  {path}")
        if args.export_csv:
            csv_file = export_dependency_csv(result.lookup, Path(args.export_csv))
            print(f"Dependencies saved to: {csv_file}")

    if args.result_json:
        results_file = save_result_json(result, Path(args.result_json))
        print(f"Results saved to: {results_file}")

    if result.status is LoadStatus.CANCELLED:
        sys.exit(130)
    if result.status is LoadStatus.FAILED:
        print(f"Error: {result.error}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
