"""
Reporting and export utilities.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional

from .lookup import DependencyLookup
from .models import LoadResult


logger = logging.getLogger(__name__)


class LoggingProgressSink:
    """Progress sink that forwards run summaries to the logger."""

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self.log = log if log is not None else logger

    def report(self, message: str) -> None:
        self.log.info(message)


def print_summary(result: LoadResult) -> None:
    logger.info("=" * 60)
    logger.info("DEPENDENCY REPORTS")
    logger.info("=" * 60)
    logger.info("Status: %s", result.status.value)
    if result.error:
        logger.info("Error: %s", result.error)
    logger.info("Reports loaded: %d", result.loaded_count)
    logger.info("Total size: %dkB", result.bytes_read // 1024)
    if result.lookup is not None:
        logger.info("Targets with dependencies: %d", len(result.lookup))
    logger.info("=" * 60)


def result_summary(result: LoadResult) -> Dict:
    return {
        "status": result.status.value,
        "loaded_count": result.loaded_count,
        "bytes_read": result.bytes_read,
        "error": result.error,
        "targets": len(result.lookup) if result.lookup is not None else None,
    }


def save_result_json(result: LoadResult, output_dir: Path, name: str = "dependency_reports") -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    results_file = output_dir / f"{name}_results.json"
    with open(results_file, 'w') as f:
        json.dump(result_summary(result), f, indent=2, default=str)
    return results_file


def export_dependency_csv(
    lookup: DependencyLookup,
    output_dir: Path,
    name: str = "dependency_reports",
) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    csv_file = output_dir / f"{name}_dependencies.csv"
    lookup.to_frame().to_csv(csv_file, index=False)
    return csv_file
