#!/usr/bin/env python3
"""
Example script showing how to use the dependency-reports loader.
"""

import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from dependency_reports import DependencyReportLoader, JsonStateStore, TargetInfo, TargetKey
from dependency_reports.artifacts import ArtifactLocationResolver
from dependency_reports.deps_proto import encode_dependencies
from dependency_reports.fetch import LocalFetchService
from dependency_reports.models import DependencyKind, DependencyRecord


def write_sample_reports(root: Path) -> list:
    """Write two small reports into root and return their targets."""
    samples = {
        "//java/com/app:app": [
            DependencyRecord("third_party/guava.jar", DependencyKind.EXPLICIT),
            DependencyRecord("third_party/jsr305.jar", DependencyKind.IMPLICIT),
            DependencyRecord("third_party/junit.jar", DependencyKind.UNUSED),
        ],
        "//java/com/lib:lib": [
            DependencyRecord("third_party/gson.jar", DependencyKind.EXPLICIT),
        ],
    }
    targets = []
    for label, records in samples.items():
        key = TargetKey.parse(label)
        report = Path("bazel-bin") / key.package / f"lib{key.name}.jdeps"
        (root / report).parent.mkdir(parents=True, exist_ok=True)
        (root / report).write_bytes(encode_dependencies(records, rule_label=label))
        targets.append(TargetInfo(key, report.as_posix()))
    return targets


def example_incremental_loading():
    """Example: Two runs over the same workspace."""
    print("="*60)
    print("Example 1: Incremental Loading")
    print("="*60)

    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        targets = write_sample_reports(root)
        store = JsonStateStore(root / ".state" / "deps.json")

        with ThreadPoolExecutor(max_workers=4) as executor:
            loader = DependencyReportLoader(
                ArtifactLocationResolver(root), LocalFetchService(), executor
            )
            first = loader.sync(targets, store)
            second = loader.sync(targets, store)

        print(f"\nFirst run loaded {first.loaded_count} reports")
        print(f"Second run loaded {second.loaded_count} reports")
        for target in targets:
            print(f"\n{target.key}")
            for path in second.lookup.lookup(target.key) or ():
                print(f"  {path}")


if __name__ == "__main__":
    print("Dependency Reports - Example Usage")
    print("="*60)
    example_incremental_loading()
