"""Shared fixtures for the dependency_reports tests."""

import os
from concurrent.futures import ThreadPoolExecutor

import pytest

from dependency_reports.deps_proto import encode_dependencies
from dependency_reports.models import DependencyKind, DependencyRecord


def records(*pairs):
    """Build records from (path, kind name) pairs."""
    return [DependencyRecord(path=path, kind=DependencyKind[kind]) for path, kind in pairs]


class CountingExecutor(ThreadPoolExecutor):
    """Thread pool that counts submitted tasks."""

    def __init__(self, max_workers=4):
        super().__init__(max_workers=max_workers)
        self.submitted = 0

    def submit(self, fn, *args, **kwargs):
        self.submitted += 1
        return super().submit(fn, *args, **kwargs)


class RecordingSink:
    def __init__(self):
        self.messages = []

    def report(self, message):
        self.messages.append(message)


@pytest.fixture
def executor():
    pool = CountingExecutor(max_workers=4)
    yield pool
    pool.shutdown(wait=True)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def write_report(tmp_path):
    """Write an encoded report under tmp_path and return its path."""

    def _write(name, pairs, mtime_ns=None):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(encode_dependencies(records(*pairs)))
        if mtime_ns is not None:
            os.utime(path, ns=(mtime_ns, mtime_ns))
        return path

    return _write


@pytest.fixture
def make_records():
    return records
