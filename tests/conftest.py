"""
Configure pytest environment.

Puts the project root on the path so the top-level modules import without
an install, and provides shared fixtures.
"""
import sys
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from StringQueue import Allocator, AllocationError, Queue


class FailOn(Allocator):
    """Allocator that refuses every request of the named kinds."""

    def __init__(self, *kinds):
        super().__init__()
        self.kinds = set(kinds)

    def reserve(self, what):
        if what in self.kinds:
            raise AllocationError(f"refusing {what}")


def walk(q):
    """Follow next links from head, checking the list invariants on the way."""
    values = []
    n = q.head
    last = None
    while n is not None:
        values.append(n.value)
        last = n
        n = n.next
        assert len(values) <= q.size(), "more elements reachable than size"
    assert len(values) == q.size()
    assert last is q.tail
    if q.size() == 0:
        assert q.head is None and q.tail is None
    return values


@pytest.fixture
def allocator():
    return Allocator()


@pytest.fixture
def q(allocator):
    return Queue(allocator)


@pytest.fixture
def make_queue(allocator):
    def _make(*values):
        queue = Queue(allocator)
        for v in values:
            assert queue.insert_tail(v)
        return queue
    return _make
