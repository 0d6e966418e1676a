from __future__ import annotations
import random
from typing import Optional, List, Union


class AllocationError(MemoryError):
    """Storage for a queue, element or string copy could not be obtained."""


class _Element:
    __slots__ = ("value", "next")
    def __init__(self):
        self.value: Optional[str] = None
        self.next: Optional["_Element"] = None


class Allocator:
    """Hands out elements and string copies and keeps a count of live ones.

    The queue header itself is requested through `reserve` but not counted.
    """

    def __init__(self):
        self.allocated: int = 0

    def reserve(self, what: str) -> None:
        pass

    def element(self) -> _Element:
        self.reserve("element")
        e = _Element()
        self.allocated += 1
        return e

    def copy_string(self, s: str) -> str:
        if not isinstance(s, str):
            raise TypeError(f"queue values must be str, not {type(s).__name__}")
        self.reserve("string")
        # str is immutable, so the element may keep the caller's object
        self.allocated += 1
        return s

    def release(self, obj: Union[_Element, str, None]) -> None:
        if obj is None:
            return
        if isinstance(obj, _Element):
            obj.value = None
            obj.next = None
        self.allocated -= 1


class FaultyAllocator(Allocator):
    """Allocator that fails `fail_percent` percent of requests."""

    def __init__(self, fail_percent: int = 0, seed: Optional[int] = None):
        super().__init__()
        if not 0 <= fail_percent <= 100:
            raise ValueError(f"fail_percent out of range: {fail_percent}")
        self.fail_percent = fail_percent
        self._rng = random.Random(seed)

    def reserve(self, what: str) -> None:
        if self.fail_percent and self._rng.randrange(100) < self.fail_percent:
            raise AllocationError(f"could not allocate {what}")


class Queue:
    def __init__(self, allocator: Optional[Allocator] = None):
        self._alloc: Allocator = allocator if allocator is not None else Allocator()
        self._alloc.reserve("queue")
        self._head: Optional[_Element] = None
        self._tail: Optional[_Element] = None
        self._size: int = 0

    # ---- basics ----
    @property
    def head(self) -> Optional[_Element]:
        return self._head

    @property
    def tail(self) -> Optional[_Element]:
        return self._tail

    @property
    def allocator(self) -> Allocator:
        return self._alloc

    def empty(self) -> bool:
        return self._size == 0

    def size(self) -> int:
        return self._size

    def free(self) -> None:
        """Release every element, leaving the queue empty."""
        n = self._head
        while n is not None:
            nxt = n.next
            self._alloc.release(n.value)
            self._alloc.release(n)
            n = nxt
        self._head = self._tail = None
        self._size = 0

    # ---- insert/remove ----
    def _new_element(self, s: str) -> Optional[_Element]:
        try:
            e = self._alloc.element()
        except MemoryError:
            return None
        try:
            e.value = self._alloc.copy_string(s)
        except MemoryError:
            self._alloc.release(e)
            return None
        except TypeError:
            self._alloc.release(e)
            raise
        return e

    def insert_head(self, s: str) -> bool:
        e = self._new_element(s)
        if e is None:
            return False
        e.next = self._head
        self._head = e
        if self._tail is None:
            self._tail = e
        self._size += 1
        return True

    def insert_tail(self, s: str) -> bool:
        e = self._new_element(s)
        if e is None:
            return False
        if self._tail is None:
            self._head = self._tail = e
        else:
            self._tail.next = e
            self._tail = e
        self._size += 1
        return True

    def remove_head(self, sp: Optional[bytearray] = None, bufsize: int = 0) -> bool:
        """Remove the head element.

        When `sp` is given, up to ``bufsize - 1`` bytes of the removed value
        are copied into it followed by NUL padding, and True is returned.
        Without a buffer the element is still removed but False is returned.
        """
        if self._head is None:
            return False
        n = self._head
        bufsize = min(bufsize, len(sp)) if sp is not None else 0
        # lone surrogates are legal in str values
        data = n.value.encode("utf-8", "surrogatepass")[:bufsize - 1] if bufsize > 0 else b""

        self._head = n.next
        if self._head is None:
            self._tail = None
        self._size -= 1
        try:
            if bufsize > 0:
                sp[:len(data)] = data
                sp[len(data):bufsize] = bytes(bufsize - len(data))
        finally:
            self._alloc.release(n.value)
            self._alloc.release(n)
        return bufsize > 0

    # ---- rearrange ----
    def reverse(self) -> None:
        if self._size < 2:
            return
        prev: Optional[_Element] = None
        cur = self._head
        while cur is not None:
            nxt = cur.next
            cur.next = prev
            prev = cur
            cur = nxt
        self._head, self._tail = self._tail, self._head

    def sort(self) -> None:
        if self._size < 2:
            return
        self._head = _merge_sort(self._head)
        # the old tail is still in the list, somewhere at or before the end
        while self._tail.next is not None:
            self._tail = self._tail.next

    # ---- utils ----
    def to_list(self) -> List[str]:
        out: List[str] = []
        n = self._head
        while n is not None:
            out.append(n.value)
            n = n.next
        return out


def _merge(l1: Optional[_Element], l2: Optional[_Element]) -> Optional[_Element]:
    """Merge two sorted runs; on equal values the element of `l1` goes first."""
    if l1 is None:
        return l2
    if l2 is None:
        return l1
    if l1.value <= l2.value:
        head, l1 = l1, l1.next
    else:
        head, l2 = l2, l2.next
    tmp = head
    while l1 is not None and l2 is not None:
        if l1.value <= l2.value:
            tmp.next, l1 = l1, l1.next
        else:
            tmp.next, l2 = l2, l2.next
        tmp = tmp.next
    tmp.next = l1 if l1 is not None else l2
    return head


def _merge_sort(head: Optional[_Element]) -> Optional[_Element]:
    if head is None or head.next is None:
        return head
    slow, fast = head, head.next
    while fast is not None and fast.next is not None:
        fast = fast.next.next
        slow = slow.next
    right = slow.next
    slow.next = None
    return _merge(_merge_sort(head), _merge_sort(right))


# ---- function API; every call tolerates an absent queue ----
def q_new(allocator: Optional[Allocator] = None) -> Optional[Queue]:
    try:
        return Queue(allocator)
    except MemoryError:
        return None


def q_free(q: Optional[Queue]) -> None:
    if q is not None:
        q.free()


def q_insert_head(q: Optional[Queue], s: str) -> bool:
    return q is not None and q.insert_head(s)


def q_insert_tail(q: Optional[Queue], s: str) -> bool:
    return q is not None and q.insert_tail(s)


def q_remove_head(q: Optional[Queue], sp: Optional[bytearray] = None, bufsize: int = 0) -> bool:
    return q is not None and q.remove_head(sp, bufsize)


def q_size(q: Optional[Queue]) -> int:
    return 0 if q is None else q.size()


def q_reverse(q: Optional[Queue]) -> None:
    if q is not None:
        q.reverse()


def q_sort(q: Optional[Queue]) -> None:
    if q is not None:
        q.sort()
