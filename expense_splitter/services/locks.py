# expense_splitter/services/locks.py
from contextlib import contextmanager
from threading import Lock, RLock
from weakref import WeakValueDictionary

_registry_lock = Lock()
# an entry lives only while some caller holds a reference to its lock
_group_locks: "WeakValueDictionary[int, RLock]" = WeakValueDictionary()

def _lock_for(group_id: int) -> RLock:
    with _registry_lock:
        lock = _group_locks.get(group_id)
        if lock is None:
            lock = RLock()
            _group_locks[group_id] = lock
        return lock

@contextmanager
def group_lock(group_id: int):
    """Serialize the write-then-recompute sequence of one group within this process."""
    lock = _lock_for(group_id)
    with lock:
        yield
