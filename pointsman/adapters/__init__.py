"""Document store backends.

The active backend is chosen by ``POINTSMAN["STORE_BACKEND"]`` and
instantiated once per dotted path.
"""

import threading

from django.utils.module_loading import import_string

from pointsman.conf import pointsman_settings
from pointsman.protocols.store import DocumentStore

_stores: dict[str, DocumentStore] = {}
_lock = threading.Lock()


def get_store() -> DocumentStore:
    """Get the configured DocumentStore."""
    backend_path = pointsman_settings.STORE_BACKEND
    with _lock:
        store = _stores.get(backend_path)
        if store is None:
            backend_class = import_string(backend_path)
            store = backend_class()
            _stores[backend_path] = store
    return store


def reset_stores() -> None:
    """Drop cached backend instances (in-memory stores lose their data)."""
    with _lock:
        _stores.clear()
