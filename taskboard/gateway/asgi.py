from __future__ import annotations

from taskboard.config import load_config
from taskboard.store import InMemoryTaskStore

from .app import create_app

_store = InMemoryTaskStore()
app = create_app(_store, load_config())
