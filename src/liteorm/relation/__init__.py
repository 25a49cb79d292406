"""
Relation Engine
===============

- keys.py: join key resolution and foreign-key inference
- loader.py: batched preload (one query per relation)
- lazy.py: per-instance lazy resolution cache
- cascade.py: cascading create/update/delete
"""

from .cascade import CascadeHandler
from .keys import RelationKeys, infer_foreign_key, resolve_keys
from .lazy import LazyRelations, attach_lazy, lazy_relations
from .loader import RelationLoader, parse_paths

__all__ = [
    "CascadeHandler", "RelationKeys", "infer_foreign_key", "resolve_keys",
    "LazyRelations", "attach_lazy", "lazy_relations", "RelationLoader", "parse_paths",
]
