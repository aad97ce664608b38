"""Component declaration for the key-value store substrate resource."""

from __future__ import annotations

RESOURCE_COMPONENT_ID = "substrate_kv"
