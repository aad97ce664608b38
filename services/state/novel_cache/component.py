"""Component declaration for the novel cache service."""

from __future__ import annotations

SERVICE_COMPONENT_ID = "service_novel_cache"
