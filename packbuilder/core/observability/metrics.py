from __future__ import annotations

from prometheus_client import Counter, Histogram


BUILDS_TOTAL = Counter(
    "packbuilder_builds_total",
    "Builder image creations by outcome",
    ["outcome"],
)

LAYERS_APPENDED_TOTAL = Counter(
    "packbuilder_layers_appended_total",
    "Layers appended to builder images",
    ["kind"],
)

BUILD_DURATION_SECONDS = Histogram(
    "packbuilder_build_duration_seconds",
    "Builder image creation duration in seconds",
)
