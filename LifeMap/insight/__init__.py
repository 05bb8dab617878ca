from LifeMap.insight.gateway import (
    GeminiTransport,
    InlineData,
    InsightError,
    InsightGateway,
    InvalidUrlError,
    validate_import_url,
)
from LifeMap.insight.report import ChecklistPanel, category_distribution, satisfaction_series

__all__ = [
    "ChecklistPanel",
    "GeminiTransport",
    "InlineData",
    "InsightError",
    "InsightGateway",
    "InvalidUrlError",
    "category_distribution",
    "satisfaction_series",
    "validate_import_url",
]
