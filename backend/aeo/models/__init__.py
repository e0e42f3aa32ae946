"""
Database Models
"""

from .database import (
    Base,
    new_id,
    # Enums
    JobType,
    JobStatus,
    ContentKind,
    # Models
    IntentTaxonomy,
    BrandProfile,
    ContentItem,
    AppConfigEntry,
    AuditRun,
    AuditResult,
    ReinforcementLog,
    ApiCost,
    JobRun,
    ContentArtifact,
)

__all__ = [
    "Base",
    "new_id",
    # Enums
    "JobType",
    "JobStatus",
    "ContentKind",
    # Models
    "IntentTaxonomy",
    "BrandProfile",
    "ContentItem",
    "AppConfigEntry",
    "AuditRun",
    "AuditResult",
    "ReinforcementLog",
    "ApiCost",
    "JobRun",
    "ContentArtifact",
]
