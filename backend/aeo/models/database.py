"""
AEO Database Models
PostgreSQL with SQLAlchemy ORM
"""

from datetime import datetime
from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import (
    Column, String, Text, Integer, Float, Boolean, DateTime,
    ForeignKey, JSON, Numeric, Index,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def new_id() -> str:
    """Primary keys are assigned client-side so rows can be referenced before flush"""
    return str(uuid4())


# ============================================================================
# ENUMS
# ============================================================================

class JobType(str, PyEnum):
    AUDIT = "audit"
    REINFORCEMENT = "reinforcement"
    CONTENT_BUILD = "content_build"


class JobStatus(str, PyEnum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class ContentKind(str, PyEnum):
    ORGANIZATION_LD = "organization_ld"
    SOFTWARE_LD = "software_ld"
    FAQ_PAGE = "faq_page"
    FAQ_MARKDOWN = "faq_markdown"
    BLOG_POSTING = "blog_posting"


# ============================================================================
# EXTERNAL INPUTS (read-only to the core)
# ============================================================================

class IntentTaxonomy(Base):
    """Audit question with its intent classification"""
    __tablename__ = "intent_taxonomy"

    id = Column(String(36), primary_key=True, default=new_id)
    text = Column(Text, nullable=False)
    intent_class = Column(String(100), nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class BrandProfile(Base):
    """Brand Bible: canonical brand identity edited from the dashboard"""
    __tablename__ = "brand_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    url = Column(String(500), nullable=False, default="")
    logo_url = Column(String(500), default="")
    tagline = Column(String(500), default="")
    mission = Column(Text)
    value_proposition = Column(Text)
    industry = Column(String(255), default="")
    reading_level = Column(String(100))

    # JSON lists / objects
    geo_focus = Column(JSON, default=list)
    voice_attributes = Column(JSON, default=list)
    tone_per_channel = Column(JSON, default=dict)
    topic_pillars = Column(JSON, default=list)
    target_audiences = Column(JSON, default=list)
    terminology_dos = Column(JSON, default=list)
    terminology_donts = Column(JSON, default=list)
    content_rules = Column(JSON, default=list)
    benefits = Column(JSON, default=list)
    product_features = Column(JSON, default=list)
    competitors = Column(JSON, default=list)
    differentiators = Column(JSON, default=list)

    boilerplate_about = Column(Text, default="")
    boilerplate_disclaimer = Column(Text, default="")
    raw_document = Column(Text, default="")

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ContentItem(Base):
    """Ingested post (webhook or RSS) used as FAQ / blog schema source"""
    __tablename__ = "content_items"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(500), nullable=False)
    content = Column(Text, nullable=False)
    author = Column(String(255))
    source_type = Column(String(50), default="webhook", index=True)
    status = Column(String(50), default="new")

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class AppConfigEntry(Base):
    """Runtime config override: one top-level section per row"""
    __tablename__ = "app_config"

    key = Column(String(100), primary_key=True)
    value = Column(JSON, nullable=False)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# ============================================================================
# AUDIT
# ============================================================================

class AuditRun(Base):
    """One provider's pass over the intent taxonomy"""
    __tablename__ = "audit_runs"

    id = Column(String(36), primary_key=True, default=new_id)
    provider = Column(String(50), nullable=False, index=True)
    model = Column(String(100), nullable=False)
    total_prompts = Column(Integer, default=0)
    successful = Column(Integer, default=0)
    failed = Column(Integer, default=0)

    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime)

    results = relationship("AuditResult", back_populates="run", cascade="all, delete-orphan")


class AuditResult(Base):
    """One (prompt, provider) execution. Never mutated."""
    __tablename__ = "audit_results"

    id = Column(String(36), primary_key=True, default=new_id)
    run_id = Column(String(36), ForeignKey("audit_runs.id", ondelete="CASCADE"), nullable=False)
    prompt_id = Column(String(36), nullable=False)
    provider = Column(String(50), nullable=False)
    response_text = Column(Text, nullable=False)
    mentioned = Column(Boolean, default=False, nullable=False)
    mention_rank = Column(Integer)  # only set when mentioned
    similarity = Column(Float, nullable=False, default=0.0)
    meta = Column(JSON, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    run = relationship("AuditRun", back_populates="results")

    __table_args__ = (
        Index("ix_audit_results_provider_created", "provider", "created_at"),
    )


# ============================================================================
# REINFORCEMENT
# ============================================================================

class ReinforcementLog(Base):
    """Synthetic-prompt execution. Append-only."""
    __tablename__ = "reinforcement_logs"

    id = Column(String(36), primary_key=True, default=new_id)
    prompt_id = Column(String(36), nullable=False, index=True)
    provider = Column(String(50), nullable=False, index=True)
    model = Column(String(100), nullable=False)
    response = Column(Text, nullable=False)
    mentioned = Column(Boolean, default=False, nullable=False)
    similarity = Column(Float, nullable=False, default=0.0)
    meta = Column(JSON, default=dict)  # topic, blacklistHits, driftDetected

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


# ============================================================================
# COST & JOBS
# ============================================================================

class ApiCost(Base):
    """Per-call cost ledger. Append-only."""
    __tablename__ = "api_costs"

    id = Column(String(36), primary_key=True, default=new_id)
    provider = Column(String(50), nullable=False, index=True)
    model = Column(String(100), nullable=False)
    operation = Column(String(50), nullable=False)  # audit, reinforce, content
    job_run_id = Column(String(36), ForeignKey("job_runs.id", ondelete="SET NULL"))
    tokens_in = Column(Integer, nullable=False, default=0)
    tokens_out = Column(Integer, nullable=False, default=0)
    cost_usd = Column(Numeric(12, 4), nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class JobRun(Base):
    """Ledger entry for one audit / reinforcement / content-build invocation"""
    __tablename__ = "job_runs"

    id = Column(String(36), primary_key=True, default=new_id)
    job_type = Column(String(50), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=JobStatus.QUEUED.value)
    triggered_by = Column(String(50), nullable=False, default="scheduled")

    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime)
    duration_seconds = Column(Float)
    error_message = Column(Text)


class ContentArtifact(Base):
    """Generated structured-data artifact with its gate report"""
    __tablename__ = "content_artifacts"

    id = Column(String(36), primary_key=True, default=new_id)
    kind = Column(String(50), nullable=False, index=True)
    path = Column(String(500), nullable=False)
    content = Column(Text, nullable=False)
    gate_passed = Column(Boolean)
    gate_report = Column(JSON, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
