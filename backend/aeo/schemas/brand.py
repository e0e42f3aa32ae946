"""
Brand Bible Schemas
"""

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


class TargetAudience(BaseModel):
    """Ideal customer profile attached to the brand"""
    name: str = ""
    description: str = ""
    pain_points: List[str] = Field(default_factory=list)
    goals: List[str] = Field(default_factory=list)
    jobs_to_be_done: List[str] = Field(default_factory=list)
    geos: List[str] = Field(default_factory=list)
    segments: List[str] = Field(default_factory=list)

    @field_validator("name", "description", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return v if isinstance(v, str) else ""

    @field_validator("pain_points", "goals", "jobs_to_be_done", "geos", "segments", mode="before")
    @classmethod
    def coerce_list(cls, v: Any) -> List[str]:
        return _string_list(v)

    @classmethod
    def from_raw(cls, raw: Any) -> "TargetAudience":
        """Accept either snake_case or the dashboard's camelCase keys"""
        obj = raw if isinstance(raw, dict) else {}
        return cls(
            name=obj.get("name"),
            description=obj.get("description"),
            pain_points=obj.get("pain_points", obj.get("painPoints")),
            goals=obj.get("goals"),
            jobs_to_be_done=obj.get("jobs_to_be_done", obj.get("jobsToBeDone")),
            geos=obj.get("geos"),
            segments=obj.get("segments"),
        )


class BrandBible(BaseModel):
    """Canonical brand identity. Read-only to the audit core."""
    model_config = ConfigDict(from_attributes=True)

    id: int = 0
    name: str
    url: str = ""
    logo_url: str = ""
    tagline: str = ""
    mission: str = ""
    value_proposition: str = ""
    industry: str = ""
    reading_level: str = ""
    geo_focus: List[str] = Field(default_factory=list)
    voice_attributes: List[str] = Field(default_factory=list)
    tone_per_channel: Dict[str, str] = Field(default_factory=dict)
    topic_pillars: List[str] = Field(default_factory=list)
    target_audiences: List[TargetAudience] = Field(default_factory=list)
    terminology_dos: List[str] = Field(default_factory=list)
    terminology_donts: List[str] = Field(default_factory=list)
    content_rules: List[str] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)
    product_features: List[str] = Field(default_factory=list)
    competitors: List[str] = Field(default_factory=list)
    differentiators: List[str] = Field(default_factory=list)
    boilerplate_about: str = ""
    boilerplate_disclaimer: str = ""

    @field_validator(
        "url", "logo_url", "tagline", "mission", "value_proposition",
        "industry", "reading_level", "boilerplate_about", "boilerplate_disclaimer",
        mode="before",
    )
    @classmethod
    def none_to_empty(cls, v: Any) -> str:
        return v if isinstance(v, str) else ""

    @field_validator(
        "geo_focus", "voice_attributes", "topic_pillars", "terminology_dos",
        "terminology_donts", "content_rules", "benefits", "product_features",
        "competitors", "differentiators",
        mode="before",
    )
    @classmethod
    def coerce_list(cls, v: Any) -> List[str]:
        return _string_list(v)

    @field_validator("tone_per_channel", mode="before")
    @classmethod
    def coerce_record(cls, v: Any) -> Dict[str, str]:
        return v if isinstance(v, dict) else {}

    @field_validator("target_audiences", mode="before")
    @classmethod
    def coerce_audiences(cls, v: Any) -> List[TargetAudience]:
        if not isinstance(v, list):
            return []
        return [a if isinstance(a, TargetAudience) else TargetAudience.from_raw(a) for a in v]

    @property
    def jobs_to_be_done(self) -> List[str]:
        return [job for audience in self.target_audiences for job in audience.jobs_to_be_done]

    def short_description(self, max_pillars: int = 3) -> str:
        """Compact brand description for embedding"""
        summary = self.value_proposition or self.mission or self.tagline
        text = f"{self.name}: {summary}" if summary else self.name
        if self.topic_pillars:
            text += " Focus areas: " + ", ".join(self.topic_pillars[:max_pillars]) + "."
        return text


def from_db_row(row: Any) -> BrandBible:
    """Build a BrandBible from a BrandProfile row, tolerating malformed JSON columns"""
    return BrandBible.model_validate(row)
