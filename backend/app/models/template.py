from datetime import datetime
import enum

from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, JSON, Enum

from app.db.base import Base


class TemplateCategory(str, enum.Enum):
    product_launch = "product_launch"
    feature_highlight = "feature_highlight"
    testimonial = "testimonial"
    tutorial = "tutorial"
    brand_story = "brand_story"
    event_promo = "event_promo"
    social_proof = "social_proof"
    comparison = "comparison"


class Template(Base):
    __tablename__ = "templates"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), index=True, nullable=True)  # null for built-in templates

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(Enum(TemplateCategory), nullable=False)

    # [{"title": ..., "description": ..., "duration_seconds": 6, ...}]
    scene_structure = Column(JSON, default=list)
    default_style = Column(String(100), nullable=True)
    default_tone = Column(String(100), nullable=True)
    platforms = Column(JSON, default=list)

    is_public = Column(Boolean, default=False)
    usage_count = Column(Integer, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)
