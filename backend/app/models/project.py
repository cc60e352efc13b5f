from datetime import datetime
import enum

from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, ForeignKey, JSON, Enum
from sqlalchemy.orm import relationship

from app.db.base import Base


class ProjectStatus(str, enum.Enum):
    draft = "draft"
    strategy_pending = "strategy_pending"
    strategy_ready = "strategy_ready"
    scenes_pending = "scenes_pending"
    scenes_ready = "scenes_ready"
    prompts_pending = "prompts_pending"
    prompts_ready = "prompts_ready"
    generating = "generating"
    post_production = "post_production"
    completed = "completed"
    archived = "archived"


class VersionType(str, enum.Enum):
    emotional = "emotional"
    technical = "technical"
    single = "single"


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), index=True, nullable=False)

    title = Column(String(255), nullable=False)
    product_name = Column(String(255), nullable=False)
    product_description = Column(Text, nullable=True)
    target_platforms = Column(JSON, default=list)
    target_audience = Column(Text, nullable=True)
    languages = Column(JSON, default=list)
    style = Column(String(100), nullable=False)
    tone = Column(String(100), nullable=False)
    additional_notes = Column(Text, nullable=True)
    source_url = Column(String(1024), nullable=True)
    # summary of the page at source_url
    source_context = Column(JSON, nullable=True)

    brand_kit_id = Column(Integer, ForeignKey("brand_kits.id", ondelete="SET NULL"), nullable=True)
    template_id = Column(Integer, ForeignKey("templates.id", ondelete="SET NULL"), nullable=True)
    code_context_id = Column(Integer, ForeignKey("code_contexts.id", ondelete="SET NULL"), nullable=True)

    # hook, narrative_arc, key_messages, cta, ... (or version_a / version_b)
    strategy = Column(JSON, nullable=True)
    strategy_approved = Column(Boolean, default=False)

    status = Column(Enum(ProjectStatus), default=ProjectStatus.draft, nullable=False)
    current_step = Column(Integer, default=1, nullable=False)

    is_ab_variant = Column(Boolean, default=False)
    parent_project_id = Column(Integer, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True)
    version_type = Column(Enum(VersionType), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    scenes = relationship(
        "Scene",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="Scene.sort_order",
    )
    generations = relationship("Generation", back_populates="project", cascade="all, delete-orphan")
    versions = relationship("ProjectVersion", back_populates="project", cascade="all, delete-orphan")
    brand_kit = relationship("BrandKit")
    code_context = relationship("CodeContext")

    def advance(self, status: ProjectStatus, step: int) -> None:
        """Set the status and the workflow step that goes with it."""
        self.status = status
        self.current_step = step


class ProjectVersion(Base):
    __tablename__ = "project_versions"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), index=True)

    step = Column(String(32), nullable=False)  # strategy | scenes | prompts
    version_number = Column(Integer, nullable=False)
    snapshot = Column(JSON, nullable=False)
    change_description = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    project = relationship("Project", back_populates="versions")
