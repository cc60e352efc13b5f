from datetime import datetime
import enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Float, Boolean, JSON, Enum
from sqlalchemy.orm import relationship

from app.db.base import Base


class GenerationType(str, enum.Enum):
    video = "video"
    image = "image"
    voiceover = "voiceover"
    stitched = "stitched"


class GenerationStatus(str, enum.Enum):
    pending = "pending"
    queued = "queued"
    processing = "processing"
    completed = "completed"
    failed = "failed"


TERMINAL_STATUSES = (GenerationStatus.completed, GenerationStatus.failed)


class Generation(Base):
    __tablename__ = "generations"

    id = Column(Integer, primary_key=True, index=True)

    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), index=True)
    scene_id = Column(Integer, ForeignKey("scenes.id", ondelete="SET NULL"), nullable=True, index=True)

    type = Column(Enum(GenerationType), nullable=False)
    prompt = Column(Text, nullable=True)
    model = Column(String(128), nullable=False)
    # duration_seconds, aspect_ratio, negative_prompt, resolution, ...
    config = Column(JSON, nullable=True)

    language = Column(String(8), nullable=True)
    platform = Column(String(64), nullable=True)
    aspect_ratio = Column(String(8), nullable=True)

    # long-running operation name returned by the video API
    operation_name = Column(String(512), nullable=True)
    status = Column(Enum(GenerationStatus), default=GenerationStatus.pending, nullable=False)

    output_url = Column(String(1024), nullable=True)
    thumbnail_url = Column(String(1024), nullable=True)
    output_metadata = Column(JSON, nullable=True)

    estimated_cost_usd = Column(Float, nullable=True)
    actual_cost_usd = Column(Float, nullable=True)

    error_message = Column(Text, nullable=True)
    retry_count = Column(Integer, default=0, nullable=False)

    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    project = relationship("Project", back_populates="generations")
    scene = relationship("Scene", back_populates="generations")
    captions = relationship("Caption", back_populates="generation", cascade="all, delete-orphan")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class Caption(Base):
    __tablename__ = "captions"

    id = Column(Integer, primary_key=True, index=True)
    generation_id = Column(Integer, ForeignKey("generations.id", ondelete="CASCADE"), index=True)

    language = Column(String(8), nullable=False)
    srt_content = Column(Text, nullable=False)
    srt_url = Column(String(1024), nullable=True)
    is_embedded = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    generation = relationship("Generation", back_populates="captions")
