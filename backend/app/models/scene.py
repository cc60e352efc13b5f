from datetime import datetime
import enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Boolean, JSON, Enum
from sqlalchemy.orm import relationship

from app.db.base import Base


class AudioType(str, enum.Enum):
    native_veo = "native_veo"
    tts_voiceover = "tts_voiceover"
    silent = "silent"


class Scene(Base):
    __tablename__ = "scenes"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), index=True)

    scene_number = Column(Integer, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)

    # 4, 6 or 8 seconds
    duration_seconds = Column(Integer, default=8, nullable=False)
    aspect_ratio = Column(String(8), default="9:16")
    resolution = Column(String(16), default="1080p")

    user_prompt = Column(Text, nullable=True)
    optimized_prompt = Column(Text, nullable=True)
    negative_prompt = Column(Text, nullable=True)
    prompt_approved = Column(Boolean, default=False)

    camera_movement = Column(String(100), nullable=True)
    lighting = Column(String(100), nullable=True)
    text_overlay = Column(Text, nullable=True)

    audio_type = Column(Enum(AudioType), default=AudioType.native_veo)
    voiceover_text = Column(Text, nullable=True)
    voiceover_language = Column(String(8), nullable=True)
    voiceover_voice = Column(String(64), nullable=True)

    reference_image_urls = Column(JSON, nullable=True)
    # {"template_id", "screenshot_url", "background_color"}
    phone_mockup_config = Column(JSON, nullable=True)
    mockup_image_url = Column(String(1024), nullable=True)
    sort_order = Column(Integer, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    project = relationship("Project", back_populates="scenes")
    generations = relationship("Generation", back_populates="scene")
