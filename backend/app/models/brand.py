from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Float, Boolean, JSON
from sqlalchemy.orm import relationship

from app.db.base import Base


class BrandKit(Base):
    __tablename__ = "brand_kits"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), index=True, nullable=False)

    name = Column(String(255), nullable=False)
    # {"primary": "#RRGGBB", "secondary": ..., "accent": ..., "background": ..., "text": ...}
    colors = Column(JSON, nullable=True)
    # {"heading": ..., "body": ..., "caption": ...}
    fonts = Column(JSON, nullable=True)
    brand_voice = Column(Text, nullable=True)

    logo_url = Column(String(1024), nullable=True)
    watermark_url = Column(String(1024), nullable=True)
    watermark_position = Column(String(16), default="bottom-right")
    watermark_opacity = Column(Float, default=0.3)

    is_default = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    assets = relationship("BrandAsset", back_populates="brand_kit", cascade="all, delete-orphan")


class BrandAsset(Base):
    __tablename__ = "brand_assets"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), index=True, nullable=False)
    brand_kit_id = Column(Integer, ForeignKey("brand_kits.id", ondelete="CASCADE"), nullable=True, index=True)

    name = Column(String(255), nullable=False)
    type = Column(String(32), nullable=False)  # logo | watermark | image | video | audio | font
    file_url = Column(String(1024), nullable=False)
    file_size = Column(Integer, nullable=True)
    mime_type = Column(String(128), nullable=True)
    tags = Column(JSON, default=list)
    # dominant colors extracted from image assets
    palette = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    brand_kit = relationship("BrandKit", back_populates="assets")
