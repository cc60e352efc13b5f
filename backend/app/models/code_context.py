from datetime import datetime
import enum

from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, Enum

from app.db.base import Base


class CodeContextSource(str, enum.Enum):
    repomix_upload = "repomix_upload"
    github_pat = "github_pat"


class CodeContext(Base):
    """Marketing-oriented analysis of an app's codebase."""

    __tablename__ = "code_contexts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), index=True, nullable=False)

    name = Column(String(255), nullable=False)
    source_type = Column(Enum(CodeContextSource), nullable=False)
    repo_url = Column(String(1024), nullable=True)
    raw_file_url = Column(String(1024), nullable=True)

    # app_name, app_type, tech_stack, main_features, key_screens, marketing_angles, ...
    analysis = Column(JSON, nullable=False)
    file_tree = Column(Text, nullable=True)
    token_count = Column(Integer, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
