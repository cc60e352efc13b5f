from app.db.base import Base
from .project import Project, ProjectStatus, ProjectVersion, VersionType
from .scene import Scene, AudioType
from .generation import Generation, GenerationType, GenerationStatus, Caption, TERMINAL_STATUSES
from .brand import BrandKit, BrandAsset
from .campaign import (
    Campaign,
    CampaignStatus,
    AdPlatform,
    AdDeployment,
    AdDeploymentStatus,
    CampaignPerformance,
)
from .template import Template, TemplateCategory
from .calendar_event import CalendarEvent, CalendarEventStatus
from .usage import UsageLog, RateLimitBucket
from .notification import Notification, NotificationType
from .api_key import ApiKey
from .code_context import CodeContext, CodeContextSource

__all__ = [
    "Base",
    "Project",
    "ProjectStatus",
    "ProjectVersion",
    "VersionType",
    "Scene",
    "AudioType",
    "Generation",
    "GenerationType",
    "GenerationStatus",
    "Caption",
    "TERMINAL_STATUSES",
    "BrandKit",
    "BrandAsset",
    "Campaign",
    "CampaignStatus",
    "AdPlatform",
    "AdDeployment",
    "AdDeploymentStatus",
    "CampaignPerformance",
    "Template",
    "TemplateCategory",
    "CalendarEvent",
    "CalendarEventStatus",
    "UsageLog",
    "RateLimitBucket",
    "Notification",
    "NotificationType",
    "ApiKey",
    "CodeContext",
    "CodeContextSource",
]
