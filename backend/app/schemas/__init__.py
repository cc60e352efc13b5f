from .project import Project, ProjectCreate, ProjectUpdate, ProjectVersion, AbVariantCreate
from .scene import Scene, SceneCreate, SceneUpdate, SceneReorder
from .generation import (
    Generation,
    VideoGenerateRequest,
    BatchGenerateRequest,
    BatchGenerateResponse,
    GenerationStatusResponse,
    RetryRequest,
    ExtendRequest,
    ImageGenerateRequest,
    MockupRequest,
    MockupResponse,
    VoiceoverRequest,
    Caption,
)
from .ai import (
    StrategyRequest,
    StrategyResponse,
    ScenesRequest,
    OptimizePromptRequest,
    RefineRequest,
    RefineResponse,
    CaptionRequest,
    CaptionResponse,
    Insight,
    InsightsResponse,
)
from .process import (
    StitchRequest,
    StitchResponse,
    ExportRequest,
    ExportResponse,
    ExportPackage,
    ExportVideo,
    WatermarkRequest,
    CaptionEmbedRequest,
)
from .brand import BrandKit, BrandKitCreate, BrandKitUpdate, BrandAsset
from .campaign import (
    Campaign,
    CampaignCreate,
    CampaignUpdate,
    CampaignPerformanceResponse,
    PerformanceAggregate,
    PerformanceRow,
    PublishAdRequest,
    PublishAdResponse,
    PublishResult,
    AdDeployment,
    SyncPerformanceRequest,
    Targeting,
)
from .template import Template, TemplateCreate
from .calendar import CalendarEvent, CalendarEventCreate, CalendarEventUpdate
from .notification import Notification
from .api_key import ApiKeySave, ApiKeyStatus
from .analytics import BudgetStatus, UsageSummary, ProjectStats, NewbeeInsights
from .context import (
    ContextFetchRequest,
    ContextFetchResponse,
    SummarizedContext,
    CodeAnalysis,
    CodeContext,
    CodeContextGithubRequest,
    CodeContextUpdate,
)

__all__ = [
    "Project",
    "ProjectCreate",
    "ProjectUpdate",
    "ProjectVersion",
    "AbVariantCreate",
    "Scene",
    "SceneCreate",
    "SceneUpdate",
    "SceneReorder",
    "Generation",
    "VideoGenerateRequest",
    "BatchGenerateRequest",
    "BatchGenerateResponse",
    "GenerationStatusResponse",
    "RetryRequest",
    "ExtendRequest",
    "ImageGenerateRequest",
    "MockupRequest",
    "MockupResponse",
    "VoiceoverRequest",
    "Caption",
    "StrategyRequest",
    "StrategyResponse",
    "ScenesRequest",
    "OptimizePromptRequest",
    "RefineRequest",
    "RefineResponse",
    "CaptionRequest",
    "CaptionResponse",
    "Insight",
    "InsightsResponse",
    "StitchRequest",
    "StitchResponse",
    "ExportRequest",
    "ExportResponse",
    "ExportPackage",
    "ExportVideo",
    "WatermarkRequest",
    "CaptionEmbedRequest",
    "BrandKit",
    "BrandKitCreate",
    "BrandKitUpdate",
    "BrandAsset",
    "Campaign",
    "CampaignCreate",
    "CampaignUpdate",
    "CampaignPerformanceResponse",
    "PerformanceAggregate",
    "PerformanceRow",
    "PublishAdRequest",
    "PublishAdResponse",
    "PublishResult",
    "AdDeployment",
    "SyncPerformanceRequest",
    "Targeting",
    "Template",
    "TemplateCreate",
    "CalendarEvent",
    "CalendarEventCreate",
    "CalendarEventUpdate",
    "Notification",
    "ApiKeySave",
    "ApiKeyStatus",
    "BudgetStatus",
    "UsageSummary",
    "ProjectStats",
    "NewbeeInsights",
    "ContextFetchRequest",
    "ContextFetchResponse",
    "SummarizedContext",
    "CodeAnalysis",
    "CodeContext",
    "CodeContextGithubRequest",
    "CodeContextUpdate",
]
