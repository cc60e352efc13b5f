from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class VideoOperation:
    name: str
    done: bool
    video_uri: Optional[str] = None
    video_bytes: Optional[bytes] = None
    error: Optional[str] = None


class BaseVideoService(ABC):

    @abstractmethod
    def start_generation(
        self,
        prompt: str,
        *,
        model: str,
        aspect_ratio: str = "9:16",
        duration_seconds: int = 8,
        negative_prompt: Optional[str] = None,
        resolution: Optional[str] = None,
        source_video_uri: Optional[str] = None,
    ) -> str:
        """
        Submit a long-running generation.
        Returns: the operation name to poll
        """

    @abstractmethod
    def get_operation(self, operation_name: str, model: Optional[str] = None) -> VideoOperation:
        """Fetch the current state of a submitted operation."""

    @abstractmethod
    def download_video(self, uri: str) -> bytes:
        """Fetch the finished video from wherever the provider left it."""
