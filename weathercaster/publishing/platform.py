"""Contract for the video hosting platform used by the publishing pipeline."""

from abc import ABC, abstractmethod
from typing import Optional

from weathercaster.publishing.models import AssetRecord, PublishOptions, UploadSession


class MediaPlatformInterface(ABC):
    """Session creation, upload lookup and status query against the platform"""

    @abstractmethod
    async def create_upload(self, options: PublishOptions) -> UploadSession:
        ...

    @abstractmethod
    async def retrieve_upload_asset_id(self, upload_id: str) -> Optional[str]:
        ...

    @abstractmethod
    async def retrieve_asset(self, asset_id: str) -> AssetRecord:
        ...

    @abstractmethod
    async def check_health(self) -> Optional[str]:
        """Return None when healthy, otherwise a short description of the problem."""
        ...
