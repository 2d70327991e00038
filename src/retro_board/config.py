"""Configuration for the retrospective board services."""

import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


@dataclass
class BoardConfig:
    """Main configuration for the board data services."""

    # Organization
    organization_url: str = ""
    personal_access_token: Optional[str] = None

    # Extension data storage
    extension_publisher: str = ""
    extension_id: str = ""
    data_scope_type: str = "Default"
    data_scope_value: str = "Current"
    extension_data_api_version: str = "7.1-preview.1"

    # Work item tracking
    work_item_api_version: str = "7.1"

    # HTTP settings
    request_timeout_seconds: float = 30.0

    # Current user
    user_id: str = ""
    user_display_name: str = ""
    user_unique_name: str = ""

    @property
    def extension_data_url(self) -> str:
        """Base URL of the extension management service for the organization."""
        org_url = self.organization_url.rstrip("/")
        if org_url.startswith("https://dev.azure.com/"):
            return org_url.replace("https://dev.azure.com/", "https://extmgmt.dev.azure.com/", 1)
        return org_url

    @classmethod
    def from_env(cls) -> "BoardConfig":
        """Load configuration from environment variables."""
        return cls(
            organization_url=os.getenv("AZURE_DEVOPS_ORG_URL", ""),
            personal_access_token=os.getenv("AZURE_DEVOPS_PAT"),
            extension_publisher=os.getenv("EXTENSION_PUBLISHER", ""),
            extension_id=os.getenv("EXTENSION_ID", ""),
            data_scope_type=os.getenv("DATA_SCOPE_TYPE", "Default"),
            data_scope_value=os.getenv("DATA_SCOPE_VALUE", "Current"),
            extension_data_api_version=os.getenv("EXTENSION_DATA_API_VERSION", "7.1-preview.1"),
            work_item_api_version=os.getenv("WORK_ITEM_API_VERSION", "7.1"),
            request_timeout_seconds=float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30")),
            user_id=os.getenv("USER_ID", ""),
            user_display_name=os.getenv("USER_DISPLAY_NAME", ""),
            user_unique_name=os.getenv("USER_UNIQUE_NAME", ""),
        )


def get_config() -> BoardConfig:
    """Get the current configuration."""
    return BoardConfig.from_env()
