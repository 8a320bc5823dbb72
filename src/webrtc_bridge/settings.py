"""Application settings management using Pydantic."""

import re

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PHONE_NUMBER_PATTERN = re.compile(r"^\+1[2-9][0-9]{9}$")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        populate_by_name=True,
    )

    # Required settings
    account_id: str = Field(
        ...,
        alias="BW_ACCOUNT_ID",
        description="Provider account id shared by the voice and WebRTC APIs"
    )

    username: str = Field(
        ...,
        alias="BW_USERNAME",
        description="API basic-auth user name"
    )

    password: str = Field(
        ...,
        alias="BW_PASSWORD",
        description="API basic-auth password"
    )

    application_number: str = Field(
        ...,
        alias="BW_NUMBER",
        description="Telephone number owned by this application (the 'from' number)"
    )

    voice_application_id: str = Field(
        ...,
        alias="BW_VOICE_APPLICATION_ID",
        description="Voice application id used when placing calls"
    )

    base_callback_url: str = Field(
        ...,
        alias="BASE_CALLBACK_URL",
        description="Public base URL for webhooks (e.g., ngrok tunnel)"
    )

    # Provider endpoints
    webrtc_api_url: str = Field(
        default="https://api.webrtc.bandwidth.com/v1",
        alias="BANDWIDTH_WEBRTC_CALL_CONTROL_URL",
        description="WebRTC session API base URL"
    )

    voice_api_url: str = Field(
        default="https://voice.bandwidth.com/api/v2",
        alias="BANDWIDTH_VOICE_API_URL",
        description="Voice call-control API base URL"
    )

    webrtc_sip_uri: str = Field(
        default="sip:sipx.webrtc.bandwidth.com:5060",
        alias="WEBRTC_SIP_URI",
        description="SIP trunk endpoint of the WebRTC platform"
    )

    # Call handling
    session_tag: str = Field(
        default="v2-voice-conference-model",
        alias="SESSION_TAG",
        description="Tag attached to the WebRTC session"
    )

    hold_pause_seconds: int = Field(
        default=120,
        alias="HOLD_PAUSE_SECONDS",
        description="Pause length used to keep a call alive while the other leg is set up"
    )

    end_bridge_pause_seconds: int = Field(
        default=10,
        alias="END_BRIDGE_PAUSE_SECONDS",
        description="Pause length returned when a bridge completes"
    )

    provider_timeout_seconds: float = Field(
        default=15.0,
        alias="PROVIDER_TIMEOUT_SECONDS",
        description="Total timeout for a single provider API request"
    )

    port: int = Field(default=5000, alias="PORT")

    @field_validator("base_callback_url")
    @classmethod
    def validate_base_callback_url(cls, v: str) -> str:
        """Validate callback base URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("BASE_CALLBACK_URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("webrtc_api_url", "voice_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize API base URLs."""
        return v.rstrip("/")

    @field_validator("application_number")
    @classmethod
    def validate_application_number(cls, v: str) -> str:
        """Validate the application number is a US E.164 number."""
        if not PHONE_NUMBER_PATTERN.match(v):
            raise ValueError("BW_NUMBER must be in format +1NXXNXXXXXX")
        return v

    def callback_url(self, path: str) -> str:
        """Build an absolute webhook URL for the given path."""
        return f"{self.base_callback_url}/{path.lstrip('/')}"


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()
