"""Agent configuration."""

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Agent settings loaded from environment variables."""

    # Convergence polling
    max_attempts: int = 120
    empty_table_wait: float = 3.0  # seconds, agent reported no interfaces yet
    mismatch_wait: float = 1.0  # seconds, interfaces reported but not all bound

    # Network configuration agent
    network_config_command: list[str] = ["oci-network-config", "-c"]
    command_timeout: float = 60.0

    # Instance metadata service
    metadata_url: str = "http://169.254.169.254/opc/v2/instance/"
    metadata_timeout: float = 10.0

    # OCI CLI
    oci_cli: str = "oci"
    oci_auth: str = "instance_principal"
    public_ip_max_wait_seconds: int = 60

    # Provisioning visibility polling
    vnic_visible_attempts: int = 90
    attachment_state_attempts: int = 90
    provisioning_poll_interval: float = 1.0  # seconds

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    @field_validator("max_attempts", "vnic_visible_attempts", "attachment_state_attempts")
    @classmethod
    def _at_least_one(cls, value: int) -> int:
        if value < 1:
            raise ValueError("attempt counts must be at least 1")
        return value

    @field_validator("empty_table_wait", "mismatch_wait", "provisioning_poll_interval")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("wait intervals cannot be negative")
        return value

    @field_validator("network_config_command")
    @classmethod
    def _non_empty_command(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("network_config_command cannot be empty")
        return value

    class Config:
        env_prefix = "VNIC_AGENT_"


settings = Settings()
