"""Client configuration."""

from pydantic import BaseModel, Field, field_validator

from .constants import DEFAULT_MAX_KEEPALIVES, DEFAULT_PORT, DEFAULT_TIMEOUT, Flag
from .packets import flags_from


class ClientConfig(BaseModel):
    """Settings for an ``OwnetClient``."""

    host: str = Field("localhost", min_length=1, description="owserver host")
    port: int = Field(DEFAULT_PORT, ge=1, le=65535, description="owserver port")
    flags: list[str] = Field(
        default_factory=lambda: ["persistence", "uncached"],
        description="Flag names sent with every request",
    )
    timeout: float = Field(DEFAULT_TIMEOUT, gt=0, description="Socket timeout in seconds")
    max_keepalives: int = Field(
        DEFAULT_MAX_KEEPALIVES, ge=1, description="Empty headers tolerated while waiting for a value"
    )

    @field_validator("flags")
    @classmethod
    def _known_flags(cls, value: list[str]) -> list[str]:
        names = [name.lower() for name in value]
        unknown = [name for name in names if name.upper() not in Flag.__members__]
        if unknown:
            raise ValueError(f"Unknown flags: {', '.join(unknown)}")
        return names

    @property
    def flag_mask(self) -> int:
        return flags_from(self.flags)
