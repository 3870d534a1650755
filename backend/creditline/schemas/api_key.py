"""APIKey schema."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from creditline.core.shared_models import ApiKeyType


class APIKeyCreate(BaseModel):
    """Schema for creating an APIKey object."""

    name: Optional[str] = None
    key_type: ApiKeyType = ApiKeyType.SECRET
    expiration_days: Optional[int] = Field(
        default=None,
        description="Number of days until the API key expires. None means it never expires.",
    )

    @field_validator("expiration_days")
    def check_expiration_days(cls, v: Optional[int]) -> Optional[int]:
        """Validate the expiration days.

        Args:
        ----
            v (int): The number of days until expiration.

        Raises:
        ------
            ValueError: If the expiration days is invalid.

        Returns:
        -------
            int: The validated expiration days.

        """
        if v is not None and v < 1:
            raise ValueError("Expiration days must be at least 1.")
        return v

