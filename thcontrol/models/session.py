"""
Session and sync status models.

The session user only exists on this device: it is mirrored to local
storage but never pushed to the remote document.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class UserRole(str, Enum):
    ADMIN = "admin"
    RESIDENT = "resident"


class User(BaseModel):
    """The person logged in on this device."""
    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        str_strip_whitespace=True,
    )

    role: UserRole
    username: str = ""
    condo_key: str = Field(
        default="",
        alias="condoKey",
        repr=False,
        description="Credential used to log in"
    )
    house_id: Optional[str] = Field(default=None, alias="houseId")

    @model_validator(mode='after')
    def resident_needs_house(self) -> 'User':
        if self.role == UserRole.RESIDENT and not self.house_id:
            raise ValueError("A resident session must be bound to a house")
        return self

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class SyncIndicator(str, Enum):
    """What the sync badge shows. Derived only from synchronizer state."""
    SYNCING = "syncing"
    LOCAL_MODE = "local_mode"
    UP_TO_DATE = "up_to_date"


class PullOutcome(str, Enum):
    """How a pull ended."""
    LOADED = "loaded"              # fetched an existing document
    CREATED = "created"            # no id was known, minted a new document
    INVALID_CODE = "invalid_code"  # manually entered id does not exist
    RECOVERED = "recovered"        # stored id was stale, minted a replacement
    OFFLINE = "offline"            # remote unreachable, local state kept
    SKIPPED = "skipped"            # another pull was already running
