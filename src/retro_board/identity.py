"""Identity of the user acting on the board."""

from dataclasses import dataclass, field
from typing import Optional, Protocol

from .config import BoardConfig

# Identity keys owned by the model; descriptors, links and the like go to `extra`.
_KNOWN_KEYS = {"id", "displayName", "uniqueName", "imageUrl"}


@dataclass
class UserIdentity:
    """Identity reference stored on feedback items."""

    id: str
    display_name: str = ""
    unique_name: str = ""
    image_url: str = ""
    extra: dict = field(default_factory=dict)

    def to_document(self) -> dict:
        doc = dict(self.extra)
        doc.update({
            "id": self.id,
            "displayName": self.display_name,
            "uniqueName": self.unique_name,
            "imageUrl": self.image_url,
        })
        return doc

    @classmethod
    def from_document(cls, data: Optional[dict]) -> Optional["UserIdentity"]:
        if not data:
            return None
        return cls(
            id=data.get("id", ""),
            display_name=data.get("displayName", ""),
            unique_name=data.get("uniqueName", ""),
            image_url=data.get("imageUrl", ""),
            extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
        )


class IdentityResolverProtocol(Protocol):
    """Protocol for resolving the current user."""

    def get_user_identity(self) -> UserIdentity:
        """Return the identity of the current user."""
        ...


class StaticIdentityResolver:
    """Resolver that always returns the identity it was given."""

    def __init__(self, identity: UserIdentity):
        self.identity = identity

    @classmethod
    def from_config(cls, config: BoardConfig) -> "StaticIdentityResolver":
        return cls(UserIdentity(
            id=config.user_id,
            display_name=config.user_display_name,
            unique_name=config.user_unique_name,
        ))

    def get_user_identity(self) -> UserIdentity:
        return self.identity
