from __future__ import annotations

from pydantic import BaseModel

from app.schemas.records import ListInfo, OwnerInfo
from app.schemas.outcomes import QueryOutcome

DEFAULT_OWNER_NAME = "Someone"


class InviteDetails(BaseModel):
    code: str
    owner_id: str | None = None
    list_id: str | None = None
    owner: OwnerInfo | None = None
    list: ListInfo | None = None

    @property
    def owner_display_name(self) -> str:
        name = self.owner.display_name if self.owner else None
        if isinstance(name, str) and name.strip():
            return name.strip()
        return DEFAULT_OWNER_NAME

    @property
    def owner_avatar_url(self) -> str | None:
        url = self.owner.avatar_url if self.owner else None
        return url.strip() if isinstance(url, str) and url.strip() else None

    @property
    def list_title(self) -> str | None:
        title = self.list.title if self.list else None
        return title if isinstance(title, str) and title.strip() else None

    @property
    def is_list_invite(self) -> bool:
        return self.list_title is not None


class InviteLookup(BaseModel):
    outcome: QueryOutcome
    invite: InviteDetails | None = None

    @property
    def found(self) -> bool:
        return self.outcome is QueryOutcome.FOUND and self.invite is not None


class AcceptInviteResult(BaseModel):
    owner_id: str
    friendship_created: bool
    list_uid: str | None = None
    list_shared: bool = False
