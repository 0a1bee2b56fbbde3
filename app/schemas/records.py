from __future__ import annotations

from collections.abc import Iterable
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError


class Record(BaseModel):
    """Base for rows decoded from the record store.

    Unknown columns are ignored and numeric ids are read as strings, since the
    store may hand back either depending on the column type.
    """

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True, frozen=True)


RecordT = TypeVar("RecordT", bound=Record)


class MalformedRecordError(ValueError):
    def __init__(self, collection: str, detail: str):
        super().__init__(f"malformed {collection} record: {detail}")
        self.collection = collection
        self.detail = detail


class InviteLink(Record):
    id: str | None = None
    code: str
    owner_id: str | None = None
    list_id: str | None = None
    is_active: bool = True


class User(Record):
    uid: str
    display_name: str | None = None
    avatar_url: str | None = None
    email: str | None = None


class WishList(Record):
    id: str
    uid: str
    title: str | None = None


class Friendship(Record):
    id: str | None = None
    user_id: str
    friend_user_id: str


class ListShare(Record):
    id: str | None = None
    list_uid: str
    shared_with_user_id: str
    can_edit: bool = False


# Projections (the store only returns the selected columns)


class OwnerInfo(Record):
    display_name: str | None = None
    avatar_url: str | None = None


class ListInfo(Record):
    title: str | None = None


class UserSummary(Record):
    uid: str
    display_name: str | None = None
    avatar_url: str | None = None


def decode_records(model: type[RecordT], collection: str, rows: Iterable[Any]) -> list[RecordT]:
    out: list[RecordT] = []
    for row in rows:
        if not isinstance(row, dict):
            raise MalformedRecordError(collection, f"expected an object, got {type(row).__name__}")
        try:
            out.append(model.model_validate(row))
        except ValidationError as exc:
            raise MalformedRecordError(collection, str(exc)) from exc
    return out
