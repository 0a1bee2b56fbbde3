from __future__ import annotations

import logging

from app.schemas.invites import AcceptInviteResult, InviteDetails, InviteLookup
from app.schemas.outcomes import QueryOutcome
from app.schemas.records import (
    InviteLink,
    ListInfo,
    MalformedRecordError,
    OwnerInfo,
    RecordT,
    decode_records,
)
from app.services.record_store import RecordStoreClient, RecordStoreUnavailable
from app.services.social_links import SocialGraphLinker

logger = logging.getLogger(__name__)

INVITE_LINKS = "invite_links"
USERS = "users"
LISTS = "lists"

INVALID_INVITE_MESSAGE = "This invite link is invalid or has expired."
MISSING_CODE_MESSAGE = "No invite code provided."


def normalize_invite_code(code: str | None) -> str:
    if not isinstance(code, str):
        return ""
    return code.strip().upper()


def build_deep_link(scheme: str, code: str) -> str:
    return f"{scheme}://invite/{code}"


class InviteResolver:
    """Invite code -> owner and (optional) list, as three separate lookups.

    The store's REST surface gives no join guarantees, so the owner and list
    are fetched one after the other and each may come back empty without
    failing the invite.
    """

    def __init__(self, store: RecordStoreClient):
        self.store = store

    async def _lookup_one(
        self,
        model: type[RecordT],
        collection: str,
        filters: dict[str, str],
        select: str,
    ) -> RecordT | None:
        result = await self.store.query(collection, filters, select=select)
        if result.failed:
            logger.warning("Lookup in %s failed (%s); continuing without it", collection, result.detail)
            return None
        if not result.found:
            return None
        try:
            return decode_records(model, collection, result.rows[:1])[0]
        except MalformedRecordError:
            logger.warning("Ignoring malformed %s row", collection, exc_info=True)
            return None

    async def lookup(self, code: str | None) -> InviteLookup:
        normalized = normalize_invite_code(code)
        if not normalized:
            return InviteLookup(outcome=QueryOutcome.NOT_FOUND)

        result = await self.store.query(
            INVITE_LINKS,
            {"code": normalized, "is_active": True},
            select="*",
        )
        if result.failed:
            return InviteLookup(outcome=QueryOutcome.TRANSIENT_FAILURE)
        if not result.found:
            return InviteLookup(outcome=QueryOutcome.NOT_FOUND)

        if len(result.rows) > 1:
            logger.warning(
                "%d active invite links share code %s; using the first",
                len(result.rows),
                normalized,
            )

        try:
            link = decode_records(InviteLink, INVITE_LINKS, result.rows[:1])[0]
        except MalformedRecordError:
            logger.warning("Malformed invite link row for code %s", normalized, exc_info=True)
            return InviteLookup(outcome=QueryOutcome.NOT_FOUND)

        owner = None
        if link.owner_id:
            owner = await self._lookup_one(
                OwnerInfo,
                USERS,
                {"uid": link.owner_id},
                "display_name,avatar_url",
            )

        list_info = None
        if link.list_id:
            list_info = await self._lookup_one(ListInfo, LISTS, {"id": link.list_id}, "title")

        invite = InviteDetails(
            code=link.code.upper(),
            owner_id=link.owner_id,
            list_id=link.list_id,
            owner=owner,
            list=list_info,
        )
        return InviteLookup(outcome=QueryOutcome.FOUND, invite=invite)

    async def resolve_invite(self, code: str | None) -> InviteDetails | None:
        return (await self.lookup(code)).invite


async def accept_invite(
    resolver: InviteResolver,
    linker: SocialGraphLinker,
    code: str,
    user_id: str,
) -> AcceptInviteResult:
    lookup = await resolver.lookup(code)
    if lookup.outcome is QueryOutcome.TRANSIENT_FAILURE:
        raise RecordStoreUnavailable("invite lookup failed")
    invite = lookup.invite
    if invite is None or not invite.owner_id:
        raise ValueError("invalid_code")

    owner_id = invite.owner_id
    if owner_id == user_id:
        raise ValueError("cannot_friend_self")

    friendship_created = await linker.ensure_friendship(owner_id, user_id)

    list_uid = None
    list_shared = False
    if invite.list_id:
        list_uid = await linker.lookup_list_uid(invite.list_id)
        if list_uid:
            list_shared = await linker.share_list_with_user(list_uid, user_id)
        else:
            logger.warning("Invite %s points at missing list %s", invite.code, invite.list_id)

    return AcceptInviteResult(
        owner_id=owner_id,
        friendship_created=friendship_created,
        list_uid=list_uid,
        list_shared=list_shared,
    )
