from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager

from app.schemas.records import (
    Friendship,
    ListShare,
    MalformedRecordError,
    UserSummary,
    decode_records,
)
from app.services.record_store import QueryResult, RecordStoreClient, RecordStoreUnavailable

logger = logging.getLogger(__name__)

FRIENDS = "friends"
LIST_SHARES = "list_shares"
USERS = "users"
LISTS = "lists"


def _pair(a: str, b: str) -> tuple[str, str]:
    return (a, b) if a < b else (b, a)


class KeyedLocks:
    """One asyncio.Lock per key, dropped once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._waiters: dict[Hashable, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]


class SocialGraphLinker:
    """Friendships and list shares, created at most once per pair.

    The store has no relational guarantees we can rely on, so each write is
    preceded by an existence check. ``ensure_friendship`` and
    ``share_list_with_user`` hold a per-key lock across check and insert;
    this serializes callers inside one process only.
    """

    def __init__(self, store: RecordStoreClient, *, locks: KeyedLocks | None = None):
        self.store = store
        self.locks = locks or KeyedLocks()

    async def _has_directed_friendship(self, user_id: str, friend_user_id: str) -> bool:
        result = await self.store.query(
            FRIENDS,
            {"user_id": user_id, "friend_user_id": friend_user_id},
            select="id",
        )
        result.raise_for_failure()
        return result.found

    async def friendship_exists(self, user_a: str, user_b: str) -> bool:
        if await self._has_directed_friendship(user_a, user_b):
            return True
        return await self._has_directed_friendship(user_b, user_a)

    async def _insert_friendship(self, user_a: str, user_b: str) -> tuple[QueryResult, Friendship | None]:
        result = await self.store.insert(FRIENDS, {"user_id": user_a, "friend_user_id": user_b})
        if not result.found:
            logger.warning(
                "Friendship insert %s -> %s failed (%s)",
                user_a,
                user_b,
                result.detail or result.outcome.value,
            )
            return result, None

        logger.info("Created friendship %s -> %s", user_a, user_b)
        try:
            created = decode_records(Friendship, FRIENDS, result.rows)
        except MalformedRecordError:
            logger.warning("Friendship insert returned a malformed row", exc_info=True)
            return result, None
        return result, created[0]

    async def create_friendship(self, user_a: str, user_b: str) -> Friendship | None:
        # No existence check here; see ensure_friendship.
        _, created = await self._insert_friendship(user_a, user_b)
        return created

    async def ensure_friendship(self, user_a: str, user_b: str) -> bool:
        if user_a == user_b:
            raise ValueError("cannot_friend_self")

        async with self.locks.hold(("friendship", *_pair(user_a, user_b))):
            if await self.friendship_exists(user_a, user_b):
                return False
            result, _ = await self._insert_friendship(user_a, user_b)
            if result.conflict:
                # Unique pair constraint on the store side; another writer got there first.
                return False
            if not result.found:
                raise RecordStoreUnavailable("friendship insert failed")
            return True

    async def share_list_with_user(self, list_uid: str, user_id: str) -> bool:
        async with self.locks.hold(("list_share", list_uid, user_id)):
            existing = await self.store.query(
                LIST_SHARES,
                {"list_uid": list_uid, "shared_with_user_id": user_id},
                select="id",
            )
            if existing.found:
                return True
            if existing.failed:
                logger.warning("Could not check list share %s for %s", list_uid, user_id)
                return False

            result = await self.store.insert(
                LIST_SHARES,
                ListShare(list_uid=list_uid, shared_with_user_id=user_id, can_edit=False).model_dump(
                    exclude={"id"}
                ),
            )
            if result.conflict:
                # Unique (list_uid, shared_with_user_id) constraint on the store side.
                return True
            if not result.found:
                logger.warning("List share insert %s -> %s failed (%s)", list_uid, user_id, result.detail)
                return False

            logger.info("Shared list %s with %s", list_uid, user_id)
            return True

    async def lookup_user_by_email(self, email: str) -> UserSummary | None:
        email = (email or "").strip().lower()
        if not email:
            return None

        result = await self.store.query(USERS, {"email": email}, select="uid,display_name,avatar_url")
        result.raise_for_failure()
        if not result.found:
            return None
        try:
            return decode_records(UserSummary, USERS, result.rows[:1])[0]
        except MalformedRecordError:
            logger.warning("Malformed user row for email lookup", exc_info=True)
            return None

    async def lookup_list_uid(self, list_id: str) -> str | None:
        result = await self.store.query(LISTS, {"id": list_id}, select="uid")
        result.raise_for_failure()
        if not result.found:
            return None
        uid = result.rows[0].get("uid")
        if isinstance(uid, (int, str)) and str(uid).strip():
            return str(uid)
        return None
