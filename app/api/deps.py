from __future__ import annotations

from fastapi import Depends

from app.core.config import settings
from app.services.invites import InviteResolver
from app.services.record_store import RecordStoreClient
from app.services.social_links import KeyedLocks, SocialGraphLinker

# Shared by every linker in this process so check-then-insert is serialized per key.
_linker_locks = KeyedLocks()


def get_record_store() -> RecordStoreClient:
    return RecordStoreClient(settings.record_store_config())


def get_invite_resolver(store: RecordStoreClient = Depends(get_record_store)) -> InviteResolver:
    return InviteResolver(store)


def get_social_linker(store: RecordStoreClient = Depends(get_record_store)) -> SocialGraphLinker:
    return SocialGraphLinker(store, locks=_linker_locks)
