"""Tag index: denormalized tag -> profile snapshot lookup."""

import asyncio
import weakref
from collections.abc import Awaitable, Iterable
from typing import Any

import structlog

from domain.repositories.tag_repository import ITagIndexRepository

logger = structlog.get_logger()

Snapshot = dict[str, Any]


class TagIndex:
    """Maintains, per tag, a map of profile identifier to profile snapshot.

    The index is a projection of the profile records, not a source of
    truth. Each tag is read-modify-written under its own lock so that
    concurrent mutations of different profiles sharing a tag do not drop
    each other's entries.
    """

    def __init__(self, repository: ITagIndexRepository) -> None:
        self._repository = repository
        # Entries vanish once no coroutine holds or awaits the lock.
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, tag: str) -> asyncio.Lock:
        lock = self._locks.get(tag)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[tag] = lock
        return lock

    async def add_profile_to_tag(self, tag: str, snapshot: Snapshot) -> None:
        """Upsert ``snapshot`` under ``tag``, keyed by its ``uuid``."""
        async with self._lock_for(tag):
            entries = await self._repository.get(tag)
            entries[str(snapshot["uuid"])] = snapshot
            await self._repository.put(tag, entries)

    async def remove_profile_from_tag(self, tag: str, uuid: str) -> None:
        """Remove ``uuid`` from ``tag``; missing tag or entry is a no-op."""
        async with self._lock_for(tag):
            entries = await self._repository.get(tag)
            if uuid not in entries:
                return
            del entries[uuid]
            await self._repository.put(tag, entries)

    async def get_profiles_by_tag(self, tag: str) -> list[Snapshot]:
        """Return the snapshots stored under ``tag`` (empty if unknown)."""
        entries = await self._repository.get(tag)
        return list(entries.values())

    async def list_by_tags(self, tags: Iterable[str]) -> list[Snapshot]:
        """Union of several tags, de-duplicated by identifier in first-seen order."""
        seen: set[str] = set()
        results: list[Snapshot] = []
        for tag in tags:
            for snapshot in await self.get_profiles_by_tag(tag):
                uuid = str(snapshot.get("uuid"))
                if uuid in seen:
                    continue
                seen.add(uuid)
                results.append(snapshot)
        return results

    async def reconcile(
        self,
        uuid: str,
        before: Iterable[str],
        after: Iterable[str],
        snapshot: Snapshot | None,
    ) -> None:
        """Move ``uuid`` from the ``before`` tag set to the ``after`` tag set.

        Tags only in ``before`` lose the entry. Every tag in ``after`` gets
        the fresh snapshot, so kept tags stop lagging behind the record.
        Pass ``snapshot=None`` to only remove.
        """
        after_tags = list(dict.fromkeys(after))
        for tag in dict.fromkeys(before):
            if tag not in after_tags:
                await self._best_effort(self.remove_profile_from_tag(tag, uuid), "remove", tag, uuid)
        if snapshot is None:
            return
        for tag in after_tags:
            await self._best_effort(self.add_profile_to_tag(tag, snapshot), "add", tag, uuid)

    async def rebuild(self, snapshots: Iterable[Snapshot]) -> int:
        """Discard every tag entry and re-derive the index from ``snapshots``.

        Returns the number of (tag, profile) entries written.
        """
        grouped: dict[str, dict[str, Snapshot]] = {}
        for snapshot in snapshots:
            for tag in dict.fromkeys(snapshot.get("tags") or []):
                grouped.setdefault(tag, {})[str(snapshot["uuid"])] = snapshot

        for tag in await self._repository.list_tags():
            if tag not in grouped:
                async with self._lock_for(tag):
                    await self._repository.drop(tag)

        written = 0
        for tag, entries in grouped.items():
            async with self._lock_for(tag):
                await self._repository.put(tag, entries)
            written += len(entries)

        logger.info("tag_index_rebuilt", tags=len(grouped), entries=written)
        return written

    async def _best_effort(self, operation: Awaitable[None], action: str, tag: str, uuid: str) -> None:
        try:
            await operation
        except OSError as exc:
            logger.warning(
                "tag_index_update_failed",
                action=action,
                tag=tag,
                uuid=uuid,
                error=str(exc),
            )
