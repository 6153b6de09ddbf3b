"""Block size lookup with a prioritised set of query interfaces."""

from __future__ import annotations

from typing import Optional, Sequence

from .errors import DiskStoreError
from .logging_utils import log_event

__all__ = ["BlockSizeProvider", "query_block_size"]


class BlockSizeProvider:
    """A single interface able to report a volume's block size."""

    name = "unknown"

    def query(self, volume_guid: str) -> Optional[int]:
        raise NotImplementedError


def query_block_size(
    providers: Sequence[BlockSizeProvider], volume_guid: Optional[str]
) -> Optional[int]:
    """Return the block size from the first provider that yields one.

    A provider that fails or answers nothing is skipped. ``None`` means no
    provider could tell, which is not an error.
    """

    if not volume_guid:
        return None
    for provider in providers:
        try:
            value = provider.query(volume_guid)
        except DiskStoreError as exc:
            log_event(
                "disk_reconcile.block_size.provider_failed",
                provider=provider.name,
                volume_guid=volume_guid,
                error=str(exc),
            )
            continue
        if value:
            log_event(
                "disk_reconcile.block_size.resolved",
                provider=provider.name,
                volume_guid=volume_guid,
                block_size=value,
            )
            return value
        log_event(
            "disk_reconcile.block_size.no_result",
            provider=provider.name,
            volume_guid=volume_guid,
        )
    return None
