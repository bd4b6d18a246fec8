"""Refresh state records from the provider's view of the world."""

import time
from typing import Callable, List
from ..provider import Provider
from ..registry import ResourceAddress
from ..state import StateStore
from ..utils.errors import NotFound
from ..utils.logging import get_logger
from .retry import call_with_retry

logger = get_logger("executor.refresh")


def refresh_state(store: StateStore, provider: Provider, sleep: Callable[[float], None] = time.sleep) -> List[ResourceAddress]:
    """
    Re-read every recorded resource from the provider.
    
    Objects that no longer exist are dropped from state so the next plan
    recreates them; for the rest, outputs are replaced with what the provider
    reports. Reads are always retried on transient errors.
    
    Returns:
        Addresses whose records were dropped
    """
    dropped: List[ResourceAddress] = []
    for address, record in sorted(store.snapshot().items()):
        capability = provider.capability(address.kind)
        try:
            outputs = call_with_retry(
                lambda: provider.read(address.kind, record.provider_id),
                capability.retry,
                f"read {address}",
                sleep=sleep,
            )
        except NotFound:
            logger.warning(f"{address} ({record.provider_id}) no longer exists; dropping from state")
            store.remove(address)
            dropped.append(address)
            continue
        if outputs != record.outputs:
            logger.info(f"{address}: outputs changed outside converge")
            record.outputs = outputs
            store.put(record)
    
    logger.info(f"Refreshed {len(store.addresses()) + len(dropped)} resources, dropped {len(dropped)}")
    return dropped
