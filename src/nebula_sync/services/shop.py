from __future__ import annotations

import logging
from typing import Optional

from ..errors import InsufficientCoins, NoCachedData, StoreIOError
from ..models import InventoryItem, PlayerStats, utcnow
from ..result import Err, Ok, Result
from .context import SyncContext
from .run_session import load_stats

logger = logging.getLogger(__name__)


def purchase_cosmetic(ctx: SyncContext, name: str, price: Optional[int] = None) -> Result[PlayerStats]:
    """Buy and equip a cosmetic, online or offline.

    Online the ownership row is uploaded first and the purchase is aborted if
    that fails. The row is always appended to the local inventory, then the
    coins are debited and the skin equipped through the stats repository.
    """
    if price is None:
        priced = ctx.cosmetics.price_of(name)
        if not priced.ok:
            return Err(priced.error)
        price = priced.value

    stats = load_stats(ctx)
    if stats is None:
        return Err(NoCachedData("Player stats unavailable; cannot purchase"))
    if stats.coin_balance < price:
        return Err(InsufficientCoins(f"{name} costs {price}, balance is {stats.coin_balance}"))

    logger.info("Buying %s for %d coins", name, price)
    # Same timestamp on both sides so the next inventory sync sees no difference.
    acquired_at = utcnow()
    if ctx.reachability.is_online():
        item = InventoryItem(user_id=ctx.user_id, item_name=name, acquired_at=acquired_at)
        uploaded = ctx.inventory_dao.upload_item(item, ctx.token)
        if not uploaded.ok:
            return Err(uploaded.error)

    recorded = ctx.inventory.record_purchase(name, acquired_at)
    if not recorded.ok:
        logger.warning("Could not record %s in local inventory: %s", name, recorded.message)

    updated = stats.model_copy(
        update={"total_coins_spent": stats.total_coins_spent + price, "actual_skin": name}
    )
    saved = ctx.stats.save(updated)
    if not saved.ok:
        if isinstance(saved.error, StoreIOError):
            return saved
        logger.warning("Purchase saved locally but not pushed: %s", saved.message)
        return Ok(updated)
    return saved
