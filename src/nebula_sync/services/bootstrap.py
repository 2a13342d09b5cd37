from __future__ import annotations

import logging

from ..models import PlayerStats
from ..result import Err, Ok, Result
from .context import SyncContext

logger = logging.getLogger(__name__)


def bootstrap_player(ctx: SyncContext) -> Result[PlayerStats]:
    """Establish the local stats row right after a successful login.

    - No remote row: create a zero record, upsert it, and write it locally
      even if the upsert failed so offline play still works.
    - Remote row exists: keep whichever of remote/local is newer locally and
      push the local copy when it is not older and differs.
    - Local file unreadable: adopt the remote row.
    """
    fetched = ctx.stats_dao.get_stats(ctx.token)
    if not fetched.ok:
        return Err(fetched.error)

    remote = fetched.value
    if remote is None:
        fresh = PlayerStats.zero(ctx.user_id, ctx.settings.gameplay.default_skin)
        created = ctx.stats_dao.upsert_stats(fresh)
        if not created.ok:
            logger.warning("Could not create remote stats: %s", created.message)
        return ctx.stats.save(fresh, push_remote=False, touch_timestamp=False)

    cached = ctx.stats.get()
    if not cached.ok:
        logger.warning("Local stats unreadable (%s); adopting remote", cached.message)
        return ctx.stats.save(remote, push_remote=False, touch_timestamp=False)

    local = cached.value
    remote_is_newer = remote.updated_at > local.updated_at
    chosen = remote if remote_is_newer else local
    logger.info("Login stats decision: using %s copy", "remote" if remote_is_newer else "local")

    saved = ctx.stats.save(chosen, push_remote=False, touch_timestamp=False)
    if not saved.ok:
        return saved

    if not remote_is_newer and local.differs_from(remote):
        pushed = ctx.stats_dao.upsert_stats(local)
        if not pushed.ok:
            logger.warning("Could not push newer local stats: %s", pushed.message)
    return Ok(chosen)
