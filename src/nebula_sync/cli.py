import argparse
import json
import logging
import sys
from pathlib import Path

from .auth import AuthSession, describe_auth_error
from .core.settings import Settings
from .logging_config import configure_logging
from .paths import AppPaths
from .reachability import SocketReachability, StaticReachability
from .remote import AuthDAO, RestClient
from .services import SyncContext, bootstrap_player, finish_run, purchase_cosmetic
from .storage.prefs import PrefsStore

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="nebula-sync",
        description="Offline-first sync of Nebula player data with the backend",
    )
    parser.add_argument(
        "--settings",
        dest="settings_path",
        type=Path,
        default=None,
        help="Path to a user settings YAML file to load/override defaults.",
    )
    parser.add_argument("--debug", action="store_true", help="Enable verbose debug logging.")
    parser.add_argument("--offline", action="store_true", help="Never touch the network.")

    sub = parser.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login", help="Sign in and create/refresh the local stats row")
    login.add_argument("email")
    login.add_argument("password")

    register = sub.add_parser("register", help="Create an account")
    register.add_argument("email")
    register.add_argument("password")

    sub.add_parser("auto-login", help="Sign in with the remembered credentials")
    sub.add_parser("sync", help="Reconcile stats and inventory")

    run = sub.add_parser("finish-run", help="Record a finished run")
    run.add_argument("--distance", type=int, required=True)
    run.add_argument("--coins", type=int, required=True)

    buy = sub.add_parser("purchase", help="Buy and equip a cosmetic")
    buy.add_argument("name")
    buy.add_argument("--price", type=int, default=None)

    sub.add_parser("catalog", help="List cosmetics and their prices")
    sub.add_parser("missions", help="List daily challenges not yet completed")
    sub.add_parser("flush", help="Push locally queued challenge completions")
    sub.add_parser("logout", help="Forget tokens and remembered credentials")
    return parser.parse_args(argv)


def _emit(payload) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _fail(message: str) -> int:
    _emit({"error": message})
    return 1


def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging(default_level=logging.DEBUG if args.debug else logging.INFO)

    settings = Settings.load(user_path=args.settings_path)
    paths = AppPaths(storage=settings.storage)
    paths.ensure_dirs()
    client = RestClient(settings.backend.url, settings.backend.api_key, timeout=settings.backend.timeout)
    session = AuthSession(AuthDAO(client), PrefsStore(paths.prefs_path))
    reachability = (
        StaticReachability(False) if args.offline else SocketReachability(settings.backend.url)
    )

    if args.command == "logout":
        session.logout()
        _emit({"logged_out": True})
        return 0

    if args.command == "register":
        token = session.register(args.email, args.password)
        if not token.ok:
            return _fail(describe_auth_error(token.message))
        _emit({"registered": True, "user_id": session.user_id})
        return 0

    if args.command in ("login", "auto-login"):
        if args.command == "login":
            email, password = args.email, args.password
        else:
            saved = session.saved_credentials()
            if saved is None:
                return _fail("No stored credentials")
            email, password = saved
        token = session.login(email, password)
        if not token.ok:
            return _fail(describe_auth_error(token.message))
        session.remember_credentials(email, password)
        ctx = SyncContext.build(settings, session, reachability, paths, client)
        stats = bootstrap_player(ctx)
        if not stats.ok:
            return _fail(stats.message)
        inventory = ctx.inventory.sync(ctx.token)
        if not inventory.ok:
            logger.warning("Inventory sync failed: %s", inventory.message)
        _emit({"user_id": ctx.user_id, "stats": stats.value.model_dump(mode="json")})
        return 0

    if not session.ensure_token().ok and not args.offline:
        return _fail("No session; run 'login' first")
    ctx = SyncContext.build(settings, session, reachability, paths, client)

    if args.command == "sync":
        stats = ctx.stats.sync()
        if not stats.ok:
            return _fail(stats.message)
        merged = ctx.inventory.merge_inventory_if_needed(ctx.token)
        items = merged.value if merged.ok and merged.value is not None else []
        _emit(
            {
                "stats": stats.value.model_dump(mode="json"),
                "inventory": [i.item_name for i in items],
            }
        )
        return 0

    if args.command == "finish-run":
        outcome = finish_run(ctx, args.distance, args.coins)
        if not outcome.ok:
            return _fail(outcome.message)
        run = outcome.value
        _emit(
            {
                "reward_coins": run.reward_coins,
                "completed": run.completed_ids,
                "total_coins": run.total_coins,
                "stats": run.stats.model_dump(mode="json"),
            }
        )
        return 0

    if args.command == "purchase":
        bought = purchase_cosmetic(ctx, args.name, args.price)
        if not bought.ok:
            return _fail(bought.message)
        _emit({"stats": bought.value.model_dump(mode="json")})
        return 0

    if args.command == "catalog":
        catalog = ctx.cosmetics.refresh_catalog()
        if not catalog.ok:
            return _fail(catalog.message)
        _emit({c.name: c.price_coins for c in catalog.value})
        return 0

    if args.command == "missions":
        missions = ctx.challenges.pending_missions()
        if not missions.ok:
            return _fail(missions.message)
        _emit([m.model_dump(mode="json") for m in missions.value])
        return 0

    if args.command == "flush":
        flushed = ctx.challenges.push_offline_completed()
        if not flushed.ok:
            return _fail(flushed.message)
        _emit({"flushed": flushed.value})
        return 0

    return _fail(f"Unknown command {args.command}")


if __name__ == "__main__":
    sys.exit(main())
