import argparse
import logging
import sys
from collections.abc import Sequence
from uuid import UUID

from src.api.deps import Settings
from src.app_shell.config import ConfigurationError, validate_ops_rules
from src.app_shell.context import ServiceContext
from src.components.playback import ResolveInput
from src.components.registry import ListAssetsInput, PublishInput, ReconcileInput, RemoveInput
from src.domain.errors import LifecycleError
from src.domain.slugs import format_bytes
from src.rules.loader import load_rules

logger = logging.getLogger("cli")


def get_context(settings: Settings) -> ServiceContext:
    if not settings.rules_path.exists():
        logger.error("Rules file %s not found.", settings.rules_path)
        sys.exit(1)

    rules = load_rules(settings.rules_path)
    try:
        validate_ops_rules(rules, settings.data_dir)
    except ConfigurationError as e:
        logger.error("%s", e)
        sys.exit(1)

    return ServiceContext.create(
        rules,
        db_path=settings.db_path,
        storage_path=settings.storage_path,
        migrations_dir=settings.migrations_dir,
        public_base_url=settings.public_base_url,
        s3_access_key_id=settings.s3_access_key_id,
        s3_secret_access_key=settings.s3_secret_access_key,
    )


def _report(errors: list[LifecycleError]) -> int:
    for e in errors:
        logger.error("%s: %s", e.code, e.message)
    return 1


def handle_list(ctx: ServiceContext, args: argparse.Namespace) -> int:
    out = ctx.registry.list(ListAssetsInput(status=args.status, query=args.query))
    for a in out.items:
        print(f"{a.id}  {a.status:<9}  {format_bytes(a.size_bytes):>10}  {a.slug}  {a.storage_key}")
    stats = ctx.registry.stats()
    print(
        f"{out.total} shown; {stats.total} total, {stats.published} published, "
        f"{stats.staged} staged, {format_bytes(stats.total_bytes)}"
    )
    return 0


def handle_publish(ctx: ServiceContext, args: argparse.Namespace) -> int:
    out = ctx.registry.publish(PublishInput(asset_id=args.asset_id))
    if not out.success or out.asset is None:
        return _report(out.errors)
    print(f"Published {out.asset.id} as '{out.asset.slug}' at {out.asset.storage_key}")
    return 0


def handle_remove(ctx: ServiceContext, args: argparse.Namespace) -> int:
    out = ctx.registry.remove(RemoveInput(asset_id=args.asset_id))
    if not out.success:
        return _report(out.errors)
    print(f"Removed {args.asset_id}" if out.removed else f"{args.asset_id} was already gone")
    return 0


def handle_reconcile(ctx: ServiceContext, args: argparse.Namespace) -> int:
    out = ctx.registry.reconcile(ReconcileInput(delete_orphans=args.delete_orphans))
    print(
        f"Purged {len(out.purged)}, rolled back {len(out.rolled_back)}, "
        f"deleted {len(out.orphans_deleted)} orphan objects"
    )
    for asset_id in out.missing_objects:
        print(f"Missing object for asset {asset_id}")
    return 0 if out.success else _report(out.errors)


def handle_resolve(ctx: ServiceContext, args: argparse.Namespace) -> int:
    out = ctx.resolver.resolve(ResolveInput(slug=args.slug))
    if not out.success or out.target is None:
        if out.published_slugs:
            print("Published slugs: " + ", ".join(out.published_slugs))
        return _report(out.errors)
    print(out.target.url)
    return 0


def handle_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("src.api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ODC video service CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List assets, newest first")
    list_parser.add_argument("--status", choices=["staged", "published", "removing"])
    list_parser.add_argument("--query", help="Search display name and filename")

    publish_parser = subparsers.add_parser("publish", help="Publish a staged asset")
    publish_parser.add_argument("asset_id", type=UUID)

    remove_parser = subparsers.add_parser("remove", help="Remove an asset and its object")
    remove_parser.add_argument("asset_id", type=UUID)

    reconcile_parser = subparsers.add_parser("reconcile", help="Repair interrupted operations")
    # Uploads held by a running server are invisible from this process.
    reconcile_parser.add_argument(
        "--delete-orphans",
        action="store_true",
        help="Also delete unreferenced objects; only while no server accepts uploads",
    )

    resolve_parser = subparsers.add_parser("resolve", help="Resolve a slug to its playback URL")
    resolve_parser.add_argument("slug")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--reload", action="store_true")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)

    if args.command == "serve":
        return handle_serve(args)

    ctx = get_context(Settings())
    handlers = {
        "list": handle_list,
        "publish": handle_publish,
        "remove": handle_remove,
        "reconcile": handle_reconcile,
        "resolve": handle_resolve,
    }
    try:
        return handlers[args.command](ctx, args)
    finally:
        ctx.close()


if __name__ == "__main__":
    sys.exit(main())
