import json
import logging
import mimetypes
import sys
import argparse
from pathlib import Path

from core.app_context import AppContext
from core.config_loader import load_config, AppConfig
from core.exceptions import PipelineError
from database.database import configure_database
from database.init_db import init_db
from database.uow import knowledge_uow

logger = logging.getLogger(__name__)


def configure_logging(config: AppConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, config.logging.level.upper(), logging.INFO),
        format=config.logging.format
    )


def _print(data) -> None:
    print(json.dumps(data, indent=2, default=str))


def cmd_process(ctx: AppContext, args) -> int:
    """Upload a resume file and run the whole pipeline on it."""
    path = Path(args.file)
    if not path.exists():
        logger.error(f"Resume file not found: {path}")
        return 1

    data = path.read_bytes()
    mime_type = args.mime_type or mimetypes.guess_type(path.name)[0] or "text/plain"

    with knowledge_uow() as repo:
        result = ctx.document_store.upload_version(
            repo,
            args.owner,
            data,
            mime_type=mime_type,
            file_name=path.name,
            stream_name=args.stream_name,
            tags=args.tags
        )
        version_id = result.version.id

    if result.is_duplicate and not args.force:
        logger.info(f"{path.name} was already uploaded as version {version_id}; use --force to reprocess")
        _print({'version_id': str(version_id), 'is_duplicate': True})
        return 0

    report = ctx.processor.process_version(knowledge_uow, version_id, data)

    _print({
        'version_id': str(version_id),
        'is_duplicate': result.is_duplicate,
        'entities': report.entities,
        'enrichment': report.enrichment,
        'narratives': report.narratives,
        'diffs': report.diffs,
        'status': report.status.to_dict(),
        'error': report.error,
    })
    return 0 if report.ok else 1


def cmd_status(ctx: AppContext, args) -> int:
    with knowledge_uow() as repo:
        status = ctx.tracker.get_processing_status(repo, args.version)
        _print(status.to_dict())
    return 0


def cmd_analyze(ctx: AppContext, args) -> int:
    with knowledge_uow() as repo:
        summary = ctx.diff_engine.analyze_version(repo, args.version)
    _print(summary.to_dict())
    return 0


def cmd_apply(ctx: AppContext, args) -> int:
    with knowledge_uow() as repo:
        summary = ctx.merge_resolver.apply_decisions(repo, args.owner, args.version)
    _print(summary.to_dict())
    return 0 if summary.errors == 0 else 1


def cmd_delete_owner(ctx: AppContext, args) -> int:
    with knowledge_uow() as repo:
        if not args.yes:
            _print({'would_delete': ctx.document_store.preview_owner_deletion(repo, args.owner)})
            logger.info("Dry run only; pass --yes to delete")
            return 0
        deleted = ctx.document_store.delete_all_for_owner(repo, args.owner)
    _print({'deleted': deleted})
    return 0


def cmd_serve(ctx: AppContext, args) -> int:
    import uvicorn
    from web.backend.app import create_app

    config = ctx.config
    logger.info(f"Starting Resume Knowledge API on {config.web.host}:{config.web.port}")
    uvicorn.run(
        create_app(config),
        host=args.host or config.web.host,
        port=args.port or config.web.port,
        reload=False,
        log_level=config.logging.level.lower()
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Resume Knowledge Pipeline")
    parser.add_argument('--config', type=str, default='config.yaml', help='Path to config.yaml')
    sub = parser.add_subparsers(dest='command', required=True)

    sub.add_parser('init-db', help='Create database tables')

    p = sub.add_parser('process', help='Upload a resume and run extraction, enrichment and analysis')
    p.add_argument('file', help='Resume file to upload')
    p.add_argument('--owner', required=True, help='Owner (user) id')
    p.add_argument('--stream-name', default=None, help='Stream to add the version to (created if missing)')
    p.add_argument('--tags', nargs='*', default=None, help='Tags for a newly created stream')
    p.add_argument('--mime-type', default=None, help='Override the guessed mime type')
    p.add_argument('--force', action='store_true', help='Reprocess a duplicate upload')
    p.set_defaults(func=cmd_process)

    p = sub.add_parser('status', help='Show the processing status of a version')
    p.add_argument('version', help='Version id')
    p.set_defaults(func=cmd_status)

    p = sub.add_parser('analyze', help='Re-run diff analysis for a version')
    p.add_argument('version', help='Version id')
    p.set_defaults(func=cmd_analyze)

    p = sub.add_parser('apply', help='Apply recorded merge decisions for a version')
    p.add_argument('version', help='Version id')
    p.add_argument('--owner', required=True, help='Owner (user) id')
    p.set_defaults(func=cmd_apply)

    p = sub.add_parser('delete-owner', help='Delete all resume data of an owner')
    p.add_argument('--owner', required=True, help='Owner (user) id')
    p.add_argument('--yes', action='store_true', help='Actually delete (default is a dry run)')
    p.set_defaults(func=cmd_delete_owner)

    p = sub.add_parser('serve', help='Run the web API')
    p.add_argument('--host', default=None)
    p.add_argument('--port', type=int, default=None)
    p.set_defaults(func=cmd_serve)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    config = load_config(args.config)
    configure_logging(config)
    configure_database(config.database.url, config.database.echo)

    if args.command == 'init-db':
        init_db()
        return 0

    ctx = AppContext.build(config)
    try:
        return args.func(ctx, args)
    except PipelineError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
