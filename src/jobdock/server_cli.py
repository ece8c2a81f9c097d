"""CLI entry point for the JobDock API server and one-off sweeps."""

import argparse
import asyncio
import os


async def _sweep_once(dry_run: bool) -> str:
    from jobdock.config import settings
    from jobdock.db.engine import create_db_engine, create_session_factory
    from jobdock.storage.blobs import LocalBlobStore
    from jobdock.workers.archival_sweep import run_sweep

    engine = create_db_engine()
    try:
        if "sqlite" in settings.effective_database_url:
            from jobdock.db.base import Base
            import jobdock.db.models  # noqa: F401

            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        report = await run_sweep(
            create_session_factory(engine),
            LocalBlobStore(settings.archive_dir),
            dry_run=dry_run,
        )
    finally:
        await engine.dispose()
    return report.model_dump_json(indent=2)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="jobdock-server",
        description="JobDock API server: contractor job scheduling and lifecycle engine",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8080, help="Bind port (default: 8080)")
    parser.add_argument(
        "--local",
        action="store_true",
        help="Local dev mode: SQLite database, no Redis required",
    )
    parser.add_argument(
        "--sweep-once",
        action="store_true",
        help="Run one archival sweep over every tenant, print the report and exit",
    )
    parser.add_argument("--dry-run", action="store_true", help="With --sweep-once, change nothing")
    args = parser.parse_args(argv)

    if args.local:
        os.environ["JOBDOCK_LOCAL_MODE"] = "1"

    if args.sweep_once:
        from jobdock.logging_config import configure_logging
        configure_logging(json_output=not args.local)
        print(asyncio.run(_sweep_once(args.dry_run)))
        return

    import uvicorn

    uvicorn.run("jobdock.main:app", host=args.host, port=args.port)


if __name__ == "__main__":
    main()
