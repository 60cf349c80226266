"""CLI interface for MirrorBox."""

import logging
from pathlib import Path
from typing import Any, Optional

import click
from rich.progress import Progress, SpinnerColumn, TextColumn

from .app.dispatcher import Dispatcher
from .app.events import JobEvent
from .app.factory import JobFactory
from .app.registry import JobRegistry
from .config import SCHEDULES, Config, ConfigStore, SyncJobConfig
from .exceptions import ConfigError, JobNotFoundError, WalkError
from .output import OutputFormatter
from .sync.job import Job, JobStatus, RunKind
from .sync.models import DiffResult, SyncAction
from .sync.stores import RemoteDestination
from .utils import format_duration, format_size, format_timestamp

logger = logging.getLogger(__name__)


def format_job_status(event: JobEvent) -> str:
    """Create a one-line status string for a job event."""
    if event.kind == RunKind.SKIPPED:
        return "MirrorBox - Syncing..."
    if event.status == JobStatus.IDLE:
        return "MirrorBox - Idle"
    if event.status == JobStatus.RUNNING:
        return "MirrorBox - Syncing..."
    if event.status == JobStatus.SUCCEEDED:
        return "MirrorBox - Last sync successful"
    if event.status == JobStatus.FAILED:
        return "MirrorBox - Last sync failed"
    return "MirrorBox"


def _load_config(ctx: Any) -> Config:
    store: ConfigStore = ctx.obj["store"]
    out: OutputFormatter = ctx.obj["out"]
    try:
        return store.load()
    except ConfigError as e:
        out.error(str(e))
        ctx.exit(1)
        raise  # Unreachable, but helps type checker


def _save_config(ctx: Any, config: Config) -> None:
    store: ConfigStore = ctx.obj["store"]
    out: OutputFormatter = ctx.obj["out"]
    try:
        store.save(config)
    except ConfigError as e:
        out.error(str(e))
        ctx.exit(1)


def _build_registry(ctx: Any, config: Config) -> JobRegistry:
    out: OutputFormatter = ctx.obj["out"]
    factory = JobFactory(job_timeout=config.job_timeout)
    try:
        jobs = factory.create_from_config(config)
    except ConfigError as e:
        out.error(f"Failed to create jobs: {e}")
        ctx.exit(1)
        raise  # Unreachable, but helps type checker

    registry = JobRegistry()
    for job in jobs:
        registry.add(job)
        logger.debug("Registered job: %s", job.name)
    return registry


def _connect_remotes(jobs: list[Job], connect: bool) -> None:
    for job in jobs:
        if isinstance(job.destination, RemoteDestination):
            if connect:
                job.destination.store.connect()
            else:
                job.destination.store.disconnect()


def _display_event(out: OutputFormatter, event: JobEvent) -> None:
    """Display the result of one job run."""
    if event.kind == RunKind.SKIPPED:
        out.warning(f"{event.job_name}: already running, skipped")
        return

    outcome = event.outcome
    if event.kind == RunKind.SUCCEEDED and outcome is not None:
        if outcome.total_actions == 0:
            out.success(f"✓ {event.job_name}: everything is in sync")
        else:
            out.success(
                f"✓ {event.job_name}: {outcome.created} created, "
                f"{outcome.updated} updated, {outcome.deleted} deleted "
                f"({format_size(outcome.bytes_transferred)})"
            )
        return

    if event.kind == RunKind.CANCELLED:
        out.warning(f"{event.job_name}: stopped ({event.error})")
    else:
        out.error(f"{event.job_name}: {event.error}")
    if outcome is not None:
        for item in outcome.errors:
            out.error(f"  {item}")


def _display_plan(out: OutputFormatter, job: Job, diff: DiffResult) -> None:
    """Display the actions a sync would take."""
    counts = diff.counts()
    out.info(f"Sync plan for {job.name}:")
    out.info(f"  Source:      {job.source_root}")
    out.info(f"  Destination: {job.destination}")
    if diff.is_empty:
        out.info("  = Nothing to do - everything is in sync")
        out.print("")
        return
    if counts["create"] > 0:
        out.info(f"  + Create: {counts['create']} item(s)")
    if counts["update"] > 0:
        out.info(f"  ~ Update: {counts['update']} item(s)")
    if counts["delete"] > 0:
        out.info(f"  ✗ Delete: {counts['delete']} item(s)")
    out.info(f"  Transfer: {format_size(diff.total_bytes())}")

    symbols = {
        SyncAction.CREATE: "+",
        SyncAction.UPDATE: "~",
        SyncAction.DELETE: "✗",
    }
    for file_diff in diff:
        out.info(f"    {symbols.get(file_diff.action, '=')} {file_diff.path}")
    out.print("")


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="MIRRORBOX_CONFIG",
    help="Config file (default: ~/.config/mirrorbox/config.json)",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="mirrorbox")
@click.pass_context
def main(
    ctx: Any,
    config_path: Optional[Path],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """MirrorBox - Mirror local folders onto local or network destinations."""
    ctx.ensure_object(dict)
    ctx.obj["store"] = ConfigStore(config_path)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    # Configure logging based on verbose flag
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("mirrorbox").setLevel(logging.DEBUG)
    else:
        # Set default logging level to WARNING to suppress debug/info messages
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
@click.pass_context
def init(ctx: Any, force: bool) -> None:
    """Create a default configuration file."""
    store: ConfigStore = ctx.obj["store"]
    out: OutputFormatter = ctx.obj["out"]

    if store.exists() and not force:
        out.error(f"Config already exists: {store.path} (use --force to overwrite)")
        ctx.exit(1)

    config = Config()
    _save_config(ctx, config)
    out.print_summary(
        "Initialization Complete",
        [
            ("Config file", str(store.path)),
            ("Check interval", format_duration(config.check_interval)),
            ("Note", "Add folders with 'mirrorbox add-job SOURCE DESTINATION'"),
        ],
    )


@main.command()
@click.pass_context
def jobs(ctx: Any) -> None:
    """List configured sync jobs."""
    out: OutputFormatter = ctx.obj["out"]
    config = _load_config(ctx)

    if out.json_output:
        out.output_json([j.to_dict() for j in config.sync_jobs])
        return

    if not config.sync_jobs:
        out.info("No sync jobs configured.")
        return

    out.print_table(
        ["Name", "Source", "Destination", "Enabled", "Schedule", "Delete extra"],
        [
            [
                j.name,
                j.source_path,
                j.destination_path,
                "yes" if j.enabled else "no",
                j.schedule,
                "yes" if j.delete_extra_files else "no",
            ]
            for j in config.sync_jobs
        ],
        title="Sync jobs",
    )


@main.command("add-job")
@click.argument("source", type=click.Path(file_okay=False))
@click.argument("destination", type=str)
@click.option("--name", "-n", default="", help="Job name (default: generated)")
@click.option(
    "--schedule",
    type=click.Choice(list(SCHEDULES)),
    default="interval",
    help="Schedule label shown by 'jobs'; informational only (default: interval)",
)
@click.option(
    "--delete-extra",
    is_flag=True,
    help="Delete destination files that no longer exist at the source",
)
@click.option("--disabled", is_flag=True, help="Add the job without enabling it")
@click.pass_context
def add_job(
    ctx: Any,
    source: str,
    destination: str,
    name: str,
    schedule: str,
    delete_extra: bool,
    disabled: bool,
) -> None:
    """Add a folder to sync.

    SOURCE: Local directory to mirror

    DESTINATION: Local directory or smb://[user@]host/share/path

    Examples:
        mirrorbox add-job ~/Documents /mnt/backup/documents
        mirrorbox add-job ./photos smb://nas/backup/photos --delete-extra
    """
    out: OutputFormatter = ctx.obj["out"]
    config = _load_config(ctx)

    try:
        job_config = SyncJobConfig(
            name=name,
            source_path=source,
            destination_path=destination,
            enabled=not disabled,
            schedule=schedule,
            delete_extra_files=delete_extra,
        )
    except ConfigError as e:
        out.error(str(e))
        ctx.exit(1)
        return  # Unreachable, but helps type checker

    if config.find_job(job_config.name) is not None:
        out.error(f"A job named '{job_config.name}' already exists")
        ctx.exit(1)

    config.sync_jobs.append(job_config)
    _save_config(ctx, config)
    out.success(f"✓ Added job: {job_config.name}")


@main.command("remove-job")
@click.argument("name", type=str)
@click.pass_context
def remove_job(ctx: Any, name: str) -> None:
    """Remove a sync job by name."""
    out: OutputFormatter = ctx.obj["out"]
    config = _load_config(ctx)

    job_config = config.find_job(name)
    if job_config is None:
        out.error(f"job not found: {name}")
        ctx.exit(1)
        return  # Unreachable, but helps type checker

    config.sync_jobs.remove(job_config)
    _save_config(ctx, config)
    out.success(f"✓ Removed job: {name}")


@main.command()
@click.argument("names", nargs=-1)
@click.option(
    "--dry-run", is_flag=True, help="Show what would be synced without syncing"
)
@click.option(
    "--workers",
    "-j",
    type=int,
    default=None,
    help="Number of jobs to run in parallel (default: from config)",
)
@click.pass_context
def run(
    ctx: Any, names: tuple[str, ...], dry_run: bool, workers: Optional[int]
) -> None:
    """Run sync jobs once and wait for them to finish.

    NAMES: Jobs to run (default: all enabled jobs)

    Examples:
        mirrorbox run                    # Run every enabled job
        mirrorbox run documents photos   # Run selected jobs
        mirrorbox run --dry-run          # Preview changes
    """
    out: OutputFormatter = ctx.obj["out"]
    config = _load_config(ctx)
    registry = _build_registry(ctx, config)

    if workers is not None and workers < 1:
        out.error("Workers must be at least 1")
        ctx.exit(1)

    if len(registry) == 0:
        out.info("No enabled sync jobs configured.")
        return

    for name in names:
        if name not in registry:
            out.error(str(JobNotFoundError(name)))
            ctx.exit(1)

    selected = [registry.get(n) for n in names] if names else registry.all()
    jobs_to_run = [job for job in selected if job is not None]

    if dry_run:
        _run_dry(ctx, jobs_to_run)
        return

    _connect_remotes(jobs_to_run, connect=True)
    events: list[JobEvent] = []
    dispatcher = Dispatcher(registry, max_workers=workers or config.max_workers)
    try:
        # Every launch request produces exactly one event, skipped or not
        for job in jobs_to_run:
            dispatcher.run_now(job.name)
        launched = len(jobs_to_run)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            disable=out.quiet or out.json_output,
        ) as progress:
            task = progress.add_task(f"Syncing {launched} job(s)...", total=None)
            stream = dispatcher.events()
            while len(events) < launched:
                event = stream.get(timeout=0.5)
                if event is None:
                    continue
                events.append(event)
                progress.update(
                    task, description=f"Finished {len(events)}/{launched} job(s)"
                )
                _display_event(out, event)
    except KeyboardInterrupt:
        out.warning("\nSync cancelled by user")
        ctx.exit(130)
    finally:
        dispatcher.stop()
        _connect_remotes(jobs_to_run, connect=False)

    if out.json_output:
        out.output_json([e.to_dict() for e in events])

    failed = [e for e in events if e.failed]
    if failed:
        ctx.exit(1)


def _run_dry(ctx: Any, jobs_to_run: list[Job]) -> None:
    out: OutputFormatter = ctx.obj["out"]
    plans = {}
    failed = False

    for job in jobs_to_run:
        try:
            diff = job.plan()
        except WalkError as e:
            out.error(f"{job.name}: {e}")
            failed = True
            continue
        plans[job.name] = diff
        _display_plan(out, job, diff)

    if out.json_output:
        out.output_json(
            {
                name: [
                    {"path": d.path, "action": d.action.value} for d in diff
                ]
                for name, diff in plans.items()
            }
        )
    else:
        out.success("Dry run complete!")

    if failed:
        ctx.exit(1)


@main.command()
@click.option(
    "--interval",
    "-i",
    type=float,
    default=None,
    help="Seconds between sync waves (default: check_interval from config)",
)
@click.pass_context
def watch(ctx: Any, interval: Optional[float]) -> None:
    """Keep folders in sync, running all jobs on a schedule.

    Runs every enabled job immediately and then again every interval
    until interrupted with Ctrl+C.
    """
    out: OutputFormatter = ctx.obj["out"]
    config = _load_config(ctx)
    registry = _build_registry(ctx, config)

    if not ctx.obj["verbose"]:
        logging.getLogger("mirrorbox").setLevel(config.log_level.upper())

    interval = interval if interval is not None else config.check_interval
    if interval <= 0:
        out.error("Interval must be positive")
        ctx.exit(1)

    if len(registry) == 0:
        out.info("No enabled sync jobs configured.")
        return

    out.info(
        f"Watching {len(registry)} job(s), syncing every {format_duration(interval)}"
    )
    out.info("Press Ctrl+C to stop")

    all_jobs = registry.all()
    _connect_remotes(all_jobs, connect=True)
    dispatcher = Dispatcher(registry, max_workers=config.max_workers)
    try:
        dispatcher.start_scheduler(interval)
        dispatcher.run_all()
        stream = dispatcher.events()
        while True:
            event = stream.get(timeout=0.5)
            if event is None:
                continue
            _display_event(out, event)
            if out.json_output:
                out.output_json(event.to_dict())
            else:
                stamp = format_timestamp(event.timestamp)
                out.info(f"{stamp} {format_job_status(event)}")
    except KeyboardInterrupt:
        out.warning("\nStopping...")
        ctx.exit(130)
    finally:
        dispatcher.stop()
        _connect_remotes(all_jobs, connect=False)


if __name__ == "__main__":
    main()
