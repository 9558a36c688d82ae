#!/usr/bin/env python3
"""
Track work-from-home hours with clock-in/clock-out entries.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = "punchcard: %(levelname)s: %(message)s"
LOG_LEVEL_ENV_VAR = "PUNCHCARD_LOG"


def configure_logging(verbose: bool = False) -> int:
    """
    Configure stderr logging for the CLI.

    Parameters
    ----------
    verbose : bool, optional
        Enable debug output (default: False).

    Returns
    -------
    int
        Effective logging level.

    Examples
    --------
    >>> configure_logging(verbose=True) == logging.DEBUG
    True
    """
    requested = os.environ.get(LOG_LEVEL_ENV_VAR, "").strip().upper()
    if verbose:
        level = logging.DEBUG
    elif requested and isinstance(logging.getLevelName(requested), int):
        level = logging.getLevelName(requested)
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)
    return level


def build_app():
    """
    Build the Typer app lazily to keep fast-path imports light.

    Returns
    -------
    typer.Typer
        Configured Typer application for the punchcard CLI.
    """
    import typer

    from . import commands
    from .entry_log import EntryType
    from .report import ReportPeriod

    app = typer.Typer(help="Track work-from-home hours.", no_args_is_help=True)

    offset_help = 'Offset from now, e.g. "15m ago" or "in 1h 30m".'
    num_rows_help = 'Print the last N rows, or "all".'

    @app.callback()
    def root_callback(
        ctx: typer.Context,
        data_folder: Optional[Path] = typer.Option(
            None,
            "--data-folder",
            help="Folder holding hours.csv (env: PUNCHCARD_DATA_FOLDER).",
        ),
        timezone: Optional[str] = typer.Option(
            None,
            "--timezone",
            help="IANA timezone for reports (env: PUNCHCARD_TIMEZONE).",
        ),
        verbose: bool = typer.Option(
            False,
            "--verbose",
            "-v",
            help="Log debug output to stderr.",
        ),
    ):
        configure_logging(verbose)
        ctx.obj = commands.AppState(data_folder=data_folder, timezone=timezone)

    @app.command("in")
    def in_cmd(
        ctx: typer.Context,
        offset: Optional[str] = typer.Option(None, "--offset-from-now", "-o", help=offset_help),
    ):
        """
        Clock in.
        """
        raise typer.Exit(code=commands.run_clock(ctx.obj, EntryType.CLOCK_IN, offset))

    @app.command("out")
    def out_cmd(
        ctx: typer.Context,
        offset: Optional[str] = typer.Option(None, "--offset-from-now", "-o", help=offset_help),
    ):
        """
        Clock out.
        """
        raise typer.Exit(code=commands.run_clock(ctx.obj, EntryType.CLOCK_OUT, offset))

    @app.command("toggle")
    def toggle_cmd(
        ctx: typer.Context,
        offset: Optional[str] = typer.Option(None, "--offset-from-now", "-o", help=offset_help),
    ):
        """
        Clock in when clocked out, otherwise clock out.
        """
        raise typer.Exit(code=commands.run_clock(ctx.obj, None, offset))

    @app.command("status")
    def status_cmd(
        ctx: typer.Context,
        offset: Optional[str] = typer.Option(
            None,
            "--offset-from-now",
            "-o",
            help="Report the status at an offset from now.",
        ),
    ):
        """
        Show whether you are clocked in and since when.
        """
        raise typer.Exit(code=commands.run_status(ctx.obj, offset))

    report_app = typer.Typer(help="Interpret the log and generate a report.")

    @report_app.callback(invoke_without_command=True)
    def report_callback(
        ctx: typer.Context,
        output_file: Optional[str] = typer.Option(
            None,
            "--output-file",
            "-o",
            help="Save the report as CSV, or '-' for stdout.",
        ),
        just_table: bool = typer.Option(
            False,
            "--just-table",
            "-j",
            help="Only print the table and nothing else.",
        ),
        exact: bool = typer.Option(
            False,
            "--exact",
            help="Print exact durations instead of rounded.",
        ),
        num_rows: str = typer.Option("10", "--num-rows", "-n", help=num_rows_help),
    ):
        settings = {
            "output_file": output_file,
            "just_table": just_table,
            "exact": exact,
            "num_rows": num_rows,
        }
        if ctx.invoked_subcommand is not None:
            ctx.obj = (ctx.obj, settings)
            return
        exit_code = commands.run_report(ctx.obj, period=ReportPeriod.WEEK, **settings)
        raise typer.Exit(code=exit_code)

    @report_app.command("weekly")
    def weekly_cmd(
        ctx: typer.Context,
        month: str = typer.Option(
            "current",
            "--month",
            "-m",
            help="Month name or number, or current/previous/next/all.",
        ),
        spill_over: bool = typer.Option(
            False,
            "--spill-over",
            "-s",
            help="Include whole weeks that spill in to or out of the month.",
        ),
    ):
        """
        Generate a report by week for a given month.
        """
        state, settings = ctx.obj
        exit_code = commands.run_report(
            state,
            period=ReportPeriod.WEEK,
            month=month,
            spill_over=spill_over,
            **settings,
        )
        raise typer.Exit(code=exit_code)

    @report_app.command("daily")
    def daily_cmd(ctx: typer.Context):
        """
        Generate a report by day for the current week.
        """
        state, settings = ctx.obj
        raise typer.Exit(code=commands.run_report(state, period=ReportPeriod.DAY, **settings))

    app.add_typer(report_app, name="report")

    @app.command("entries")
    def entries_cmd(
        ctx: typer.Context,
        num_rows: str = typer.Option("10", "--num-rows", "-n", help=num_rows_help),
    ):
        """
        List the most recent clock entries.
        """
        raise typer.Exit(code=commands.run_entries(ctx.obj, num_rows))

    @app.command("now")
    def now_cmd(
        ctx: typer.Context,
        human_readable: bool = typer.Option(
            False,
            "--human-readable",
            "-H",
            help="Print a short local timestamp instead of the log format.",
        ),
    ):
        """
        Print the current timestamp.
        """
        raise typer.Exit(code=commands.run_now(ctx.obj, human_readable))

    @app.command("generate-data", hidden=True)
    def generate_cmd(
        ctx: typer.Context,
        count: Optional[int] = typer.Option(None, "--count", "-c", help="Number of entries."),
        output_file: Optional[str] = typer.Option(
            None,
            "--output-file",
            "-o",
            help="Write to this path, or '-' for stdout.",
        ),
        force: bool = typer.Option(False, "--force", help="Overwrite the existing log."),
    ):
        raise typer.Exit(code=commands.run_generate(ctx.obj, count, output_file, force))

    return app


def main():
    """
    Entry point for the punchcard command.
    """
    from dotenv import find_dotenv, load_dotenv

    load_dotenv(find_dotenv(usecwd=True), override=False)
    app = build_app()
    app()


if __name__ == "__main__":
    main()
