"""
CLI entry point: trailstop [--config PATH] [--debug] [--accounts].

Meant to be run from cron. Each invocation loads the config, reconciles
the trailing stop-losses of one investor account once, prints what it did,
and exits. Fatal errors exit with status 1; failed individual updates are
reported but do not change the exit status.
"""

import functools
import logging
import sys

import click
from dotenv import load_dotenv

from broker import CredentialRefresher, DarwinexTransport
from cli.output import format_accounts, format_run_report
from cli.structured_log import StructuredEventLogger
from config import load_trail_config, save_trail_config
from execution.reconciler import Reconciler
from trail_core.errors import TrailStopError

load_dotenv()

logger = logging.getLogger("trailstop")


def _setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s  %(message)s",
        stream=sys.stderr,
    )
    # urllib3 is chatty at DEBUG and would log request URLs.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


@click.command()
@click.option(
    "-f", "--config", "config_path",
    default="config.json", envvar="TRAILSTOP_CONFIG", show_default=True,
    help="Path to the JSON config file.",
)
@click.option("-d", "--debug", is_flag=True, default=False, help="Show debug info.")
@click.option(
    "-i", "--accounts", "list_accounts", is_flag=True, default=False,
    help="List the available investor accounts (with their investor ID) and exit. "
         "Use it to pick the investorid for the config file.",
)
def cli(config_path: str, debug: bool, list_accounts: bool) -> None:
    """trailstop: trailing stop-loss keeper for Darwinex positions."""
    _setup_logging(debug)

    try:
        cfg = load_trail_config(config_path)
    except TrailStopError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)

    events = StructuredEventLogger(
        enabled=cfg.alerting.structured_logs,
        webhook_url=cfg.alerting.webhook_url,
    )
    transport = DarwinexTransport()
    refresher = CredentialRefresher(
        transport, cfg, persist=functools.partial(save_trail_config, path=config_path)
    )
    reconciler = Reconciler(transport, cfg, refresher, events=events)

    try:
        if list_accounts:
            click.echo(format_accounts(reconciler.list_accounts()))
            return
        report = reconciler.run()
    except TrailStopError as exc:
        events.error(message=str(exc), detail=type(exc).__name__)
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)

    output = format_run_report(report, verbose=debug)
    if output:
        click.echo(output)


if __name__ == "__main__":
    cli()
