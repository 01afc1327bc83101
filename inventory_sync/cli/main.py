# inventory_sync/cli/main.py
import logging
import sys
from datetime import datetime

import click
from tabulate import tabulate

from inventory_sync.core.config import get_settings
from inventory_sync.core.exceptions import ConfigurationError, LeaseHeldError
from inventory_sync.core.logging_config import configure_logging

logger = logging.getLogger(__name__)


def _run_job(name, job, **kwargs):
    """
    Run one job and map failures to the process exit status.

    Only configuration problems and uncaught errors fail the process;
    per-row failures live in the sheet.
    """
    start_time = datetime.now()
    logger.info(f"Starting {name} at {start_time}")
    try:
        result = job(**kwargs)
    except LeaseHeldError as e:
        logger.warning(f"{name} skipped: {e}")
        return None
    except ConfigurationError as e:
        logger.error(f"{name} failed: {e}")
        sys.exit(1)
    except Exception:
        logger.exception(f"{name} job failed")
        sys.exit(1)

    logger.info(f"Completed {name} in {datetime.now() - start_time}")
    return result


def _echo_stats(stats):
    if not stats:
        return
    click.echo(tabulate(sorted(stats.items()), headers=["Metric", "Count"], tablefmt="simple"))


@click.group()
@click.option('--log-level', default=None, help='Override LOG_LEVEL')
def cli(log_level):
    """Google Sheets <-> Shopify inventory sync jobs"""
    try:
        level = log_level or get_settings().LOG_LEVEL
    except ConfigurationError:
        level = log_level
    configure_logging(level)


@cli.command('reverse-sync')
@click.option('--max-rows', type=int, default=None, help='Maximum candidate rows to push this run')
def reverse_sync(max_rows):
    """Push Desired_Available edits to Shopify"""
    from inventory_sync.services.reverse_sync_service import run_reverse_sync

    report = _run_job("reverse sync", run_reverse_sync, max_rows=max_rows)
    if report is not None:
        report.print_summary()


@cli.command('reconcile')
@click.option('--max-rows', type=int, default=None, help='Maximum rows to refresh this run')
def reconcile(max_rows):
    """Refresh Available from Shopify"""
    from inventory_sync.services.reconcile_service import run_reconcile

    stats = _run_job("reconcile", run_reconcile, max_rows=max_rows)
    _echo_stats(stats)


@cli.command('append-new-items')
@click.option('--max-rows', type=int, default=None, help='Maximum rows to append this run')
def append_new_items(max_rows):
    """Append Shopify inventory items missing from the sheet"""
    from inventory_sync.services.append_items_service import run_append_new_items

    stats = _run_job("append new items", run_append_new_items, max_rows=max_rows)
    _echo_stats(stats)


@cli.command('update-metadata')
@click.option('--max-rows', type=int, default=None, help='Maximum rows to update this run')
def update_metadata(max_rows):
    """Refresh Category/Product_Title/Variant_Title/SKU from Shopify"""
    from inventory_sync.services.metadata_service import run_update_metadata

    stats = _run_job("metadata update", run_update_metadata, max_rows=max_rows)
    _echo_stats(stats)


@cli.command('forward-sync')
def forward_sync():
    """Apply one batch of Shopify inventory events from Pub/Sub"""
    from inventory_sync.services.forward_sync_service import run_forward_sync

    stats = _run_job("forward sync", run_forward_sync)
    _echo_stats(stats)


if __name__ == "__main__":
    cli()
