"""CLI command for the expiration sweep."""

from __future__ import annotations

import click

from barter.application.run_expiration_sweep import ExpirationSweepHandler
from barter.infrastructure.bootstrap import (
    clock,
    offer_repository,
    policy,
    settings,
    side_effects,
    transaction_manager,
)
from barter.infrastructure.scheduler.expiration_worker import ExpirationWorker


@click.command("run")
@click.option("--loop", is_flag=True, default=False, help="Keep sweeping on the configured interval.")
def sweep_run(loop: bool) -> None:
    """Cancel accepted trades whose timer has lapsed."""
    handler = ExpirationSweepHandler(
        offer_repo=offer_repository(),
        tx=transaction_manager(),
        side_effects=side_effects(),
        clock=clock(),
        policy=policy(),
    )
    worker = ExpirationWorker(handler, interval_seconds=settings().sweep_interval_seconds)

    if loop:
        try:
            worker.run_forever()
        except KeyboardInterrupt:
            worker.stop()
        return

    result = worker.run_once()
    click.echo(
        f"Sweep done: {len(result.cancelled)} cancelled, "
        f"{len(result.warned)} warned, {len(result.failed)} failed"
    )
    for offer_id in result.cancelled:
        click.echo(f"  Trade #{offer_id} expired")
