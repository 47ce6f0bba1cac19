import logging

import click

from barter.infrastructure.bootstrap import settings
from barter.infrastructure.cli.listing_commands import (
    listing_add,
    listing_show,
    listing_update,
)
from barter.infrastructure.cli.offer_commands import (
    offer_accept,
    offer_counter,
    offer_create,
    offer_extend,
    offer_list,
    offer_reject,
    offer_show,
)
from barter.infrastructure.cli.sweep_commands import sweep_run
from barter.infrastructure.cli.trade_commands import (
    trade_confirm,
    trade_confirm_payment,
    trade_mark_paid,
    trade_receipt,
)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """Barter — offer and trade engine"""
    level = logging.DEBUG if verbose else settings().log_level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)


@cli.group()
def listing() -> None:
    """Manage listings."""


@cli.group()
def offer() -> None:
    """Make and answer offers."""


@cli.group()
def trade() -> None:
    """Complete accepted trades."""


@cli.group()
def sweep() -> None:
    """Background maintenance."""


# Register subcommands
listing.add_command(listing_add)
listing.add_command(listing_show)
listing.add_command(listing_update)
offer.add_command(offer_accept)
offer.add_command(offer_counter)
offer.add_command(offer_create)
offer.add_command(offer_extend)
offer.add_command(offer_list)
offer.add_command(offer_reject)
offer.add_command(offer_show)
trade.add_command(trade_confirm)
trade.add_command(trade_confirm_payment)
trade.add_command(trade_mark_paid)
trade.add_command(trade_receipt)
sweep.add_command(sweep_run)
