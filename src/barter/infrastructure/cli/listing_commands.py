"""CLI commands for listings."""

from __future__ import annotations

import click

from barter.application.add_listing import AddListingHandler
from barter.application.update_listing import UpdateListingHandler
from barter.domain.exceptions import DomainException
from barter.domain.model.listing import ListingStatus
from barter.domain.service.inventory_ledger import InventoryLedger
from barter.infrastructure.bootstrap import (
    clock,
    listing_repository,
    offer_repository,
    side_effects,
    transaction_manager,
)
from barter.infrastructure.cli.parsing import parse_cash


@click.command("add")
@click.option("--as", "seller", required=True, help="Owner of the listing.")
@click.option("--title", required=True, help="Listing title.")
@click.option("--quantity", default=1, show_default=True, type=int, help="Units available.")
@click.option("--currency", default="USD", show_default=True, help="ISO currency code.")
@click.option("--cash/--no-cash", "allow_cash", default=True, help="Accept cash offers.")
@click.option("--barter/--no-barter", "allow_barter", default=True, help="Accept barter offers.")
@click.option("--cash-plus-barter", is_flag=True, default=False, help="Accept mixed offers.")
@click.option("--downpayment", default=None, help="Minimum cash required (e.g. 25.00).")
def listing_add(
    seller: str,
    title: str,
    quantity: int,
    currency: str,
    allow_cash: bool,
    allow_barter: bool,
    cash_plus_barter: bool,
    downpayment: str | None,
) -> None:
    """Add a new listing."""
    handler = AddListingHandler(listing_repo=listing_repository())

    try:
        listing = handler.handle(
            seller_id=seller,
            title=title,
            quantity=quantity,
            currency_code=currency,
            allow_cash=allow_cash,
            allow_barter=allow_barter,
            allow_cash_plus_barter=cash_plus_barter,
            downpayment_required_cents=parse_cash(downpayment) if downpayment else None,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Listing {listing.id} '{listing.title}' added (quantity={listing.quantity})")


@click.command("show")
def listing_show() -> None:
    """Show all listings with their uncommitted quantity."""
    listings = listing_repository().list_all()
    if not listings:
        click.echo("No listings found.")
        return

    ledger = InventoryLedger(listing_repository(), offer_repository())
    click.echo(
        f"{'ID':<6} {'Title':<24} {'Owner':<12} {'Status':<10} {'Qty':>5} {'Free':>5}"
    )
    click.echo("-" * 67)
    for listing in listings:
        free = ledger.available_quantity(listing.id, listing.seller_id)
        click.echo(
            f"{listing.id:<6} {listing.title:<24} {listing.seller_id:<12} "
            f"{listing.status.value:<10} {listing.quantity:>5} {free:>5}"
        )


@click.command("update")
@click.option("--id", "listing_id", required=True, help="Listing ID.")
@click.option("--quantity", default=None, type=int, help="New quantity.")
@click.option(
    "--status",
    default=None,
    type=click.Choice([s.value for s in ListingStatus]),
    help="New status.",
)
def listing_update(listing_id: str, quantity: int | None, status: str | None) -> None:
    """Change a listing's quantity or status (revalidates pending offers)."""
    if quantity is None and status is None:
        raise click.ClickException("Nothing to update: pass --quantity and/or --status")

    handler = UpdateListingHandler(
        listing_repo=listing_repository(),
        offer_repo=offer_repository(),
        tx=transaction_manager(),
        side_effects=side_effects(),
        clock=clock(),
    )

    try:
        listing, cancelled = handler.handle(listing_id, quantity=quantity, status=status)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Listing {listing.id} updated (quantity={listing.quantity}, "
        f"status={listing.status.value})"
    )
    for dto in cancelled:
        click.echo(f"  Offer #{dto.id} cancelled ({dto.cancel_reason})")
