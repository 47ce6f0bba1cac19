"""CLI commands for the BarterOffer aggregate: negotiation."""

from __future__ import annotations

import click

from barter.application.accept_offer import AcceptOfferHandler
from barter.application.counter_offer import CounterOfferHandler
from barter.application.create_offer import CreateOfferHandler
from barter.application.extend_timer import ExtendTimerHandler
from barter.application.list_offers import ListOffersHandler
from barter.application.reject_offer import RejectOfferHandler
from barter.application.show_offer import ShowOfferHandler
from barter.domain.exceptions import DomainException
from barter.domain.model.offer import OfferStatus
from barter.infrastructure.bootstrap import (
    clock,
    listing_repository,
    offer_repository,
    policy,
    side_effects,
    transaction_manager,
)
from barter.infrastructure.cli.parsing import display_offer, parse_cash, parse_items


@click.command("create")
@click.option("--as", "buyer", required=True, help="User making the offer.")
@click.option("--listing", "listing_id", required=True, help="Listing to bid on.")
@click.option("--cash", default=None, help="Cash offered (e.g. 30.00).")
@click.option("--items", default=None, help="Pledged listings as 'ListingId:Qty,ListingId:Qty'.")
@click.option("--message", default=None, help="Note for the seller.")
def offer_create(
    buyer: str, listing_id: str, cash: str | None, items: str | None, message: str | None
) -> None:
    """Submit a new offer against a listing."""
    specs = parse_items(items)

    handler = CreateOfferHandler(
        listing_repo=listing_repository(),
        offer_repo=offer_repository(),
        tx=transaction_manager(),
        side_effects=side_effects(),
        clock=clock(),
        policy=policy(),
    )

    try:
        dto = handler.handle(
            buyer_id=buyer,
            listing_id=listing_id,
            cash_cents=parse_cash(cash),
            item_specs=specs,
            message=message,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Offer #{dto.id} created  (status={dto.status})")
    display_offer(dto)


@click.command("list")
@click.option("--as", "user", required=True, help="User whose offers to list.")
@click.option("--role", type=click.Choice(["sent", "received"]), default=None, help="Only sent or received offers.")
@click.option("--status", type=click.Choice([s.value for s in OfferStatus]), default=None, help="Filter by status.")
@click.option("--listing", "listing_id", default=None, help="Filter by target listing.")
def offer_list(user: str, role: str | None, status: str | None, listing_id: str | None) -> None:
    """List offers you sent or received, newest first."""
    handler = ListOffersHandler(offer_repo=offer_repository())

    try:
        offers = handler.handle(user, role=role, status=status, listing_id=listing_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not offers:
        click.echo("No offers found.")
        return

    click.echo(f"{'ID':<6} {'Listing':<8} {'Buyer':<12} {'Seller':<12} {'Status':<10} {'Cash':>12} {'Items':>6}")
    click.echo("-" * 72)
    for o in offers:
        click.echo(
            f"{o.id:<6} {o.listing_id:<8} {o.buyer_id:<12} {o.seller_id:<12} "
            f"{o.status:<10} {o.offered_cash:>12} {len(o.items):>6}"
        )


@click.command("show")
@click.option("--id", "offer_id", required=True, type=int, help="Offer ID to display.")
@click.option("--as", "user", required=True, help="Acting user.")
def offer_show(offer_id: int, user: str) -> None:
    """Show details of an offer you are party to."""
    handler = ShowOfferHandler(offer_repo=offer_repository())

    try:
        dto = handler.handle(offer_id, user)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    display_offer(dto)


@click.command("accept")
@click.option("--id", "offer_id", required=True, type=int, help="Offer ID to accept.")
@click.option("--as", "user", required=True, help="Listing owner.")
def offer_accept(offer_id: int, user: str) -> None:
    """Accept a pending offer (starts the trade timer)."""
    handler = AcceptOfferHandler(
        listing_repo=listing_repository(),
        offer_repo=offer_repository(),
        tx=transaction_manager(),
        side_effects=side_effects(),
        clock=clock(),
        policy=policy(),
    )

    try:
        dto = handler.handle(offer_id, user)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Offer #{dto.id} accepted — complete the trade by {dto.timer_expires_at}.")


@click.command("reject")
@click.option("--id", "offer_id", required=True, type=int, help="Offer ID to reject.")
@click.option("--as", "user", required=True, help="Listing owner.")
def offer_reject(offer_id: int, user: str) -> None:
    """Reject a pending offer."""
    handler = RejectOfferHandler(
        offer_repo=offer_repository(),
        tx=transaction_manager(),
        side_effects=side_effects(),
        clock=clock(),
    )

    try:
        handler.handle(offer_id, user)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Offer #{offer_id} rejected.")


@click.command("counter")
@click.option("--id", "offer_id", required=True, type=int, help="Offer ID to counter.")
@click.option("--as", "user", required=True, help="Listing owner.")
@click.option("--cash", default=None, help="Cash asked for (e.g. 30.00).")
@click.option("--items", default=None, help="Your pledged listings as 'ListingId:Qty,...'.")
@click.option("--message", default=None, help="Note for the buyer.")
def offer_counter(
    offer_id: int, user: str, cash: str | None, items: str | None, message: str | None
) -> None:
    """Counter a pending offer with new terms."""
    specs = parse_items(items)

    handler = CounterOfferHandler(
        listing_repo=listing_repository(),
        offer_repo=offer_repository(),
        tx=transaction_manager(),
        side_effects=side_effects(),
        clock=clock(),
    )

    try:
        dto = handler.handle(
            offer_id, user, cash_cents=parse_cash(cash), item_specs=specs, message=message
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Offer #{offer_id} countered with offer #{dto.id}.")


@click.command("extend")
@click.option("--id", "offer_id", required=True, type=int, help="Accepted offer ID.")
@click.option("--as", "user", required=True, help="Acting party.")
def offer_extend(offer_id: int, user: str) -> None:
    """Extend the trade timer (seller) or ask for more time (buyer)."""
    handler = ExtendTimerHandler(
        offer_repo=offer_repository(),
        tx=transaction_manager(),
        side_effects=side_effects(),
        clock=clock(),
        policy=policy(),
    )

    try:
        result = handler.handle(offer_id, user)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(result.message)
    if result.extended:
        click.echo(f"New deadline: {result.offer.timer_expires_at}")
