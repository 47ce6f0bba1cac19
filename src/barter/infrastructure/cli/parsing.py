"""Option parsing shared by the command modules."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

import click

from barter.application.dto import OfferDTO, OfferItemSpec


def parse_items(raw: str | None) -> list[OfferItemSpec]:
    """Parse '12:3,15:1' into OfferItemSpec list (listing id, quantity)."""
    if not raw:
        return []
    specs: list[OfferItemSpec] = []
    for pair in raw.split(","):
        pair = pair.strip()
        if ":" not in pair:
            raise click.BadParameter(
                f"Invalid item format '{pair}'. Expected 'ListingId:Quantity'."
            )
        listing_id, qty_str = pair.rsplit(":", 1)
        try:
            qty = int(qty_str)
        except ValueError:
            raise click.BadParameter(
                f"Invalid quantity '{qty_str}' for listing '{listing_id}'."
            )
        specs.append(OfferItemSpec(listing_id=listing_id.strip(), quantity=qty))
    return specs


def parse_cash(raw: str | None) -> int:
    """Parse '30' or '30.50' into integer cents."""
    if not raw:
        return 0
    try:
        amount = Decimal(raw)
    except InvalidOperation:
        raise click.BadParameter(f"Invalid cash amount '{raw}'.")
    if amount < 0 or amount != amount.quantize(Decimal("0.01")):
        raise click.BadParameter(
            f"Cash amount '{raw}' must be non-negative with at most 2 decimals."
        )
    return int(amount * 100)


def display_offer(dto: OfferDTO) -> None:
    """Shared formatting for displaying an offer."""
    click.echo(f"Offer #{dto.id}  (status={dto.status})")
    click.echo(f"Listing:  {dto.listing_id}")
    click.echo(f"Buyer:    {dto.buyer_id}")
    click.echo(f"Seller:   {dto.seller_id}")
    click.echo(f"Cash:     {dto.offered_cash}")
    click.echo(f"Created:  {dto.created_at}")
    if dto.countered_from_id is not None:
        click.echo(f"Counter of offer #{dto.countered_from_id}")
    if dto.message:
        click.echo(f"Message:  {dto.message}")

    if dto.items:
        click.echo()
        click.echo(f"  {'Pledged listing':<20} {'Qty':>5}")
        click.echo(f"  {'-'*26}")
        for item in dto.items:
            click.echo(f"  {item.listing_id:<20} {item.quantity:>5}")

    if dto.status == "accepted":
        click.echo()
        timer = dto.timer_expires_at or "-"
        if dto.timer_paused:
            timer += " (paused)"
        click.echo(f"Timer:       {timer}  extensions={dto.timer_extension_count}")
        click.echo(f"Downpayment: {dto.downpayment_status}")
        click.echo(f"Buyer confirmed:  {dto.offer_maker_confirmed_at or '-'}")
        click.echo(f"Seller confirmed: {dto.listing_owner_confirmed_at or '-'}")
        if dto.receipt_available_at:
            click.echo(f"Receipt available at {dto.receipt_available_at}")
    if dto.cancel_reason:
        click.echo(f"Cancelled: {dto.cancel_reason}")
