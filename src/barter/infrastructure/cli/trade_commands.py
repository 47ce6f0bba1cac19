"""CLI commands for the trade phase of an accepted offer."""

from __future__ import annotations

import click

from barter.application.confirm_downpayment_receipt import (
    ConfirmDownpaymentReceiptHandler,
)
from barter.application.confirm_trade import ConfirmTradeHandler
from barter.application.get_receipt import GetReceiptHandler
from barter.application.mark_downpayment_paid import MarkDownpaymentPaidHandler
from barter.domain.exceptions import DomainException
from barter.infrastructure.bootstrap import (
    clock,
    listing_repository,
    offer_repository,
    policy,
    side_effects,
    transaction_manager,
)


@click.command("confirm")
@click.option("--id", "offer_id", required=True, type=int, help="Accepted offer ID.")
@click.option("--as", "user", required=True, help="Acting party.")
def trade_confirm(offer_id: int, user: str) -> None:
    """Confirm the exchange happened on your side."""
    handler = ConfirmTradeHandler(
        listing_repo=listing_repository(),
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

    if result.finalized:
        click.echo(
            f"Trade #{offer_id} complete — receipt available at "
            f"{result.offer.receipt_available_at}."
        )
    elif result.recorded:
        click.echo(f"Trade #{offer_id} confirmed — waiting for the other party.")
    else:
        click.echo(f"Trade #{offer_id} was already confirmed by you.")


@click.command("receipt")
@click.option("--id", "offer_id", required=True, type=int, help="Completed trade ID.")
@click.option("--as", "user", required=True, help="Acting party.")
def trade_receipt(offer_id: int, user: str) -> None:
    """Show the receipt of a completed trade."""
    handler = GetReceiptHandler(
        offer_repo=offer_repository(),
        tx=transaction_manager(),
        clock=clock(),
    )

    try:
        receipt = handler.handle(offer_id, user)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Receipt {receipt.receipt_number}")
    click.echo(f"Generated: {receipt.generated_at}")
    click.echo(f"Trade #{receipt.offer_id} for listing {receipt.listing_id}")
    click.echo(f"Buyer:  {receipt.buyer_id}")
    click.echo(f"Seller: {receipt.seller_id}")
    click.echo(f"Cash:   {receipt.offered_cash}")
    for item in receipt.items:
        click.echo(f"  listing {item.listing_id} x{item.quantity}")


@click.command("mark-paid")
@click.option("--id", "offer_id", required=True, type=int, help="Accepted offer ID.")
@click.option("--as", "user", required=True, help="Buyer.")
def trade_mark_paid(offer_id: int, user: str) -> None:
    """Record that the downpayment was sent (pauses the timer)."""
    handler = MarkDownpaymentPaidHandler(
        offer_repo=offer_repository(),
        tx=transaction_manager(),
        side_effects=side_effects(),
        clock=clock(),
    )

    try:
        handler.handle(offer_id, user)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Downpayment for trade #{offer_id} marked as paid.")


@click.command("confirm-payment")
@click.option("--id", "offer_id", required=True, type=int, help="Accepted offer ID.")
@click.option("--as", "user", required=True, help="Seller.")
def trade_confirm_payment(offer_id: int, user: str) -> None:
    """Confirm the downpayment was received."""
    handler = ConfirmDownpaymentReceiptHandler(
        offer_repo=offer_repository(),
        tx=transaction_manager(),
        side_effects=side_effects(),
        clock=clock(),
    )

    try:
        handler.handle(offer_id, user)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Downpayment for trade #{offer_id} confirmed.")
