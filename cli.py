import click
import logging
import sqlalchemy.exc
from tabulate import tabulate
import traceback

from config.settings import get_settings
from core.database.operations import (
    init_db,
    SessionLocal,
    list_products,
    get_product,
    get_price_history,
    delete_product,
    DuplicateTrackingError,
)
from core.scrapers.extractor import ProductExtractor
from core.scrapers.models import ExtractionFailure, RefreshStatus
from core.scrapers.renderer import build_renderer
from core.tracker.notifier import build_notifier
from core.tracker.service import ExtractionFailedError, track_product, refresh_watchlist

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
logger = logging.getLogger("price-tracker-cli")


def make_extractor():
    return ProductExtractor(build_renderer(settings), timeout_ms=settings.RENDER_TIMEOUT_MS)


def format_price(price):
    if price is None:
        return "-"
    return f"NT$ {price:,}"


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, verbose):
    """Product price tracking tool."""
    ctx.ensure_object(dict)
    ctx.obj["VERBOSE"] = verbose

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug logging enabled")


@cli.command()
def init():
    """Initialize the database."""
    init_db()
    click.echo("Database initialized!")


@cli.command()
@click.argument("url")
def extract(url):
    """Scrape a product page and print what was found, without saving it."""
    outcome = make_extractor().try_extract(url)
    if isinstance(outcome, ExtractionFailure):
        click.echo(f"Could not scrape {url} ({outcome.kind.value}): {outcome.message}")
        raise SystemExit(1)

    click.echo(f"Platform: {outcome.platform.value}")
    click.echo(f"Title:    {outcome.title}")
    click.echo(f"Price:    {format_price(outcome.price) if outcome.price else 'not found'}")
    click.echo(f"Image:    {outcome.image_url or '-'}")


@cli.command()
@click.argument("url")
@click.option("--target-price", "-t", type=int, help="Alert when the price drops to this value or below")
@click.pass_context
def add(ctx, url, target_price):
    """Start tracking the product at URL."""
    db = SessionLocal()
    try:
        product = track_product(db, make_extractor(), url, target_price)
        click.echo(f"Tracking product {product.id}: {product.title}")
        click.echo(f"   Price: {format_price(product.current_price)}")
        if product.target_price is not None:
            click.echo(f"   Target: {format_price(product.target_price)}")
    except DuplicateTrackingError as e:
        click.echo(f"Already tracked: {url}" + (f" (product {e.product_id})" if e.product_id else ""))
        raise SystemExit(1)
    except ExtractionFailedError as e:
        if e.kind == "zero_price":
            click.echo(f"No price found on {url}; product not added.")
        else:
            click.echo(f"Failed to scrape product. Please verify the URL. ({e})")
        raise SystemExit(1)
    except sqlalchemy.exc.SQLAlchemyError as e:
        db.rollback()
        click.echo(f"Database error: {str(e)}")
        if ctx.obj["VERBOSE"]:
            click.echo(traceback.format_exc())
        raise SystemExit(1)
    finally:
        db.close()


@cli.command(name="list")
@click.pass_context
def list_command(ctx):
    """List tracked products."""
    db = SessionLocal()
    try:
        products = list_products(db)
        if not products:
            click.echo("No products tracked yet.")
            return

        table_data = []
        for product in products:
            # Truncate title if too long
            title = product.title
            if len(title) > 40:
                title = title[:37] + "..."
            table_data.append([
                product.id,
                title,
                product.platform,
                format_price(product.current_price),
                format_price(product.target_price),
                product.updated_at.strftime("%Y-%m-%d %H:%M") if product.updated_at else "-",
            ])

        headers = ["ID", "Product", "Platform", "Price", "Target", "Updated"]
        click.echo(tabulate(table_data, headers=headers, tablefmt="grid"))
    except sqlalchemy.exc.SQLAlchemyError as e:
        click.echo(f"Database error: {str(e)}")
        if ctx.obj["VERBOSE"]:
            click.echo(traceback.format_exc())
    finally:
        db.close()


@cli.command()
@click.argument("product_id", type=int)
@click.option("--limit", "-l", default=20, help="Number of history entries to show (default: 20)")
@click.pass_context
def show(ctx, product_id, limit):
    """Show a tracked product and its price history."""
    db = SessionLocal()
    try:
        product = get_product(db, product_id)
        if not product:
            click.echo(f"Error: Product with ID {product_id} not found.")
            raise SystemExit(1)

        click.echo(f"{product.title}")
        click.echo(f"   URL: {product.url}")
        click.echo(f"   Platform: {product.platform}")
        click.echo(f"   Price: {format_price(product.current_price)}")
        click.echo(f"   Target: {format_price(product.target_price)}")

        history = get_price_history(db, product_id, limit=limit)
        table_data = [
            [h.scraped_at.strftime("%Y-%m-%d %H:%M"), format_price(h.price)] for h in history
        ]
        click.echo("\n" + tabulate(table_data, headers=["Date", "Price"], tablefmt="grid"))
    except sqlalchemy.exc.SQLAlchemyError as e:
        click.echo(f"Database error: {str(e)}")
        if ctx.obj["VERBOSE"]:
            click.echo(traceback.format_exc())
    finally:
        db.close()


@cli.command()
@click.argument("product_id", type=int)
def remove(product_id):
    """Stop tracking a product."""
    db = SessionLocal()
    try:
        if delete_product(db, product_id):
            click.echo(f"Removed product {product_id}.")
        else:
            click.echo(f"Error: Product with ID {product_id} not found.")
            raise SystemExit(1)
    finally:
        db.close()


@cli.command()
@click.option(
    "--delay",
    "-d",
    type=float,
    default=None,
    help=f"Seconds to wait between products (default: {settings.REFRESH_DELAY_SECONDS:g})",
)
@click.pass_context
def refresh(ctx, delay):
    """Re-scrape every tracked product and report price changes."""
    db = SessionLocal()
    try:
        outcomes = refresh_watchlist(
            db,
            make_extractor(),
            notifier=build_notifier(settings),
            delay_seconds=settings.REFRESH_DELAY_SECONDS if delay is None else delay,
        )
    except sqlalchemy.exc.SQLAlchemyError as e:
        click.echo(f"Database error: {str(e)}")
        if ctx.obj["VERBOSE"]:
            click.echo(traceback.format_exc())
        raise SystemExit(1)
    finally:
        db.close()

    if not outcomes:
        click.echo("No products tracked yet.")
        return

    table_data = [
        [o.item_id, (o.title or "")[:40], o.status.value, format_price(o.price)]
        for o in outcomes
    ]
    click.echo(tabulate(table_data, headers=["ID", "Product", "Status", "Price"], tablefmt="grid"))

    alerts = sum(1 for o in outcomes if o.status == RefreshStatus.ALERT)
    failed = sum(1 for o in outcomes if o.status == RefreshStatus.FAILED)
    click.echo(f"\n{len(outcomes)} products refreshed, {alerts} alerts, {failed} failed.")


@cli.command()
@click.option("--host", default="127.0.0.1", help="Interface to bind (default: 127.0.0.1)")
@click.option("--port", "-p", default=8000, help="Port to listen on (default: 8000)")
def serve(host, port):
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("api.main:app", host=host, port=port)


if __name__ == "__main__":
    # This runs the Click application
    cli.main(obj={})
