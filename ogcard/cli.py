#!/usr/bin/env python3
"""
ogcard - link previews and social cards from the command line.
"""
import sys
import argparse
import json
import logging
from dataclasses import asdict
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ogcard.card import SocialCard
from ogcard.config import init_config, get_config
from ogcard.errors import get_error_message
from ogcard.models import MetaData, ScrapingOptions
from ogcard.scraper import StreamingFetcher
from ogcard.service import LinkPreviewService

logger = logging.getLogger(__name__)


console = Console()


def output_metadata(metadata: MetaData, format: str = "table"):
    """Output preview metadata in the specified format."""
    if format == "json":
        print(json.dumps(metadata.to_dict(), indent=2, ensure_ascii=False))
        return

    table = Table(title="Link Preview", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("URL", metadata.url)
    table.add_row("Title", metadata.title)
    table.add_row("Description", metadata.description)
    table.add_row("Image", metadata.image or "[dim]none[/dim]")
    table.add_row("Favicon", metadata.favicon)
    if metadata.body_images:
        table.add_row("Body images", "\n".join(metadata.body_images))
    console.print(table)


def make_service(config) -> LinkPreviewService:
    """Preview service honoring the configured TLS verification."""
    return LinkPreviewService(
        fetcher_factory=lambda: StreamingFetcher(verify_ssl=config.verify_ssl)
    )


def cmd_preview(args):
    """Fetch and show link preview metadata."""
    service = make_service(get_config())
    metadata = service.get_preview_data(
        args.url, ScrapingOptions(fetch_body_images=args.body_images)
    )
    output_metadata(metadata, args.output)


def cmd_card(args):
    """Render a social card for a URL."""
    config = get_config()
    service = make_service(config)
    metadata = service.get_preview_data(
        args.url, ScrapingOptions(fetch_body_images=args.body_images)
    )

    with SocialCard.from_metadata(metadata, size=config.card_size,
                                  title_font=config.title_font,
                                  subtitle_font=config.subtitle_font) as card:
        if args.title:
            card.title = args.title
        if args.image_index:
            card.select_image(args.image_index)
        scale = args.scale or config.export_scale
        card.export_png(Path(args.out), scale=scale)

    console.print(f"[green]✓ Saved card to {args.out}[/green]")
    console.print(f"  Title: {card.title}")
    if card.selected_image:
        console.print(f"  Image: {card.selected_image}")
    else:
        console.print("  [yellow]No image found[/yellow]")


def cmd_serve(args):
    """Start the ogcard REST API server."""
    from ogcard.server import run_server

    config = get_config()
    host = args.host or config.host
    port = args.port or config.port
    console.print(f"Starting ogcard API on [cyan]http://{host}:{port}[/cyan]")
    run_server(host=host, port=port, config=config)


def cmd_config(args):
    """Show or change configuration."""
    config = get_config()

    if args.action == "show":
        values = asdict(config)
        if args.key:
            if args.key not in values:
                console.print(f"[red]Unknown config key: {args.key}[/red]")
                sys.exit(1)
            console.print(f"{args.key} = {values[args.key]}")
            return

        table = Table(title="Configuration")
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")
        for key, value in values.items():
            table.add_row(key, str(value))
        console.print(table)

    elif args.action == "set":
        if not args.key or args.value is None:
            console.print("[red]Usage: ogcard config set KEY VALUE[/red]")
            sys.exit(1)
        try:
            config.set_value(args.key, args.value)
        except KeyError:
            console.print(f"[red]Unknown config key: {args.key}[/red]")
            sys.exit(1)
        except ValueError:
            console.print(f"[red]Invalid value for {args.key}: {args.value}[/red]")
            sys.exit(1)
        config.save(Path(args.config) if args.config else None)
        console.print(f"[green]Set {args.key} = {getattr(config, args.key)}[/green]")

    elif args.action == "init":
        config_path = Path(args.config) if args.config else Path.home() / ".config" / "ogcard" / "config.toml"
        config.save(config_path)
        console.print(f"[green]Created config at {config_path}[/green]")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ogcard",
        description="ogcard - link previews and social cards",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ogcard preview example.com
  ogcard preview https://example.com/post --body-images -o json
  ogcard card https://example.com/post -O card.png --image-index 1
  ogcard serve --port 3000
  ogcard config set port 3000

Configuration:
  Config file: ~/.config/ogcard/config.toml or ./ogcard.toml
  Environment: OGCARD_PORT, OGCARD_LOG_LEVEL, OGCARD_TITLE_FONT
        """
    )

    parser.add_argument("--config", help="Config file path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True, help="Commands")

    preview_parser = subparsers.add_parser("preview", help="Show link preview metadata")
    preview_parser.add_argument("url", help="Page URL (https:// is added if missing)")
    preview_parser.add_argument("--body-images", action="store_true",
                                help="Also sample image URLs from the page body")
    preview_parser.add_argument("-o", "--output", choices=["table", "json"],
                                help="Output format")
    preview_parser.set_defaults(func=cmd_preview)

    card_parser = subparsers.add_parser("card", help="Render a social card PNG")
    card_parser.add_argument("url", help="Page URL")
    card_parser.add_argument("-O", "--out", default="card.png", help="Output PNG file (default: card.png)")
    card_parser.add_argument("--title", help="Override the card title")
    card_parser.add_argument("--image-index", type=int, default=0,
                             help="Candidate image to use (0 = og:image, or the first body image without one)")
    card_parser.add_argument("--scale", type=int, help="Export resolution multiplier")
    card_parser.add_argument("--body-images", action="store_true",
                             help="Offer body images as card images")
    card_parser.set_defaults(func=cmd_card)

    serve_parser = subparsers.add_parser("serve", help="Start REST API server")
    serve_parser.add_argument("--port", "-p", type=int, help="Port to listen on")
    serve_parser.add_argument("--host", "-H", help="Host to bind to")
    serve_parser.set_defaults(func=cmd_serve)

    config_parser = subparsers.add_parser("config", help="Manage configuration")
    config_parser.add_argument("action", choices=["show", "set", "init"],
                               help="Config action")
    config_parser.add_argument("key", nargs="?", help="Config key")
    config_parser.add_argument("value", nargs="?", help="Config value (for set)")
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv=None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = init_config(config_file=Path(args.config) if args.config else None)
    level = "DEBUG" if args.verbose else config.log_level.upper()
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    if getattr(args, "output", None) is None and hasattr(args, "output"):
        args.output = config.output_format

    try:
        args.func(args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except Exception as e:
        info = get_error_message(e)
        console.print(f"[red]Error: {info.message}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
