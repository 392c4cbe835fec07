"""CLI entry point for glutenpeek."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import date
from pathlib import Path

from dotenv import load_dotenv

from .config import load_config
from .db import CatalogDB, ScanJournal
from .errors import GlutenPeekError, ValidationError
from .models import ImageBlob, Product
from .outcome import Failed, FoundExternal, FoundLocal, NeedsCommunityInput, is_resolved
from .service import build_service

_STATUS_TEXT = {
    "gluten-free": "gluten-free",
    "contains-gluten": "CONTAINS GLUTEN",
    "unknown": "unknown",
}


def main(argv: list[str] | None = None) -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="glutenpeek",
        description="Scan a food barcode and find out whether it contains gluten",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to the configuration file (TOML)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command")

    # scan
    scan_parser = sub.add_parser("scan", help="Resolve a barcode and record the scan")
    scan_parser.add_argument("barcode", nargs="?", help="Barcode digits")
    scan_parser.add_argument(
        "--image", type=str, default=None, help="Read the barcode from a photo"
    )
    scan_parser.add_argument("--user", type=str, default="local", help="User ID")
    scan_parser.add_argument(
        "--no-wait", action="store_true",
        help="Exit without waiting for the background gluten check",
    )
    scan_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # submit
    submit_parser = sub.add_parser(
        "submit", help="Create a product from package photos"
    )
    submit_parser.add_argument("barcode", help="Barcode digits")
    submit_parser.add_argument("images", nargs="+", help="Image files (4 to 8)")
    submit_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # show
    show_parser = sub.add_parser("show", help="Show a catalog product")
    show_parser.add_argument("barcode", help="Barcode digits")
    show_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # history
    history_parser = sub.add_parser("history", help="Show a user's recent scans")
    history_parser.add_argument("--user", type=str, default="local", help="User ID")
    history_parser.add_argument("--limit", type=int, default=20)
    history_parser.add_argument(
        "--date", type=date.fromisoformat, default=None, metavar="YYYY-MM-DD",
        help="Only scans from this day",
    )
    history_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # schedule
    sub.add_parser("schedule", help="Run the stale status sweep until interrupted")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)

    match args.command:
        case "scan":
            sys.exit(asyncio.run(_cmd_scan(config, args)))
        case "submit":
            sys.exit(asyncio.run(_cmd_submit(config, args)))
        case "show":
            sys.exit(_cmd_show(config, args))
        case "history":
            _cmd_history(config, args)
        case "schedule":
            sys.exit(asyncio.run(_cmd_schedule(config)))


def _print_product(product: Product) -> None:
    status = product.status
    print(f"{product.name}  [{product.barcode}]")
    print(f"  Status:      {_STATUS_TEXT.get(status.label, status.label)}")
    if status.explanation:
        print(f"  Reason:      {status.explanation}")
    print(f"  Evaluated:   {status.last_evaluated_at:%Y-%m-%d %H:%M} UTC")
    if product.ingredients:
        print(f"  Ingredients: {', '.join(product.ingredients)}")
    if product.picture_url:
        print(f"  Picture:     {product.picture_url}")


async def _cmd_scan(config, args) -> int:
    barcode = args.barcode
    if args.image:
        from .decoder import OpenCVBarcodeDecoder

        barcode = OpenCVBarcodeDecoder().decode_file(args.image)
        if not barcode:
            print(f"No barcode found in {args.image}", file=sys.stderr)
            return 1
    if not barcode:
        print("Give a barcode or --image FILE", file=sys.stderr)
        return 1

    async with build_service(config) as service:
        outcome = await service.resolve_and_record_scan(barcode, args.user)
        if not args.no_wait:
            await service.drain()
            # the background check may have changed the status
            if is_resolved(outcome):
                refreshed = service.get_product(barcode)
                if refreshed is not None:
                    outcome = type(outcome)(refreshed)

    match outcome:
        case FoundLocal(product) | FoundExternal(product):
            source = "catalog" if isinstance(outcome, FoundLocal) else "Open Food Facts"
            if args.json:
                print(json.dumps(
                    {"outcome": "found", "source": source, "product": product.to_dict()},
                    ensure_ascii=False, indent=2,
                ))
            else:
                print(f"Found in {source}:")
                _print_product(product)
            return 0
        case NeedsCommunityInput(barcode=missing):
            if args.json:
                print(json.dumps({"outcome": "needs_community_input", "barcode": missing}))
            else:
                print(
                    f"{missing} is not in any catalog. Add it with:\n"
                    f"  glutenpeek submit {missing} IMAGE IMAGE IMAGE IMAGE ..."
                )
            return 2
        case Failed(reason=reason, retryable=retryable):
            if args.json:
                print(json.dumps({"outcome": "failed", "reason": reason, "retryable": retryable}))
            else:
                hint = " Try again later." if retryable else ""
                print(f"Scan failed: {reason}.{hint}", file=sys.stderr)
            return 1
    return 1


async def _cmd_submit(config, args) -> int:
    try:
        images = [ImageBlob.from_path(p) for p in args.images]
    except OSError as e:
        print(f"Could not read image: {e}", file=sys.stderr)
        return 1

    async with build_service(config) as service:
        try:
            product = await service.submit_community_images(args.barcode, images)
        except ValidationError as e:
            print(f"Invalid submission: {e}", file=sys.stderr)
            return 1
        except GlutenPeekError as e:
            print(f"Could not add product: {e}", file=sys.stderr)
            return 1

    if args.json:
        print(json.dumps(product.to_dict(), ensure_ascii=False, indent=2))
    else:
        print("Product saved:")
        _print_product(product)
    return 0


def _cmd_show(config, args) -> int:
    catalog = CatalogDB(Path(config.database.path).expanduser())
    try:
        product = catalog.get(args.barcode)
    finally:
        catalog.close()

    if product is None:
        print(f"{args.barcode} is not in the catalog.", file=sys.stderr)
        return 1
    if args.json:
        print(json.dumps(product.to_dict(), ensure_ascii=False, indent=2))
    else:
        _print_product(product)
    return 0


def _cmd_history(config, args) -> None:
    journal = ScanJournal(Path(config.database.path).expanduser())
    try:
        if args.date:
            scans = journal.get_by_date(args.user, args.date)
        else:
            scans = journal.get_recent(args.user, limit=args.limit)
    finally:
        journal.close()

    if args.json:
        data = [{**s, "scanned_at": s["scanned_at"].isoformat()} for s in scans]
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return
    if not scans:
        print("No scans yet.")
        return
    print(f"Scans for {args.user} ({len(scans)}):")
    for s in scans:
        label = _STATUS_TEXT.get(s["status_label"], s["status_label"])
        print(f"  {s['scanned_at']:%Y-%m-%d %H:%M}  {s['barcode']:<14} {s['product_name']}  [{label}]")


async def _cmd_schedule(config) -> int:
    from .scheduler import CatalogSweepScheduler

    if not config.scheduler.enabled:
        print("The stale sweep is disabled. Set [scheduler] enabled = true to run it.", file=sys.stderr)
        return 1

    async with build_service(config) as service:
        scheduler = CatalogSweepScheduler(config, service.catalog, service.worker)
        scheduler.start()
        for job in scheduler.get_jobs():
            print(f"  {job['name']}: next run {job['next_run']}")
        try:
            await asyncio.Event().wait()
        finally:
            scheduler.stop()
    return 0


if __name__ == "__main__":
    main()
