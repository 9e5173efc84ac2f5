"""
Order Detail Pipeline

Scrapes order bill pages from the legacy billing system into a resumable
checkpoint, then merges the extracted line items into the orders collection.

Usage:
    python run_pipeline.py scrape                        # Scrape all orders not in the checkpoint
    python run_pipeline.py scrape --catalog party_orders.csv --concurrency 5
    python run_pipeline.py upload                        # Merge checkpoint into the orders collection
    python run_pipeline.py audit                         # Check the checkpoint for suspicious data
    python run_pipeline.py export order_details.xlsx     # Export checkpoint to Excel

Exit codes:
    0  run completed (including "nothing to do")
    1  fatal startup error (catalog missing/unreadable, checkpoint corrupt),
       or audit found blocking errors

Environment:
    Reads config from .env (USE_LOCAL_STORAGE, GCS_BUCKET, BILL_COOKIE,
    SCRAPE_*, FIRESTORE_*, UPLOAD_*). Command line flags take precedence.
"""

import argparse
import asyncio
import os
import sys
from dataclasses import replace

from algorithms.extraction_scheduler import ExtractionScheduler, ScrapeConfig
from bill_client import BillClient, BILL_COOKIE
from checkpoint_store import CheckpointStore
from errors import PipelineError
from exporters.excel_exporter import export_order_details
from exporters.firestore_sync import DEFAULT_BATCH_SIZE, DEFAULT_DELAY_SECONDS, sync_order_details
from order_store import FirestoreOrderStore, get_order_store
from parsers.catalog_parser import parse_order_catalog
from validators import validate_order_details
import gcs_storage


CATALOG_FILE = os.environ.get('CATALOG_FILE', 'party_orders.csv')


def _load_checkpoint(args) -> CheckpointStore:
    store = CheckpointStore(args.checkpoint)
    store.load()
    return store


def _scrape_config(args) -> ScrapeConfig:
    config = ScrapeConfig.from_env()
    overrides = {}
    if args.batch_size is not None:
        overrides['batch_size'] = args.batch_size
    if args.concurrency is not None:
        overrides['concurrency'] = args.concurrency
    if args.delay_ms is not None:
        overrides['delay_seconds'] = args.delay_ms / 1000.0
    if args.checkpoint_every is not None:
        overrides['checkpoint_every'] = args.checkpoint_every
    if args.timeout is not None:
        overrides['request_timeout'] = args.timeout if args.timeout > 0 else None
    if args.retries is not None:
        overrides['retries'] = args.retries
    return replace(config, **overrides) if overrides else config


def scrape(args) -> int:
    """Scrape bill pages for every catalog order missing from the checkpoint."""
    config = _scrape_config(args)
    catalog_ids = parse_order_catalog(args.catalog)
    store = _load_checkpoint(args)

    if not BILL_COOKIE:
        print("[Scrape] WARNING: BILL_COOKIE is not set; the billing system will "
              "likely redirect every request to its login page.")

    async def run():
        async with BillClient(timeout=config.request_timeout) as client:
            scheduler = ExtractionScheduler(store, client.fetch_order_page, config)
            return await scheduler.run(catalog_ids)

    asyncio.run(run())
    return 0


def upload(args) -> int:
    """Merge the checkpoint into the orders collection."""
    store = _load_checkpoint(args)

    if args.collection and not gcs_storage.USE_LOCAL_STORAGE:
        target = FirestoreOrderStore(collection=args.collection)
    else:
        target = get_order_store()

    batch_size = args.batch_size or int(os.environ.get('UPLOAD_BATCH_SIZE', DEFAULT_BATCH_SIZE))
    if args.delay_ms is not None:
        delay_seconds = args.delay_ms / 1000.0
    else:
        delay_seconds = int(os.environ.get('UPLOAD_DELAY_MS', int(DEFAULT_DELAY_SECONDS * 1000))) / 1000.0

    sync_order_details(store, target, batch_size=batch_size, delay_seconds=delay_seconds)
    return 0


def audit(args) -> int:
    """Audit the checkpoint; exit 1 when it has blocking errors."""
    store = _load_checkpoint(args)
    catalog_ids = parse_order_catalog(args.catalog) if args.catalog else None

    report = validate_order_details(store.details(), catalog_ids)
    report.print_report()
    return 0 if report.is_valid else 1


def export(args) -> int:
    """Export the checkpoint to an Excel workbook."""
    store = _load_checkpoint(args)
    export_order_details(store.details(), args.output)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Order Detail Pipeline',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('--checkpoint', type=str, default=None,
                        help='Checkpoint path (default: CHECKPOINT_FILE or state/order_details.json)')
    subparsers = parser.add_subparsers(dest='command', help='Pipeline commands')

    # scrape command
    scrape_parser = subparsers.add_parser('scrape', help='Scrape bill pages into the checkpoint')
    scrape_parser.add_argument('--catalog', type=str, default=CATALOG_FILE,
                               help='Order catalog CSV (default: %(default)s)')
    scrape_parser.add_argument('--batch-size', type=int, help='Order ids per batch')
    scrape_parser.add_argument('--concurrency', type=int, help='Concurrent fetches per batch')
    scrape_parser.add_argument('--delay-ms', type=int, help='Pause between batches')
    scrape_parser.add_argument('--checkpoint-every', type=int,
                               help='Save the checkpoint every N processed orders')
    scrape_parser.add_argument('--timeout', type=float,
                               help='Per-request timeout in seconds (0 disables)')
    scrape_parser.add_argument('--retries', type=int,
                               help='Retries per order with exponential backoff')
    scrape_parser.set_defaults(func=scrape)

    # upload command
    upload_parser = subparsers.add_parser('upload', help='Merge the checkpoint into the orders collection')
    upload_parser.add_argument('--collection', type=str, help='Firestore collection (default: orders)')
    upload_parser.add_argument('--batch-size', type=int, help='Writes per committed batch')
    upload_parser.add_argument('--delay-ms', type=int, help='Pause after each committed batch')
    upload_parser.set_defaults(func=upload)

    # audit command
    audit_parser = subparsers.add_parser('audit', help='Check the checkpoint for suspicious data')
    audit_parser.add_argument('--catalog', type=str,
                              help='Also report catalog orders missing from the checkpoint')
    audit_parser.set_defaults(func=audit)

    # export command
    export_parser = subparsers.add_parser('export', help='Export the checkpoint to Excel')
    export_parser.add_argument('output', type=str, help='Output .xlsx path')
    export_parser.set_defaults(func=export)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except PipelineError as e:
        print(f"[Pipeline] {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
