"""CLI entry point for the Gmail Prometheus exporter."""

import argparse
import logging
import sys
from typing import Optional

from dotenv import load_dotenv

from src.auth import AuthError, Credential, CredentialStore
from src.config import ConfigurationError, ExporterConfig
from src.gmail import (
    AuthorizedTransport,
    GmailApi,
    GmailError,
    LabelCatalog,
    MessageEnricher,
    SyncEngine,
)
from src.logging_config import configure_logging
from src.metrics import PrometheusEventSink, serve_metrics
from src.watcher import MailWatcher

logger = logging.getLogger(__name__)

# Series outlive a poll interval by this much before expiring
IDLE_GRACE_SECONDS = 5 * 60


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Export Gmail arrival counters for Prometheus"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Set logging level (overrides LOG_LEVEL env var)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    watch = subparsers.add_parser(
        "watch", help="Poll mailbox history and export counters"
    )
    watch.add_argument(
        "--starting-from",
        required=True,
        help="History ID to start from (see the backfill command)",
    )
    watch.add_argument(
        "--sleep-interval",
        type=int,
        required=True,
        help="Seconds to sleep between polls",
    )

    backfill = subparsers.add_parser(
        "backfill", help="Inspect the newest messages and print a starting history ID"
    )
    backfill.add_argument(
        "--max-results",
        type=int,
        default=50,
        help="Number of recent messages to inspect (default: 50)",
    )

    subparsers.add_parser("auth-url", help="Print the OAuth consent URL")
    return parser


def load_credential(config: ExporterConfig) -> Credential:
    """Merge tokens from the token file and the environment (env wins)."""
    credential = Credential(client_id=config.client_id, client_secret=config.client_secret)

    if config.token_path is not None and config.token_path.exists():
        stored = CredentialStore.from_authorized_user_file(config.token_path).credential
        credential.access_token = stored.access_token
        credential.refresh_token = stored.refresh_token
        logger.info("Loaded tokens from %s", config.token_path)

    if config.access_token:
        credential.access_token = config.access_token
    if config.refresh_token:
        credential.refresh_token = config.refresh_token
    return credential


def build_credential_store(config: ExporterConfig) -> CredentialStore:
    def persist(_credential: Credential) -> None:
        if config.token_path is not None:
            store.save(config.token_path)

    store = CredentialStore(
        load_credential(config), on_update=persist, timeout=config.http_timeout
    )
    return store


def surface_tokens(store: CredentialStore) -> None:
    """Print the latest tokens so the operator can store them."""
    credential = store.credential
    print("!IMPORTANT! Tokens changed during this run; update your environment:")
    print(f"GOOGLE_ACCESS_TOKEN={credential.access_token or ''}")
    print(f"GOOGLE_REFRESH_TOKEN={credential.refresh_token or ''}")


def run_command(
    args: argparse.Namespace, config: ExporterConfig, store: CredentialStore
) -> int:
    if args.command == "auth-url":
        print(store.authorization_url())
        return 0

    if config.callback:
        logger.info("Handling authorization callback")
        store.exchange_authorization_code(config.callback)

    if not store.is_authenticated():
        print("Not authenticated!")
        print(f"Auth URL: {store.authorization_url()}")
        print("Please visit the URL above to authenticate.")
        print("Set the GOOGLE_CALLBACK environment variable to the code you receive.")
        return 1

    api = GmailApi(AuthorizedTransport(store, timeout=config.http_timeout))
    enricher = MessageEnricher(api, LabelCatalog.load(api))
    sync_engine = SyncEngine(api)

    if args.command == "backfill":
        sink = PrometheusEventSink()
        watcher = MailWatcher(sync_engine, enricher, sink)
        result = watcher.backfill(max_results=args.max_results)
        for event in result.events:
            logger.debug("Backfilled message: %s", event.to_dict())
        if result.latest_history_id is None:
            print("No messages found.")
        else:
            print(f"Latest message history id: {result.latest_history_id}")
        return 0

    sink = PrometheusEventSink(idle_timeout=args.sleep_interval + IDLE_GRACE_SECONDS)
    serve_metrics(config.metrics_port, sink.registry)
    watcher = MailWatcher(
        sync_engine, enricher, sink, sleep_interval=args.sleep_interval
    )
    watcher.run(args.starting_from)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    load_dotenv()

    args = build_parser().parse_args(argv)
    configure_logging(level_override=args.log_level)

    try:
        config = ExporterConfig.from_env()
        store = build_credential_store(config)
    except (ConfigurationError, AuthError) as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    try:
        return run_command(args, config, store)
    except AuthError as e:
        logger.error("Authentication failed: %s", e)
        return 1
    except GmailError:
        logger.exception("Sync failed; restart with the last reported watermark")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")
        return 130
    finally:
        if store.tokens_changed:
            surface_tokens(store)


if __name__ == "__main__":
    sys.exit(main())
