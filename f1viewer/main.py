import argparse
import logging
import sys

from f1viewer.config import DEFAULT_CONFIG_FILE, CustomSettings, setup_logging
from f1viewer.exceptions import ConfigurationError
from f1viewer.services.busy_indicator import BusyIndicator
from f1viewer.services.catalog_client import CatalogClient
from f1viewer.services.command_dispatcher import CommandDispatcher
from f1viewer.services.entity_resolver import EntityResolver
from f1viewer.services.info_panel import InfoPanel
from f1viewer.services.metadata_cache import MetadataCaches
from f1viewer.services.process_launcher import ProcessLauncher
from f1viewer.services.tree_engine import TreeEngine
from f1viewer.ui.app import F1ViewerApp


logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="f1viewer", description="Browse and play the F1TV VOD catalog")
    parser.add_argument("-d", "--debug", action="store_true", help="show the debug panel and the GET URL action")
    parser.add_argument("-c", "--config", default=DEFAULT_CONFIG_FILE, help="path to the JSON config file")
    return parser.parse_args(argv)


def build_app(settings: CustomSettings, *, debug: bool = False) -> F1ViewerApp:
    """Wire caches, client and services into the UI."""
    app = F1ViewerApp(debug=debug)

    client = CatalogClient(
        settings.api_base_url,
        timeout=settings.request_timeout_sec,
        max_retries=settings.request_max_retries,
        backoff_factor=settings.request_backoff_factor,
        download_dir=settings.download_dir,
    )
    caches = MetadataCaches()
    launcher = ProcessLauncher()
    if launcher.check_commands("mpv", "vlc") == 0:
        logger.error("Both MPV and VLC are unavailable!")

    busy = BusyIndicator(settings.blink_interval_sec, redraw=app.request_redraw)
    dispatcher = CommandDispatcher(client, launcher, busy, redraw=app.request_redraw)
    engine = TreeEngine(
        client,
        caches,
        dispatcher,
        busy,
        launcher,
        language=settings.preferred_language,
        custom_options=settings.custom_playback_options,
        max_concurrent_fetches=settings.max_concurrent_fetches,
        debug=debug,
        redraw=app.request_redraw,
    )
    app.attach_services(engine, InfoPanel(EntityResolver(client, caches)), client)
    return app


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        settings = CustomSettings.from_file(args.config)
    except ConfigurationError as exc:
        setup_logging(level="ERROR")
        logger.error("%s", exc)
        return 1

    setup_logging(settings.log_file, settings.log_level)
    logger.info("Starting f1viewer...")

    app = build_app(settings, debug=args.debug)
    try:
        app.run()
    except Exception as e:
        logger.error("f1viewer stopped unexpectedly: %s", e, exc_info=True)
        raise
    finally:
        logger.info("f1viewer stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
