import logging
import signal
from pathlib import Path
from typing import Callable, Optional

from app_config import (
    AppConfig,
    AppConfigurationError,
    build_focus_settings,
    load_app_config,
    resolve_config_path,
)
from boards import MarkdownBoardStore
from focus import FocusTimer
from runtime import (
    RuntimeBootstrap,
    RuntimeEngine,
    RuntimeHooks,
    RuntimeUIPublisher,
    ServerNotifier,
    ServerStopReasonCollector,
)
from server import ServerConfigurationError, UIServer, UIServerConfig
from sound import CueSoundPlayer, SoundConfig


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure logging for the application."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger("focus_app")


def setup_signal_handlers(request_shutdown: Callable[[], None]) -> None:
    """Set up graceful shutdown on SIGTERM and SIGINT."""

    def signal_handler(signum: int, frame) -> None:
        del frame
        logging.getLogger("runtime").info(
            "%s received, stopping...", signal.Signals(signum).name
        )
        request_shutdown()

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)


def boards_directory(app_config: AppConfig) -> Path:
    if app_config.boards.directory:
        return Path(app_config.boards.directory)
    return Path(app_config.source_file).parent


def main() -> int:
    """Run the focus timer until interrupted."""
    logger = setup_logging(level=logging.INFO)

    try:
        config_path = resolve_config_path()
        app_config = load_app_config(str(config_path))
        logger.info("Loaded runtime config: %s", config_path)
    except AppConfigurationError as error:
        logger.error("App configuration error: %s", error)
        return 1

    directory = boards_directory(app_config)
    if not directory.is_dir():
        logger.error("Board directory not found: %s", directory)
        return 1
    board_store = MarkdownBoardStore(directory, logger=logging.getLogger("boards"))
    board_store.reload()
    settings = build_focus_settings(app_config, board_store.board_overrides())

    ui_server: Optional[UIServer] = None
    try:
        ui_server_config = UIServerConfig.from_settings(app_config.ui_server)
    except ServerConfigurationError as error:
        logger.error("UI server configuration error: %s", error)
        return 1
    if ui_server_config.enabled:
        ui_server = UIServer(
            config=ui_server_config,
            logger=logging.getLogger("ui_server"),
        )

    ui = RuntimeUIPublisher(ui_server)
    reason_collector = (
        ServerStopReasonCollector(ui, logger=logging.getLogger("runtime"))
        if ui_server is not None
        else None
    )
    cue_player = CueSoundPlayer(
        SoundConfig.from_settings(
            settings,
            output_device_index=app_config.sound.output_device,
            volume=app_config.sound.volume,
        ),
        logger=logging.getLogger("sound"),
    )
    timer = FocusTimer(
        board_store,
        settings=settings,
        reason_collector=reason_collector,
        notifier=ServerNotifier(ui, logger=logging.getLogger("runtime")),
        cue_player=cue_player,
        logger=logging.getLogger("focus"),
    )

    def reload_boards() -> None:
        board_store.reload()
        refreshed = build_focus_settings(
            app_config,
            board_store.board_overrides(),
            version=timer.settings.version + 1,
        )
        timer.apply_settings(refreshed)
        cue_player.apply_settings(refreshed)

    engine = RuntimeEngine(
        RuntimeBootstrap(
            logger=logging.getLogger("runtime"),
            timer=timer,
            ui=ui,
            reason_collector=reason_collector,
            ui_server=ui_server,
            hooks=RuntimeHooks(setup_signal_handlers=setup_signal_handlers),
            reload_documents=reload_boards,
            documents=board_store,
        )
    )

    if ui_server is not None:
        ui_server.set_command_handler(engine.submit_command)
        try:
            logger.info("Starting UI server...")
            ui_server.start(timeout_seconds=5.0)
            logger.info(
                "UI server ready at http://%s:%d",
                ui_server.host,
                ui_server.port,
            )
        except RuntimeError as error:
            logger.error("UI server startup failed: %s", error)
            return 1

    return engine.run()


if __name__ == "__main__":
    raise SystemExit(main())
