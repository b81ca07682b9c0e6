"""
Logging Configuration
Sets up the global logger for the application.

Qt's own diagnostics (timer and event-loop warnings) are forwarded into the
same logger tree under 'perceptronviz.qt', so a training run has one log.
"""
import logging
import sys
from typing import Optional, Union

from PySide6.QtCore import QtMsgType, qInstallMessageHandler

QT_LOGGER_NAME = "perceptronviz.qt"

_QT_LEVELS = {
    QtMsgType.QtDebugMsg: logging.DEBUG,
    QtMsgType.QtInfoMsg: logging.INFO,
    QtMsgType.QtWarningMsg: logging.WARNING,
    QtMsgType.QtCriticalMsg: logging.ERROR,
    QtMsgType.QtFatalMsg: logging.CRITICAL,
}


def resolve_level(level: Union[int, str]) -> int:
    """Accept either a logging constant or its name ("debug", "INFO", ...)."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def forward_qt_message(mode: QtMsgType, context, message: str) -> None:
    logging.getLogger(QT_LOGGER_NAME).log(_QT_LEVELS.get(mode, logging.WARNING), message)


def setup_logging(level: Union[int, str] = logging.INFO, log_file: Optional[str] = None,
                  step_details: bool = False) -> None:
    """
    Configures the root logger for the 'perceptronviz' namespace.

    Args:
        level: Logging level, as a constant or a name (e.g. logging.DEBUG, "info")
        log_file: Optional path to save logs to a file.
        step_details: Log every training step (sample, prediction, error count)
            even when the package level is above DEBUG.
    """
    level = resolve_level(level)

    # Get the logger for our package
    logger = logging.getLogger("perceptronviz")
    logger.setLevel(level)

    # Check if handlers already exist to avoid duplicate logs when the runner is restarted
    if logger.hasHandlers():
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers.clear()

    # Per-step lines are DEBUG records of the training engine
    handler_level = logging.DEBUG if step_details else level
    training_logger = logging.getLogger("perceptronviz.model.training")
    training_logger.setLevel(logging.DEBUG if step_details else logging.NOTSET)

    # 1. Console Handler (stdout)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(handler_level)

    # Format: Time - Module - Level - Message
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

    # 2. File Handler (Optional)
    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(handler_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # 3. Qt diagnostics
    qInstallMessageHandler(forward_qt_message)

    logger.info(f"Logging initialized at {logging.getLevelName(level)}.")
