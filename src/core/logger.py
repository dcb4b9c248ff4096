"""Configuración de logging (loguru).

El Core solo emite mensajes con `loguru.logger`; quién los muestra y a qué
nivel lo decide la CLI llamando a `setup_logger`.
"""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = "{time:HH:mm:ss} | <level>{level: <7}</level> | <level>{message}</level>"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <7} | {message}"


def setup_logger(*, level: str = "WARNING", log_file: Path | None = None) -> Path | None:
    """Configura loguru: stderr al nivel pedido y, opcionalmente, un fichero en DEBUG.

    Devuelve la ruta del fichero de log (si se configuró).
    """

    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level.upper(), colorize=True)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(log_file, format=FILE_FORMAT, level="DEBUG")
        logger.debug(f"Command: {' '.join(sys.argv)}")
        logger.debug(f"Python: {sys.version.split()[0]}")

    return log_file
