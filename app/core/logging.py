import logging
import sys
from pythonjsonlogger import jsonlogger

from core.environment import get_log_level

def setup_logging():
    """
    Configures centralized JSON logging on stdout.
    Keeps application loggers at the configured level and quiets the
    database driver and HTTP client layers.
    """
    # 1. Get the root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(get_log_level())
    
    # 2. Prevent duplicate logs by removing existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # 3. Create StreamHandler for stdout
    log_handler = logging.StreamHandler(sys.stdout)
    
    # 4. Define JSON Format
    formatter = jsonlogger.JsonFormatter(
        fmt='%(asctime)s %(levelname)s %(name)s %(message)s',
        datefmt='%Y-%m-%dT%H:%M:%SZ'
    )
    log_handler.setFormatter(formatter)
    root_logger.addHandler(log_handler)

    # 5. Noise reduction (WARNING) for infrastructure and transport layers
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    root_logger.info("Logging infrastructure initialized successfully.")
