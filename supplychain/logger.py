import logging
import json
import os
from pathlib import Path
import threading


LOGGER_NAME = "supplychain"
ENV_LOG_DIR = "SUPPLYCHAIN_LOG_DIR"


class SingletonLogger:
    """
    Singleton logger that ensures the root application logger is configured once per run.
    """
    _instance = None
    _lock = threading.Lock()
    _logger = None

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(SingletonLogger, cls).__new__(cls)
        return cls._instance

    def get_logger(self, name: str = LOGGER_NAME) -> logging.Logger:
        """
        Get a logger under the configured application logger.

        Args:
            name (str): Dotted logger name, e.g. "supplychain.business.inventory"

        Returns:
            logging.Logger: Configured logger (child of the application logger)
        """
        if self._logger is None:
            with self._lock:
                if self._logger is None:
                    self._logger = self._create_logger()
        if not name or name == LOGGER_NAME:
            return self._logger
        if not name.startswith(LOGGER_NAME + "."):
            name = f"{LOGGER_NAME}.{name}"
        return logging.getLogger(name)

    def _create_logger(self) -> logging.Logger:
        """
        Create the application logger with file and console handlers.

        Returns:
            logging.Logger: Configured logger instance
        """
        logger = logging.getLogger(LOGGER_NAME)
        logger.setLevel(logging.DEBUG)
        logger.propagate = False

        # Clear any existing handlers
        logger.handlers.clear()

        formatter = JsonFormatter({
            "timestamp": "asctime",
            "level": "levelname",
            "logger": "name",
            "module": "module",
            "function": "funcName",
            "line": "lineno",
            "message": "message"
        })

        logs_dir = Path(os.environ.get(ENV_LOG_DIR, "logs"))
        logs_dir.mkdir(parents=True, exist_ok=True)

        # Fixed filenames, cleared on each run
        file_handler = logging.FileHandler(logs_dir / "supplychain.log", mode='w', encoding='utf-8')
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        error_file_handler = logging.FileHandler(logs_dir / "errors.log", mode='w', encoding='utf-8')
        error_file_handler.setLevel(logging.ERROR)
        error_file_handler.setFormatter(formatter)
        logger.addHandler(error_file_handler)

        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        return logger


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record.

    ``fields`` maps output keys to LogRecord attributes. Attributes passed through
    ``extra=`` (for example ``sku`` or ``request_id``) are appended when present,
    so a rejection can be traced back to the item without parsing the message.
    """

    CONTEXT_FIELDS = ("sku", "item_type", "department", "request_id", "attempt")

    def __init__(self, fields: dict = None, time_format: str = "%Y-%m-%dT%H:%M:%S"):
        super().__init__(datefmt=time_format)
        self.fields = fields if fields is not None else {"message": "message"}

    def format(self, record) -> str:
        record.message = record.getMessage()
        if "asctime" in self.fields.values():
            record.asctime = self.formatTime(record, self.datefmt)

        payload = {key: getattr(record, attr) for key, attr in self.fields.items()}
        for attr in self.CONTEXT_FIELDS:
            if attr in record.__dict__:
                payload[attr] = record.__dict__[attr]

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            payload["exc_info"] = record.exc_text
        if record.stack_info:
            payload["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(payload, default=str)


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """
    Get a logger from the singleton application logger.

    Args:
        name (str): Logger name; names outside the "supplychain" namespace are nested under it

    Returns:
        logging.Logger: The configured logger
    """
    return SingletonLogger().get_logger(name)
