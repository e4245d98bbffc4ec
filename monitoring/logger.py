import logging
import sys
import json
import datetime
import colorama
from colorama import Fore, Style

# Windows terminal renkleri için init
colorama.init(autoreset=True)

# Standart LogRecord alanları; geri kalanı `extra` ile gelmiştir
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()) | {"message", "asctime"}

_state = {"log_type": "colored", "level": logging.INFO}
_loggers = {}


class JSONFormatter(logging.Formatter):
    """
    JSON logging. extra={"stage": ..., "duration_ms": ...} alanları da yazılır.
    """
    def format(self, record):
        log_record = {
            "timestamp": datetime.datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "module": record.name,
            "file": record.filename,
            "line": record.lineno
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED and not key.startswith("_"):
                log_record[key] = value

        # Hata durumunda traceback ekle
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)


class ColoredFormatter(logging.Formatter):
    """
    renkli loglar
    """
    format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    FORMATS = {
        logging.DEBUG: Fore.CYAN + format_str + Style.RESET_ALL,
        logging.INFO: Fore.GREEN + format_str + Style.RESET_ALL,
        logging.WARNING: Fore.YELLOW + format_str + Style.RESET_ALL,
        logging.ERROR: Fore.RED + format_str + Style.RESET_ALL,
        logging.CRITICAL: Fore.RED + Style.BRIGHT + format_str + Style.RESET_ALL
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno, self.format_str)
        formatter = logging.Formatter(log_fmt, datefmt="%H:%M:%S")
        return formatter.format(record)


def _make_formatter(log_type):
    if log_type == "json":
        return JSONFormatter()
    return ColoredFormatter()


def _parse_level(level):
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    if not isinstance(value, int):
        raise ValueError(f"Bilinmeyen log seviyesi: {level}")
    return value


def get_logger(name="Detection", log_type=None, level=None):
    """
    Logger oluşturur. log_type/level verilmezse configure_logging ile seçilenler kullanılır.
    """
    logger = logging.getLogger(f"detection.{name}")
    logger.propagate = False
    logger.setLevel(_parse_level(level) if level is not None else _state["level"])

    if not logger.handlers:
        ch = logging.StreamHandler(sys.stdout)
        ch.setFormatter(_make_formatter(log_type or _state["log_type"]))
        logger.addHandler(ch)

    _loggers[logger.name] = logger
    return logger


def configure_logging(log_type="colored", level="INFO"):
    """Daha önce oluşturulmuş tüm loggerları da yeni format/seviyeye geçirir."""
    if log_type not in ("colored", "json"):
        raise ValueError(f"Bilinmeyen log_type: {log_type}")
    _state["log_type"] = log_type
    _state["level"] = _parse_level(level)

    for logger in _loggers.values():
        logger.setLevel(_state["level"])
        for handler in logger.handlers:
            handler.setFormatter(_make_formatter(log_type))
