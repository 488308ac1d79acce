import logging
import os

from dotenv import load_dotenv

load_dotenv()


LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


def _env_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except ValueError:
        logging.getLogger(__name__).warning(f"Invalid {name}={raw!r}, using {default}")
        return float(default)


class Config:
    DEBUG = os.getenv('FLASK_DEBUG', 'False').lower() == 'true'
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

    # Contract document read by the CLI (create_app takes it already parsed)
    OAS_DOC_PATH = os.getenv('OAS_DOC_PATH', 'oas-doc.yaml')

    # Directory holding <Resource>Controller.py modules and Default.py
    OAS_CONTROLLERS_DIR = os.getenv('OAS_CONTROLLERS_DIR', 'controllers')

    # "strict" replaces non-conforming responses, "warn" only logs them
    CONTRACT_MODE = os.getenv('CONTRACT_MODE', 'warn').lower()

    # Passed through to the response validator
    OAS_IGNORE_UNKNOWN_FORMATS = _env_bool('OAS_IGNORE_UNKNOWN_FORMATS', 'true')
    OAS_ASSUME_ADDITIONAL = _env_bool('OAS_ASSUME_ADDITIONAL', 'true')

    # Seconds before a response validation is reported as failed (0 = inline)
    OAS_VALIDATION_TIMEOUT = _env_float('OAS_VALIDATION_TIMEOUT', '5.0')

    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')


def configure_logging(level: str = None) -> None:
    """Configure root logging once for the app and the CLI."""
    logging.basicConfig(
        level=getattr(logging, (level or Config.LOG_LEVEL), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )
    # Reduce noise from the dev server
    logging.getLogger('werkzeug').setLevel(logging.WARNING)
