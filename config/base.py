# config/base.py
import os


def _coerce_bool(value, default=False):
    """Convert environment-style truthy/falsey values to bool."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    value_str = str(value).strip().lower()
    if value_str in {"1", "true", "yes", "on"}:
        return True
    if value_str in {"0", "false", "no", "off"}:
        return False
    return default


def _coerce_int(value, default=None, *, minimum=None):
    """Parse an integer environment value, falling back to ``default`` when invalid."""
    if value is None or str(value).strip() == "":
        return default
    try:
        number = int(str(value).strip())
    except ValueError:
        return default
    if minimum is not None and number < minimum:
        return default
    return number


def _parse_int_list(value, *, minimum=1, maximum=None):
    """
    Parse a comma-separated list of integers with optional bounds.
    """

    if not value:
        return []

    parsed: list[int] = []
    for raw_item in value.split(","):
        item = raw_item.strip()
        if not item:
            continue
        try:
            number = int(item)
        except ValueError:
            continue
        if number < minimum or (maximum is not None and number > maximum):
            continue
        if number not in parsed:
            parsed.append(number)
    return parsed


class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {}

    # Product import configuration
    PRODUCT_IMPORT_ENABLED = _coerce_bool(os.environ.get("PRODUCT_IMPORT_ENABLED"), default=True)
    PRODUCT_IMPORT_CHUNK_SIZE = _coerce_int(os.environ.get("PRODUCT_IMPORT_CHUNK_SIZE"), default=100, minimum=1)
    PRODUCT_IMPORT_FALLBACK_TAXON_ID = _coerce_int(os.environ.get("PRODUCT_IMPORT_FALLBACK_TAXON_ID"), minimum=1)
    PRODUCT_IMPORT_METRICS_ENABLED = _coerce_bool(os.environ.get("PRODUCT_IMPORT_METRICS_ENABLED"), default=True)
    # Enterprises reset by default when an operator passes --reset-absent without ids
    PRODUCT_IMPORT_DEFAULT_RESET_ENTERPRISES = _parse_int_list(
        os.environ.get("PRODUCT_IMPORT_DEFAULT_RESET_ENTERPRISES", "")
    )


class DevelopmentConfig(Config):
    DEBUG = True
    _config_dir = os.path.dirname(os.path.abspath(__file__))
    _project_root = os.path.dirname(_config_dir)
    instance_path = os.path.join(_project_root, "instance")

    if not os.path.exists(instance_path):
        os.makedirs(instance_path, exist_ok=True)

    # SQLite URI format: sqlite:///absolute/path (3 slashes for absolute path)
    db_path = os.path.join(instance_path, "catalog_dev.db").replace("\\", "/")
    db_uri = f"sqlite:///{db_path}"

    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", db_uri)
    SQLALCHEMY_ECHO = _coerce_bool(os.environ.get("SQLALCHEMY_ECHO"), default=False)
    if SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
        SQLALCHEMY_ENGINE_OPTIONS = {
            "connect_args": {
                "check_same_thread": False,
                "timeout": 5,
            }
        }
    else:
        SQLALCHEMY_ENGINE_OPTIONS = {}


class TestingConfig(Config):
    TESTING = True
    # The test suite points this at a temporary file before the app is imported
    SQLALCHEMY_DATABASE_URI = os.environ.get("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "connect_args": {
            "check_same_thread": False,
            "timeout": 5,
        }
    }
    PRODUCT_IMPORT_METRICS_ENABLED = False


class ProductionConfig(Config):
    DEBUG = False
    uri = os.environ.get("DATABASE_URL")
    if uri and uri.startswith("postgres://"):
        uri = uri.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = uri
    SQLALCHEMY_ECHO = False
