import os


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() in {"1", "true", "yes"}


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///expenseflow.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = True
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "USD")
    EXCHANGE_API_URL = os.environ.get("EXCHANGE_API_URL", "https://api.exchangerate-api.com/v4/latest/{base}")
    REST_COUNTRIES_URL = os.environ.get(
        "REST_COUNTRIES_URL", "https://restcountries.com/v3.1/all?fields=name,currencies"
    )
    CURRENCY_API_TIMEOUT = float(os.environ.get("CURRENCY_API_TIMEOUT", 10))
    EXCHANGE_RATE_TTL_SECONDS = int(os.environ.get("EXCHANGE_RATE_TTL_SECONDS", 3600))
    # Off by default: any authenticated user may decide the active step.
    ENFORCE_STEP_APPROVERS = _env_flag("ENFORCE_STEP_APPROVERS")


class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG")


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.environ.get("TEST_DATABASE_URL", "sqlite:///:memory:")
    WTF_CSRF_ENABLED = False
    EXCHANGE_RATE_TTL_SECONDS = 0


class ProductionConfig(Config):
    DEBUG = False


config_by_name = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}
