import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./membership.db")
SQL_ECHO = _get_bool(os.getenv("SQL_ECHO"), default=False)

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS", "http://localhost:4200"))

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

# "google" talks to the Geocoding API, "test" uses the in-memory stub table.
GEOCODER_LOOKUP = os.getenv("GEOCODER_LOOKUP", "google")
GOOGLE_GEOCODING_URL = os.getenv(
    "GOOGLE_GEOCODING_URL",
    "https://maps.googleapis.com/maps/api/geocode/json",
)
GOOGLE_GEOCODING_API_KEY = os.getenv("GOOGLE_GEOCODING_API_KEY", "")
GEOCODER_TIMEOUT = float(os.getenv("GEOCODER_TIMEOUT", "3.0"))

DEFAULT_SEARCH_RADIUS_MILES = float(os.getenv("DEFAULT_SEARCH_RADIUS_MILES", "20"))

# "temporal" starts a workflow per job on the Temporal server, "inline" runs
# jobs in the caller.
JOB_QUEUE = os.getenv("JOB_QUEUE", "temporal")
JOB_WORKERS = int(os.getenv("JOB_WORKERS", "4"))
JOB_TIMEOUT_SECONDS = float(os.getenv("JOB_TIMEOUT_SECONDS", "60"))
JOB_MAX_ATTEMPTS = int(os.getenv("JOB_MAX_ATTEMPTS", "5"))
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "10.0"))

TEMPORAL_URL = os.getenv("TEMPORAL_URL", "localhost:7233")
TEMPORAL_NAMESPACE = os.getenv("TEMPORAL_NAMESPACE", "default")
TEMPORAL_TASK_QUEUE = os.getenv("TEMPORAL_TASK_QUEUE", "membership-jobs")

SLACK_TEAM = os.getenv("SLACK_TEAM", "")
SLACK_TOKEN = os.getenv("SLACK_TOKEN", "")

AIRTABLE_API_URL = os.getenv("AIRTABLE_API_URL", "https://api.airtable.com/v0")
AIRTABLE_API_KEY = os.getenv("AIRTABLE_API_KEY", "")
AIRTABLE_BASE_ID = os.getenv("AIRTABLE_BASE_ID", "")
AIRTABLE_TABLE = os.getenv("AIRTABLE_TABLE", "Users")

SENDGRID_API_URL = os.getenv("SENDGRID_API_URL", "https://api.sendgrid.com/v3")
SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY", "")
SENDGRID_LIST_ID = os.getenv("SENDGRID_LIST_ID", "")

def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if APP_ENV.lower() == "production" and GEOCODER_LOOKUP == "test":
        raise RuntimeError("GEOCODER_LOOKUP=test is not allowed in production.")
