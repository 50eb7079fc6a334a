import os

# Runtime environment ("production" enables secure cookies)
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
IS_PRODUCTION = ENVIRONMENT == "production"

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./radio_inventory.db")
TRANSACTION_TIMEOUT_SECONDS = int(os.getenv("TRANSACTION_TIMEOUT_SECONDS", "10"))

# Sessions
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "radio-inventory.sid")
SESSION_TIMEOUT_HOURS = int(os.getenv("SESSION_TIMEOUT_HOURS", "24"))

# Shared secret for kiosk clients. Shorter values disable the kiosk routes.
API_TOKEN = os.getenv("API_TOKEN", "")
API_TOKEN_MIN_LENGTH = 32

# Password hashing. Tests lower this to keep bcrypt fast.
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

# Device listing
DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 500
MAX_SKIP = 10000

# History and dashboard
HISTORY_DEFAULT_PAGE_SIZE = 100
HISTORY_MAX_PAGE_SIZE = 1000
HISTORY_MAX_PAGE = 100000
HISTORY_MAX_RANGE_DAYS = 365
DASHBOARD_ACTIVE_LOANS_LIMIT = 50

# Borrower suggestions
SUGGESTIONS_MIN_QUERY_LENGTH = 2
SUGGESTIONS_DEFAULT_LIMIT = 10
SUGGESTIONS_MAX_LIMIT = 50

# OpenID Connect identity provider
OIDC_ISSUER_URL = os.getenv("OIDC_ISSUER_URL", "")
OIDC_CLIENT_ID = os.getenv("OIDC_CLIENT_ID", "")
OIDC_CLIENT_SECRET = os.getenv("OIDC_CLIENT_SECRET", "")
OIDC_CALLBACK_URL = os.getenv(
    "OIDC_CALLBACK_URL",
    "http://localhost:8000/api/admin/auth/oidc/callback",
)
OIDC_SCOPE = os.getenv("OIDC_SCOPE", "openid profile email")
OIDC_HTTP_TIMEOUT_SECONDS = float(os.getenv("OIDC_HTTP_TIMEOUT_SECONDS", "10"))
PUBLIC_APP_URL = os.getenv("PUBLIC_APP_URL", "http://localhost:5173")

# CORS
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173",
    ).split(",")
    if origin.strip()
]

# Rate limiting
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
LOGIN_RATE_LIMIT = "5/15minutes"
SETUP_RATE_LIMIT = "5/15minutes"
CREDENTIALS_RATE_LIMIT = "10/minute"
DASHBOARD_RATE_LIMIT = "30/minute"
HISTORY_RATE_LIMIT = "20/minute"
VERIFY_TOKEN_RATE_LIMIT = "10/minute"
