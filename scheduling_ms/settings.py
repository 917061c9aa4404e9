import os

db_url = os.environ.get("DB_URL", "sqlite://:memory:")
users_ms_url = os.environ.get("USERS_MS_URL", "http://localhost:8000")
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")

# Public booker URLs
WEBSITE_URL = os.environ.get("WEBSITE_URL", "http://localhost:3000").rstrip("/")
ORG_URL_TEMPLATE = os.environ.get("ORG_URL_TEMPLATE", "https://{slug}.cal.local")
