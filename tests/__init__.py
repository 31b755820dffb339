import os

# Must run before hoh.config is imported: in-memory database, no Redis, no email
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["NOTIFICATIONS_BACKEND"] = "log"
os.environ["EMAIL_SERVICE"] = "console"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "test")
