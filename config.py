import os

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")
# multi-document transactions need a replica set
MONGO_TRANSACTIONS = os.getenv("MONGO_TRANSACTIONS", "false").lower() == "true"

JWT_SECRET = os.getenv("JWT_SECRET", "devsecret")
JWT_ALGO = "HS256"
JWT_EXPIRE_DAYS = int(os.getenv("JWT_EXPIRE_DAYS", 7))

PORT = int(os.getenv("PORT", 8000))
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
SEED_ADMIN_PASSWORD = os.getenv("SEED_ADMIN_PASSWORD", "admin123")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

SMTP_HOST = os.getenv("SMTP_HOST")
SMTP_PORT = int(os.getenv("SMTP_PORT", 587))
SMTP_USER = os.getenv("SMTP_USER")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
MAIL_FROM = os.getenv("MAIL_FROM", "no-reply@storefront.local")

SHIPPING_FEE = 50
TAX_RATE = 0.18
OTP_TTL_MINUTES = 5
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
