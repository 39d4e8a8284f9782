import logging
import os

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "qalab_shop")

JWT_SECRET = os.getenv("JWT_SECRET")
if not JWT_SECRET:
    logger.warning("JWT_SECRET is not set, falling back to the development secret")
    JWT_SECRET = "devsecret"
JWT_ALGO = "HS256"
TOKEN_TTL_DAYS = 7

AUTH_COOKIE_NAME = "auth-token"
AUTH_COOKIE_MAX_AGE = 60 * 60 * 24 * TOKEN_TTL_DAYS
COOKIE_SECURE = os.getenv("APP_ENV") == "production"

LEGACY_API_KEYS = [
    k.strip()
    for k in os.getenv("LEGACY_API_KEYS", "qalab-api-key-2024,student-demo-key,test-api-key-123").split(",")
    if k.strip()
]

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 12))

UPLOAD_DIR = os.getenv("UPLOAD_DIR", os.path.join("public", "uploads"))
UPLOAD_URL_PREFIX = "/uploads"
MAX_UPLOAD_BYTES = 5 * 1024 * 1024
IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}
ALLOWED_IMAGE_TYPES = list(IMAGE_EXTENSIONS)

PUBLIC_URL = os.getenv("PUBLIC_URL", "http://localhost:8000")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
PORT = int(os.getenv("PORT", 8000))
