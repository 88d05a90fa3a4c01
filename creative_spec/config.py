import os
from dotenv import load_dotenv

load_dotenv()

# Remote API - loaded from .env
CREATIVE_API_URL = os.getenv("CREATIVE_API_URL", "http://localhost:3001").rstrip("/")
CREATIVE_API_TIMEOUT = float(os.getenv("CREATIVE_API_TIMEOUT", "30"))
CREATIVE_UPLOAD_TIMEOUT = float(os.getenv("CREATIVE_UPLOAD_TIMEOUT", "60"))
CREATIVE_API_MAX_RETRIES = int(os.getenv("CREATIVE_API_MAX_RETRIES", "5"))

# Local persistence
AUTOSAVE_DELAY_SECONDS = float(os.getenv("AUTOSAVE_DELAY_SECONDS", "2.0"))
AUTOSAVE_STORAGE_KEY = os.getenv("AUTOSAVE_STORAGE_KEY", "creative-autosave-snapshot")
STORAGE_DIR = os.getenv("STORAGE_DIR", ".creative_storage")
STORAGE_QUOTA_BYTES = int(os.getenv("STORAGE_QUOTA_BYTES", str(5 * 1024 * 1024)))

# Export
PREVIEW_SETTLE_SECONDS = float(os.getenv("PREVIEW_SETTLE_SECONDS", "0.1"))
BUNDLE_COMPRESSION_LEVEL = int(os.getenv("BUNDLE_COMPRESSION_LEVEL", "6"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# API endpoints
ENDPOINT_VERIFY_IDENTITY = "/api/facebook-page"
ENDPOINT_GENERATE_COPY = "/api/generate-copy"
ENDPOINT_UPLOAD_ASSET = "/api/upload-image"
ENDPOINT_SAVE_DRAFT = "/api/save-creative"
ENDPOINT_PREVIEW = "/api/preview"

# UTM defaults
DEFAULT_UTM_CAMPAIGN = "Ignite"
DEFAULT_UTM_MEDIUM = "Facebook"
DEFAULT_UTM_SOURCE = "Townsquare"

# Aspect classification (same tolerance for both shapes)
SQUARE_RATIO = 1.0
VERTICAL_SIZE = (1080, 1920)
VERTICAL_RATIO = VERTICAL_SIZE[0] / VERTICAL_SIZE[1]
ASPECT_TOLERANCE = 0.02

# Identity fallback
AVATAR_URL_TEMPLATE = "https://graph.facebook.com/{slug}/picture?type=large"
IDENTITY_FALLBACK_METHOD = "client_url_fallback"

# Accepted image types (anything else is coerced to JPEG)
ACCEPTED_MIME_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
DEFAULT_MIME_TYPE = "image/jpeg"

# Bundle layout
BUNDLE_JSON_NAME = "creative-spec.json"
BUNDLE_TEXT_NAME = "creative-spec.txt"
BUNDLE_PREVIEW_PNG = "previews/preview.png"
BUNDLE_PREVIEW_JPG = "previews/preview.jpg"
CANONICAL_EXTENSIONS = ("png", "jpg", "jpeg", "webp")
SPREADSHEET_SHEET_NAME = "Spec Sheet"
