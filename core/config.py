# core/config.py
from __future__ import annotations

# ----------------------------------------------------
# Upload allow-lists (shared by images.validation + routers)
# ----------------------------------------------------

ALLOWED_IMAGE_TYPES = [
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/bmp",
    "image/svg+xml",
    "image/tiff",
    "image/x-icon",
    "image/vnd.microsoft.icon",
]

ALLOWED_EXTENSIONS = [".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".svg", ".tiff", ".ico"]

SUPPORTED_FORMATS_LABEL = "JPEG, PNG, GIF, WebP, BMP, SVG, TIFF, ICO"

DEFAULT_IMAGE_CONTENT_TYPE = "image/jpeg"

# Served images never change once written (keys are timestamped)
IMAGE_CACHE_CONTROL = "public, max-age=31536000"

# ----------------------------------------------------
# CORS
# ----------------------------------------------------

# Cloudflare Pages deployments + local dev servers
DEFAULT_CORS_ORIGIN_REGEX = (
    r"^(https://.*\.pages\.dev|https://.*\.cloudflareapp\.com|http://localhost:\d+)$"
)

CORS_ALLOW_METHODS = ["GET", "POST", "OPTIONS"]
CORS_ALLOW_HEADERS = ["Content-Type"]

# ----------------------------------------------------
# Routes
# ----------------------------------------------------

IMAGE_ROUTE_PREFIX = "/image/"
