import os


def _env(*names: str, default: str | None = None) -> str | None:
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    return default


API_BASE_URL = _env("TURFEASE_API_URL", "REACT_APP_API_URL", default="http://localhost:5001/api")
DEBUG = (_env("TURFEASE_DEBUG", "REACT_APP_DEBUG", default="false") or "").lower() == "true"
HTTP_TIMEOUT = float(os.environ.get("HTTP_TIMEOUT", "10"))
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")

RAZORPAY_KEY_ID = _env("RAZORPAY_KEY_ID", "REACT_APP_RAZORPAY_KEY_ID")
RAZORPAY_CHECKOUT_URL = "https://checkout.razorpay.com/v1/checkout.js"
CLOUDINARY_PRESET = _env("CLOUDINARY_PRESET", "REACT_APP_CLOUDINARY_PRESET", default="turfease")
CLOUDINARY_CLOUD = _env("CLOUDINARY_CLOUD", "REACT_APP_CLOUDINARY_CLOUD", default="dlegjx9sw")

# Feature flags
ENABLE_OCR = True
ENABLE_ANALYTICS = True
ENABLE_LOCATION_SERVICES = True

OPENING_TIME = "08:00"
CLOSING_TIME = "23:00"
ALLOCATION_WINDOW_DAYS = 5
SESSION_WARNING_SECONDS = 300
GEOLOCATION_TIMEOUT_SECONDS = 10
