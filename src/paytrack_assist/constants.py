"""
Project-wide constants for the PayTrack support assistant client
"""  # noqa: D200, D212, D415

# ==============================================================================
# Network Configuration
# ==============================================================================

REQUEST_TIMEOUT = 30.0  # seconds, per attempt
DEFAULT_ENDPOINT_PATH = "/functions/v1/ai-support"

# ==============================================================================
# Rate Limiting
# ==============================================================================

DEFAULT_RETRY_AFTER = 30.0  # seconds, when the server gives no hint
COUNTDOWN_TICK_INTERVAL = 1.0  # seconds

# Lowercased substrings that mark a message as a rate-limit signal
RATE_LIMIT_MARKERS = (
    "rate_limit",
    "rate limit",
    "ratelimit",
    "too many requests",
    "límite de solicitudes",
)

# Lowercased substrings that mark a message as a server-side failure
SERVER_ERROR_MARKERS = ("server",)

# ==============================================================================
# Analysis Normalization
# ==============================================================================

ANALYSIS_CATEGORIES = ("payment", "whatsapp", "account", "technical", "other")
DEFAULT_CATEGORY = "other"
DEFAULT_CONFIDENCE = 0.5

CATEGORY_LABELS = {
    "payment": "Pagos",
    "whatsapp": "WhatsApp",
    "account": "Cuenta",
    "technical": "Técnico",
    "other": "General",
}

# Starter questions shown before the first message
QUICK_QUESTIONS = (
    ("Pago no detectado", "Un pago de mi cliente no fue detectado automáticamente"),
    ("WhatsApp desconectado", "Mi WhatsApp se desconectó y no recibo mensajes"),
    ("Monto incorrecto", "El monto detectado es diferente al real del comprobante"),
    ("Contacto duplicado", "Tengo el mismo contacto duplicado con diferentes números"),
)
