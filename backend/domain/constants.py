"""
Domain constants used across services/routers.
"""

# History notes written by the workflow itself
NOTE_ORDER_CREATED = "Order created"
NOTE_PAYMENT_VERIFIED = "Payment verified"
NOTE_PAYMENT_REJECTED = "Payment rejected"

# Reason stored on a refunded payment when the caller gives none
DEFAULT_REFUND_REASON = "Order cancelled after payment"

# Accepted proof upload content types
PROOF_CONTENT_TYPES = ("image/jpeg", "image/png", "image/webp", "application/pdf")
