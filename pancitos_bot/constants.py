"""Application-wide constants.

Fixed reply content, Graph API details and timeouts live here so the reply
table and the send gateway share a single source of truth.
"""

# =============================================================================
# Facebook Graph API
# =============================================================================

# Graph API version used by the Send API
FACEBOOK_GRAPH_API_VERSION = "v2.8"

# Base URL of the Graph API
FACEBOOK_GRAPH_API_BASE_URL = "https://graph.facebook.com"

# Timeout for Send API calls (seconds)
FACEBOOK_API_TIMEOUT_SECONDS = 10.0

# Longest response body excerpt written to logs
MAX_LOGGED_RESPONSE_BODY_CHARS = 500

# =============================================================================
# Webhook
# =============================================================================

# Header carrying the HMAC of the raw request body
SIGNATURE_HEADER = "X-Hub-Signature"

# Object type of page subscriptions; anything else is acknowledged and ignored
PAGE_OBJECT_TYPE = "page"

# Port used when none is configured
DEFAULT_PORT = 5000

# =============================================================================
# Reply Content
# =============================================================================

# Keyword (message text or postback payload) that triggers the bread carousel
TIPOS_PANES = "TIPOS_PANES"

WELCOME_TEXT = "Hola! Bienvenido a Pancitos DevC. En que te podemos ayudar?"
QUICK_REPLY_TEXT = "Quick reply tapped"
ATTACHMENT_RECEIVED_TEXT = "Message with attachment received"

PAGE_URL = "https://www.facebook.com/pancitosdevc/"
PAGE_PHONE_NUMBER = "+16505551234"
PRODUCT_URL = "http://www.pancitosdevc.cl/panpita"

# =============================================================================
# Account Linking
# =============================================================================

# Authorization code handed back to Messenger after a successful login.
# Should be generated per user once real accounts exist.
ACCOUNT_LINKING_AUTH_CODE = "1234567890"
