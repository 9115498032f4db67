# config.py - Configuration and Placeholder Rules for Document Filler

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv(os.path.join(os.path.dirname(os.path.abspath(__file__)), '.env'))

# Logging
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

# Scan windows (characters). Every context lookup is bounded by one of these.
CURRENCY_KEYWORD_WINDOW = 100
SIGNATURE_LOOKBACK_WINDOW = 1000
SIGNATURE_LOOKAHEAD_WINDOW = 500
MARKER_SEARCH_RANGE = 3000
MARKER_AFTER_RANGE = 500
LAST_MARKER_WINDOW_BEFORE = 500
LAST_MARKER_WINDOW_AFTER = 3000

# Currency blanks ($[_____])
PURCHASE_AMOUNT_KEY = "Purchase Amount"
VALUATION_CAP_KEY = "Post-Money Valuation Cap"
VALUATION_KEYWORDS = ["valuation", "cap", "post-money"]
PURCHASE_KEYWORDS = ["purchase", "investment", "amount"]
CURRENCY_PREFIX = "$"

# Company name aliasing for the signature-block [COMPANY] token
COMPANY_NAME_KEY = "Company Name"
COMPANY_TOKEN_NAME = "COMPANY"

# Tokens whose meaning depends on the nearest preceding party mention
SCOPED_TOKEN_KEYS = {
    "name": {"company": "Company Name Field", "investor": "Investor Name"},
    "title": {"company": "Company Title", "investor": "Investor Title"},
}

# Label-style placeholders ("Address:" at line end) per party
LABEL_NAMES = ["Address", "Email", "Name", "Title"]
LABEL_KEYS = {
    "company": {
        "Address": "Company Address",
        "Email": "Company Email",
        "Name": "Company Name Field",
        "Title": "Company Title",
    },
    "investor": {
        "Address": "Investor Address",
        "Email": "Investor Email",
        "Name": "Investor Name",
        "Title": "Investor Title",
    },
}

# Signature block hints used when deciding whether [COMPANY] is a signature line
SIGNATURE_BLOCK_PATTERNS = [
    r"COMPANY:",
    r"^COMPANY\s*$",
    r"INVESTOR:",
    r"^INVESTOR\s*$",
    r"\bBy:\s*$",
    r"(?i:in witness)",
]

# Display priority (consumed by the conversation layer, not by the engine)
COMPANY_IDENTITY_KEYS = ["Company Name", "COMPANY"]
INVESTOR_IDENTITY_KEYS = ["Investor Name"]
MONETARY_HINTS = ["amount", "valuation", "cap", "price", "discount"]
DATE_HINTS = ["date"]
JURISDICTION_HINTS = ["state", "incorporation", "governing", "law", "jurisdiction"]
COMPANY_SIGNATURE_KEYS = ["Company Name Field", "Company Title", "Company Address", "Company Email"]
INVESTOR_SIGNATURE_KEYS = ["Investor Title", "Investor Address", "Investor Email"]

# File upload limits
MAX_FILE_SIZE_MB = 10
ALLOWED_EXTENSIONS = {'.docx'}
DOCX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.wordprocessingml.document'

# Output configuration
OUTPUT_FILENAME = 'completed-document.docx'

# Web server
FLASK_HOST = os.getenv('FLASK_HOST', '0.0.0.0')
FLASK_PORT = int(os.getenv('FLASK_PORT', '5000'))
FLASK_DEBUG = os.getenv('FLASK_DEBUG', 'false').lower() in ('1', 'true', 'yes')
