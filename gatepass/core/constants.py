"""Application constants.

This module contains magic strings and numbers used throughout the application.
Centralizing these values makes them easier to maintain and modify.
"""

# Registration Code Configuration
# Codes look like REG-AB12CD34 (prefix + 8 uppercase alphanumerics)
REGISTRATION_CODE_PREFIX = "REG-"
REGISTRATION_CODE_LENGTH = 8
REGISTRATION_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"

# QR Code Configuration
# Quiet zone around the symbol, in modules (4 is the minimum the QR standard allows)
QR_BORDER_MODULES = 4
QR_FILL_COLOR = "black"
QR_BACK_COLOR = "white"

# Scanned text longer than this is never a credential we issued
MAX_SCANNED_TEXT_LENGTH = 4096

# Storage prefix for credential artifacts
CREDENTIAL_STORAGE_PREFIX = "credentials"

# JWT Token Configuration
# Token expiration time in minutes (12 hours, one event day for a staff device)
ACCESS_TOKEN_EXPIRE_MINUTES = 720

# Staff roles carried in the JWT "role" claim
ROLE_STAFF = "staff"
ROLE_ADMIN = "admin"
