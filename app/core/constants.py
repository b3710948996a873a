"""Application-wide constants.

This module centralizes limits that are used across multiple modules. For
environment-specific configuration, see config.py.
"""

# Ticket descriptions and chat messages
TICKET_DESCRIPTION_MIN_LENGTH: int = 10
TICKET_DESCRIPTION_MAX_LENGTH: int = 5000
MESSAGE_MAX_LENGTH: int = 5000

# Announcements
ANNOUNCEMENT_TITLE_MAX_LENGTH: int = 255
ANNOUNCEMENT_MESSAGE_MAX_LENGTH: int = 10000

# Preview of a reply included in notification emails
REPLY_PREVIEW_LENGTH: int = 200

# Minimum password length accepted at sign-up
PASSWORD_MIN_LENGTH: int = 8
