"""Channel Service.

This service handles:
- Creating group, protected, private and direct message channels
- Channel membership with owner/admin/member roles
- Bans and mutes within a channel
- Visibility-filtered channel listings
- Channel password protection
- Channel message history gated by membership
"""

__version__ = "0.1.0"
