"""Shared utilities for the Telegram link summarizer."""

from .url_utils import (
    extract_urls,
    extract_url_from_token,
)

from .content_cleaner import (
    clean_html,
    is_content_container,
)

from .telegram_utils import (
    TELEGRAM_API_BASE,
    get_message,
    build_reply_payload,
    send_message,
)

__all__ = [
    # URL utilities
    'extract_urls',
    'extract_url_from_token',
    # Content cleaning
    'clean_html',
    'is_content_container',
    # Telegram utilities
    'TELEGRAM_API_BASE',
    'get_message',
    'build_reply_payload',
    'send_message',
]
