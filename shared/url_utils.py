"""
URL extraction utilities for the Telegram link summarizer.

URLs are found with a small whitespace tokenizer instead of a loose regex:
1. Only http:// and https:// links are recognized (scheme is required)
2. Leading text before the scheme is dropped, e.g. "(https://x.com" -> "https://x.com"
3. Trailing punctuation and unbalanced closing brackets are stripped
4. Every occurrence is kept, in input order (no de-duplication)
"""

import re
from typing import List, Optional

SCHEME_PATTERN = re.compile(r'https?://', re.I)

TRAILING_PUNCTUATION = '.,;:!?\'"'

# Closing bracket -> opening bracket
BRACKET_PAIRS = {
    ')': '(',
    ']': '[',
    '}': '{',
    '>': '<',
}


def _strip_trailing(candidate: str) -> str:
    """Strip trailing punctuation and closing brackets that have no opener."""
    while candidate:
        last = candidate[-1]
        if last in TRAILING_PUNCTUATION:
            candidate = candidate[:-1]
        elif last in BRACKET_PAIRS and candidate.count(last) > candidate.count(BRACKET_PAIRS[last]):
            candidate = candidate[:-1]
        else:
            break
    return candidate


def extract_url_from_token(token: str) -> Optional[str]:
    """
    Extract a single URL from a whitespace-free token.

    Examples:
        >>> extract_url_from_token("(https://example.com/page).")
        'https://example.com/page'

        >>> extract_url_from_token("example.com") is None
        True
    """
    match = SCHEME_PATTERN.search(token)
    if not match:
        return None

    candidate = _strip_trailing(token[match.start():])

    # Scheme alone, or scheme followed only by slashes/punctuation
    host = candidate[match.end() - match.start():]
    if not host or not host.strip('/'):
        return None

    return candidate


def extract_urls(text: str) -> List[str]:
    """
    Extract all http/https URLs from message text.

    Args:
        text: Message text (may be None or empty)

    Returns:
        List of URLs in the order they appear, duplicates included
    """
    if not text:
        return []

    urls = []
    for token in text.split():
        url = extract_url_from_token(token)
        if url:
            urls.append(url)
    return urls
