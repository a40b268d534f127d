"""
HTML content cleaner for the Telegram link summarizer.

Reduces a fetched webpage to the readable text worth summarizing.

Rules are applied in order:
1. Remove non-content elements (scripts, styles, embedded media, ...)
2. Remove boilerplate regions (navigation, header, footer, sidebar, ads, banners)
3. Remove comment sections, popups and interactive controls
4. Collect text only from content containers (article, paragraphs, headings, list items)
5. Collapse whitespace and trim

Boilerplate and content regions are matched by tag name or by a substring of
the element's id/class attributes.
"""

import re
from typing import Union

from bs4 import BeautifulSoup, NavigableString
from bs4.element import PreformattedString, Tag

NON_CONTENT_TAGS = [
    'script', 'style', 'link', 'meta', 'iframe', 'img', 'svg', 'picture',
    'video', 'audio', 'canvas', 'object', 'embed', 'noscript',
]

BOILERPLATE_TAGS = ['nav', 'header', 'footer', 'aside']
BOILERPLATE_MARKERS = re.compile(
    r'nav|header|footer|sidebar|banner|advert|(?:^|[-_])ads?(?:[-_]|$)', re.I
)

INTERACTIVE_TAGS = ['form', 'button', 'input', 'select', 'textarea', 'dialog']
INTERACTIVE_MARKERS = re.compile(r'comment|popup|modal', re.I)

# Never removed, even when their classes look like boilerplate
PROTECTED_TAGS = {'html', 'body'}

CONTENT_TAGS = {'article', 'main', 'p', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'li'}
CONTENT_MARKERS = re.compile(r'content|article|post|entry', re.I)


def _attribute_values(tag: Tag) -> list:
    """Return the id and every class of a tag as a flat list."""
    values = []
    element_id = tag.get('id')
    if element_id:
        values.append(element_id)
    values.extend(tag.get('class') or [])
    return values


def matches_marker(tag: Tag, pattern: re.Pattern) -> bool:
    """Check whether the tag's id or any of its classes matches the pattern."""
    return any(pattern.search(value) for value in _attribute_values(tag))


def _remove(soup: BeautifulSoup, tags: list, markers: re.Pattern = None) -> None:
    """Decompose every element matched by tag name or id/class marker."""
    targets = soup.find_all(
        lambda tag: tag.name not in PROTECTED_TAGS and (
            tag.name in tags or (markers is not None and matches_marker(tag, markers))
        )
    )
    for element in targets:
        # Already gone with a removed ancestor
        if element.decomposed:
            continue
        element.decompose()


def is_content_container(tag: Tag) -> bool:
    """Check whether an element holds primary page content."""
    return tag.name in CONTENT_TAGS or matches_marker(tag, CONTENT_MARKERS)


def _in_content_container(text: NavigableString) -> bool:
    return any(is_content_container(parent) for parent in text.parents if isinstance(parent, Tag))


def clean_html(html: Union[str, bytes]) -> str:
    """
    Reduce an HTML document to readable text.

    Args:
        html: Raw HTML as text or bytes

    Returns:
        Whitespace-normalized text of the content regions, or "" if none

    Examples:
        >>> clean_html("<script>x</script><p>Hello <b>World</b></p><footer>bye</footer>")
        'Hello World'
    """
    if not html:
        return ''

    soup = BeautifulSoup(html, 'html.parser')

    _remove(soup, NON_CONTENT_TAGS)
    _remove(soup, BOILERPLATE_TAGS, BOILERPLATE_MARKERS)
    _remove(soup, INTERACTIVE_TAGS, INTERACTIVE_MARKERS)

    fragments = []
    for text in soup.find_all(string=True):
        # Comments, doctype, CDATA
        if isinstance(text, PreformattedString):
            continue
        if _in_content_container(text):
            fragments.append(str(text) + ' ')

    return re.sub(r'\s+', ' ', ''.join(fragments)).strip()
