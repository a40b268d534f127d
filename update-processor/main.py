"""
Update Processor Cloud Function

Processes Telegram updates queued by the webhook-receiver function.

Responsibilities:
- Decode the Update from the Pub/Sub CloudEvent
- Extract URLs from the message text
- Fetch and clean each page (in parallel)
- Summarize each page with Gemini (in parallel)
- Reply once in the originating chat with all summaries

Echo mode (PROCESSOR_MODE=echo) skips all of the above and replies with the
received text.

Does NOT:
- Retry failed fetches, summaries or replies (each is attempted once)
- Tell the user which URLs failed (failures are logged and omitted)
- De-duplicate URLs or updates
"""

import functions_framework
import requests
import google.generativeai as genai
from concurrent.futures import ThreadPoolExecutor
import base64
import binascii
import json
import os
import sys

# Add shared module to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
from shared.url_utils import extract_urls
from shared.content_cleaner import clean_html
from shared.telegram_utils import get_message, build_reply_payload, send_message

# Configuration
TELEGRAM_BOT_TOKEN = os.environ.get('TELEGRAM_BOT_TOKEN')
GEMINI_API_KEY = os.environ.get('GEMINI_API_KEY')
GEMINI_MODEL = os.environ.get('GEMINI_MODEL', 'gemini-2.0-flash')
PROCESSOR_MODE = os.environ.get('PROCESSOR_MODE', 'summarize')
MAX_WORKERS = int(os.environ.get('MAX_WORKERS', '8'))
USER_AGENT = 'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'

FETCH_TIMEOUT = 30
GEMINI_TIMEOUT = 60
MAX_CONTENT_CHARS = 20000

SUMMARY_INSTRUCTION = (
    'Summarize the following web page content in about 3 sentences. '
    'No fluff, be concise, and reply with the summary only.'
)
SCRAPE_FAILED_MESSAGE = 'Sorry, I was not able to scrape that url.'


def decode_update_event(cloud_event) -> dict:
    """
    Decode the Telegram Update carried by a Pub/Sub CloudEvent.

    Returns None for malformed events; raising would make Pub/Sub redeliver
    a message that can never succeed.
    """
    try:
        encoded = cloud_event.data['message']['data']
        update = json.loads(base64.b64decode(encoded).decode('utf-8'))
    except (KeyError, TypeError, binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        print(f"Dropping undecodable update event: {type(e).__name__}: {e}")
        return None

    if not isinstance(update, dict):
        print(f"Dropping update event with non-object payload: {type(update).__name__}")
        return None

    return update


def fetch_webpage(url: str) -> tuple:
    """Fetch webpage content. Returns (html, error)."""
    try:
        headers = {
            'User-Agent': USER_AGENT,
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
            'Accept-Language': 'en-US,en;q=0.5',
            'Upgrade-Insecure-Requests': '1',
        }

        response = requests.get(url, headers=headers, timeout=FETCH_TIMEOUT, allow_redirects=True)
        response.raise_for_status()

        return response.text, None

    except requests.exceptions.Timeout:
        return None, 'Request timed out'
    except requests.exceptions.HTTPError as e:
        return None, f'HTTP error: {e.response.status_code}'
    except requests.exceptions.RequestException as e:
        return None, f'Request failed: {str(e)}'
    except ValueError as e:
        # urllib3 LocationParseError for hosts like "a..b" is not a RequestException
        return None, f'Invalid URL: {str(e)}'


def scrape_url(url: str) -> dict:
    """
    Fetch and clean one URL.

    Returns:
        {'url', 'content'} on success (content may be empty), or
        {'url', 'error'} on failure
    """
    # Never raise: one bad URL must not abort the other units in the pool
    try:
        html, fetch_error = fetch_webpage(url)
    except Exception as e:
        fetch_error = f'Request failed: {type(e).__name__}: {str(e)}'

    if fetch_error:
        print(f"Fetch failed for {url}: {fetch_error}")
        return {'url': url, 'error': fetch_error}

    try:
        content = clean_html(html)
    except Exception as e:
        print(f"Cleaning failed for {url}: {e}")
        return {'url': url, 'error': f'Cleaning failed: {str(e)}'}

    return {'url': url, 'content': content}


def summarize_content(content: str) -> tuple:
    """Summarize page text with Gemini. Returns (summary, error)."""
    if not GEMINI_API_KEY:
        return None, 'GEMINI_API_KEY not configured'

    try:
        model = genai.GenerativeModel(GEMINI_MODEL, system_instruction=SUMMARY_INSTRUCTION)
        response = model.generate_content(
            content[:MAX_CONTENT_CHARS],
            request_options={'timeout': GEMINI_TIMEOUT}
        )
        # .text raises ValueError when the response has no text parts (e.g. blocked)
        summary = (response.text or '').strip()
    except ValueError:
        return None, 'Gemini returned no text'
    except Exception as e:
        return None, f'Gemini error: {str(e)}'

    if not summary:
        return None, 'Gemini returned no text'

    return summary, None


def summarize_scraped(scraped: dict) -> dict:
    """
    Turn one scraped page into a reply block.

    Returns:
        {'url', 'block'} on success, or {'url', 'error'} on failure
    """
    url = scraped['url']

    if not scraped['content']:
        return {'url': url, 'block': f"{url}\n{SCRAPE_FAILED_MESSAGE}"}

    summary, error = summarize_content(scraped['content'])
    if error:
        print(f"Summary failed for {url}: {error}")
        return {'url': url, 'error': error}

    return {'url': url, 'block': f"{url}\n{summary}"}


def _run_parallel(func, items: list) -> list:
    """Run func over items on a thread pool. Results keep input order."""
    if not items:
        return []
    with ThreadPoolExecutor(max_workers=max(1, min(MAX_WORKERS, len(items)))) as executor:
        return list(executor.map(func, items))


def _error_entry(stage: str, url: str, message: str) -> dict:
    return {'stage': stage, 'url': url, 'message': message, 'recoverable': True}


def echo_update(update: dict) -> dict:
    """Reply to the message with its own text."""
    message = get_message(update)
    if not message:
        return {'status': 'skipped', 'reason': 'no message'}

    payload = build_reply_payload(
        message['chat']['id'],
        message.get('text') or '',
        message['message_id']
    )
    _, send_error = send_message(TELEGRAM_BOT_TOKEN, payload)

    if send_error:
        print(f"Echo reply failed for update {update.get('update_id')}: {send_error}")
        return {'status': 'failed', 'errors': [_error_entry('reply', None, send_error)]}

    return {'status': 'sent'}


def summarize_update(update: dict) -> dict:
    """
    Summarize every URL in the message and reply with the summaries.

    Returns a report:
    {
        "status": "sent" | "failed" | "skipped",
        "urls_found": 2,
        "pages_scraped": 2,
        "summaries": 1,
        "errors": [{"stage": "summarize", "url": "...", "message": "...", "recoverable": true}]
    }
    """
    message = get_message(update)
    if not message:
        return {'status': 'skipped', 'reason': 'no message'}

    text = message.get('text')
    if not text:
        return {'status': 'skipped', 'reason': 'no text'}

    urls = extract_urls(text)
    if not urls:
        return {'status': 'skipped', 'reason': 'no urls'}

    print(f"Update {update.get('update_id')}: summarizing {len(urls)} url(s)")
    errors = []

    # Stage 1: scrape
    scraped = []
    for result in _run_parallel(scrape_url, urls):
        if 'error' in result:
            errors.append(_error_entry('fetch', result['url'], result['error']))
        else:
            scraped.append(result)

    # Stage 2: summarize
    if GEMINI_API_KEY:
        genai.configure(api_key=GEMINI_API_KEY)

    blocks = []
    for result in _run_parallel(summarize_scraped, scraped):
        if 'error' in result:
            errors.append(_error_entry('summarize', result['url'], result['error']))
        else:
            blocks.append(result['block'])

    # Stage 3: reply (sent even when every URL failed)
    payload = build_reply_payload(
        message['chat']['id'],
        '\n\n'.join(blocks),
        message['message_id'],
        disable_notification=True,
        disable_link_preview=True
    )
    _, send_error = send_message(TELEGRAM_BOT_TOKEN, payload)

    report = {
        'status': 'sent',
        'urls_found': len(urls),
        'pages_scraped': len(scraped),
        'summaries': len(blocks),
        'errors': errors,
    }

    if send_error:
        print(f"Summary reply failed for update {update.get('update_id')}: {send_error}")
        report['status'] = 'failed'
        errors.append(_error_entry('reply', None, send_error))

    return report


def handle_update(update: dict) -> dict:
    """Dispatch an Update to the configured processor variant."""
    if PROCESSOR_MODE == 'echo':
        return echo_update(update)
    return summarize_update(update)


@functions_framework.cloud_event
def process_update(cloud_event):
    """
    Main Cloud Function entry point (Pub/Sub trigger).

    Expected event data:
    {
        "message": {"data": "<base64 Telegram Update JSON>", "attributes": {"update_id": "123"}},
        "subscription": "projects/.../subscriptions/..."
    }
    """
    update = decode_update_event(cloud_event)
    if update is None:
        return

    report = handle_update(update)
    print(f"Update {update.get('update_id')} processed: {json.dumps(report)}")
