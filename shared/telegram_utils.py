"""
Telegram Bot API utilities for the Telegram link summarizer.

Updates are handled as plain dicts, exactly as Telegram delivers them:
    {
        "update_id": 1,
        "message": {
            "message_id": 10,
            "from": {"id": 42, "is_bot": false, "first_name": "Ada"},
            "chat": {"id": 42, "type": "private"},
            "date": 1700000000,
            "text": "check https://example.com"
        }
    }
"""

from typing import Optional, Tuple

import requests

TELEGRAM_API_BASE = 'https://api.telegram.org'
TELEGRAM_TIMEOUT = 10


def get_message(update: dict) -> Optional[dict]:
    """Return the update's message, or None if there is nothing to act on."""
    if not isinstance(update, dict):
        return None
    message = update.get('message')
    return message if isinstance(message, dict) else None


def build_reply_payload(
    chat_id: int,
    text: str,
    reply_to_message_id: int,
    disable_notification: bool = False,
    disable_link_preview: bool = False,
) -> dict:
    """
    Build a sendMessage body that replies to a message.

    Optional flags are only included when set, so the plain echo reply
    stays {chat_id, text, reply_parameters}.
    """
    payload = {
        'chat_id': chat_id,
        'text': text,
        'reply_parameters': {'message_id': reply_to_message_id},
    }
    if disable_notification:
        payload['disable_notification'] = True
    if disable_link_preview:
        payload['link_preview_options'] = {'is_disabled': True}
    return payload


def send_message(bot_token: str, payload: dict) -> Tuple[Optional[dict], Optional[str]]:
    """Send a message via the Bot API. Returns (result, error)."""
    if not bot_token:
        return None, 'TELEGRAM_BOT_TOKEN not configured'

    try:
        response = requests.post(
            f'{TELEGRAM_API_BASE}/bot{bot_token}/sendMessage',
            json=payload,
            timeout=TELEGRAM_TIMEOUT
        )
        response.raise_for_status()
        data = response.json()

        if not data.get('ok'):
            return None, f"Telegram API error: {data.get('description', 'unknown error')}"

        return data.get('result'), None

    except requests.exceptions.Timeout:
        return None, 'Request timed out'
    except requests.exceptions.HTTPError as e:
        # Never include the URL here, it carries the bot token
        return None, f'HTTP error: {e.response.status_code}'
    except requests.exceptions.RequestException as e:
        return None, f'Request failed: {type(e).__name__}'
    except ValueError:
        return None, 'Invalid JSON in Telegram response'
