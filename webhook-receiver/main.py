"""
Webhook Receiver Cloud Function

Entry point for Telegram bot webhook updates.

Responsibilities:
- Accept POST requests from Telegram
- Verify the webhook secret token (when configured)
- Parse the JSON body as an Update
- Publish the Update to Pub/Sub for the update-processor function
- Acknowledge immediately with 200 OK

Does NOT:
- Wait for the update to be processed (update-processor's job)
- Scrape or summarize anything (update-processor's job)
- Retry failed publishes (Telegram redelivers on non-2xx)
"""

import functions_framework
from google.cloud import pubsub_v1
import json
import os

# Configuration
GCP_PROJECT = os.environ.get('GOOGLE_CLOUD_PROJECT')
UPDATE_TOPIC = os.environ.get('UPDATE_TOPIC', 'telegram-updates')
TELEGRAM_WEBHOOK_SECRET = os.environ.get('TELEGRAM_WEBHOOK_SECRET')
SECRET_HEADER = 'X-Telegram-Bot-Api-Secret-Token'
PUBLISH_TIMEOUT = 10

# Pub/Sub client cache (reused across warm invocations)
_publisher_cache = {'client': None}


def get_publisher_client() -> pubsub_v1.PublisherClient:
    """Get a cached Pub/Sub publisher client."""
    if _publisher_cache['client'] is None:
        _publisher_cache['client'] = pubsub_v1.PublisherClient()
    return _publisher_cache['client']


def is_authorized(request) -> bool:
    """Check the Telegram secret token header. Always true if no secret is set."""
    if not TELEGRAM_WEBHOOK_SECRET:
        return True
    return request.headers.get(SECRET_HEADER) == TELEGRAM_WEBHOOK_SECRET


def publish_update(update: dict) -> str:
    """
    Publish an Update to the processing topic.

    Blocks until Pub/Sub acknowledges the message, so a 200 returned to
    Telegram means the update is durably queued.

    Returns:
        The Pub/Sub message ID

    Raises:
        Any publish error from the Pub/Sub client
    """
    publisher = get_publisher_client()
    topic_path = publisher.topic_path(GCP_PROJECT, UPDATE_TOPIC)

    future = publisher.publish(
        topic_path,
        json.dumps(update).encode('utf-8'),
        update_id=str(update.get('update_id', ''))
    )
    return future.result(timeout=PUBLISH_TIMEOUT)


@functions_framework.http
def receive_update(request):
    """
    Main Cloud Function entry point.

    Expected JSON input: a Telegram Update
    {
        "update_id": 123,
        "message": {"message_id": 1, "chat": {"id": 42, "type": "private"}, "text": "..."}
    }
    """
    if request.method != 'POST':
        return ('Method Not Allowed', 405)

    if not is_authorized(request):
        print("Rejected update: invalid secret token")
        return ('Forbidden', 403)

    # Parse whatever the Content-Type header says
    update = request.get_json(force=True, silent=True)
    if not isinstance(update, dict):
        return ('Bad Request', 400)

    try:
        message_id = publish_update(update)
    except Exception as e:
        print(f"Failed to publish update {update.get('update_id')}: {e}")
        return ('Internal Server Error', 500)

    print(f"Queued update {update.get('update_id')} as message {message_id}")
    return ('OK', 200)
