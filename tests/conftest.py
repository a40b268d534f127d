"""
Shared pytest fixtures for Telegram link summarizer tests.
"""

import pytest
import sys
import json
import base64
import importlib.util
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

# Project root for finding Cloud Function modules
PROJECT_ROOT = Path(__file__).parent.parent


def _load_module_from_path(module_name: str, file_path: Path):
    """Load a module from a specific file path."""
    spec = importlib.util.spec_from_file_location(module_name, file_path)
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module


# Load Cloud Function modules with unique names at module load time
_webhook_receiver_module = _load_module_from_path(
    'webhook_receiver_main',
    PROJECT_ROOT / 'webhook-receiver' / 'main.py'
)

_update_processor_module = _load_module_from_path(
    'update_processor_main',
    PROJECT_ROOT / 'update-processor' / 'main.py'
)

TELEGRAM_TOKEN = 'test-bot-token'


# ============================================================================
# Module Fixtures
# ============================================================================

@pytest.fixture
def receiver_module():
    """Returns the webhook-receiver module (for patching configuration)."""
    return _webhook_receiver_module


@pytest.fixture
def processor_module():
    """Returns the update-processor module (for patching configuration)."""
    return _update_processor_module


# ============================================================================
# Webhook Receiver Function Fixtures
# ============================================================================

@pytest.fixture
def receive_update():
    """Returns main entry point from webhook-receiver."""
    return _webhook_receiver_module.receive_update


@pytest.fixture
def mock_publisher():
    """Patches the Pub/Sub publisher with a mock that acknowledges every publish."""
    publisher = MagicMock()
    publisher.topic_path.side_effect = lambda project, topic: f'projects/{project}/topics/{topic}'
    publisher.publish.return_value.result.return_value = 'message-1'

    with patch.object(_webhook_receiver_module, 'get_publisher_client', return_value=publisher):
        yield publisher


# ============================================================================
# Update Processor Function Fixtures
# ============================================================================

@pytest.fixture
def decode_update_event():
    """Returns decode_update_event function from update-processor."""
    return _update_processor_module.decode_update_event


@pytest.fixture
def fetch_webpage():
    """Returns fetch_webpage function from update-processor."""
    return _update_processor_module.fetch_webpage


@pytest.fixture
def scrape_url():
    """Returns scrape_url function from update-processor."""
    return _update_processor_module.scrape_url


@pytest.fixture
def summarize_scraped():
    """Returns summarize_scraped function from update-processor."""
    return _update_processor_module.summarize_scraped


@pytest.fixture
def echo_update():
    """Returns echo_update function from update-processor."""
    return _update_processor_module.echo_update


@pytest.fixture
def summarize_update():
    """Returns summarize_update function from update-processor."""
    return _update_processor_module.summarize_update


@pytest.fixture
def process_update():
    """Returns main entry point from update-processor."""
    return _update_processor_module.process_update


@pytest.fixture
def telegram_token():
    """Configures the bot token used by the update-processor."""
    with patch.object(_update_processor_module, 'TELEGRAM_BOT_TOKEN', TELEGRAM_TOKEN):
        yield TELEGRAM_TOKEN


@pytest.fixture
def mock_gemini():
    """
    Patches the Gemini SDK in update-processor.

    By default every call returns "Summary of: <first 20 chars of content>".
    Tests can replace mock_gemini.generate_content.side_effect.
    """
    genai = MagicMock()
    generate_content = genai.GenerativeModel.return_value.generate_content

    def _summarize(content, **kwargs):
        return SimpleNamespace(text=f'Summary of: {content[:20]}')

    generate_content.side_effect = _summarize
    genai.generate_content = generate_content

    with patch.object(_update_processor_module, 'genai', genai), \
            patch.object(_update_processor_module, 'GEMINI_API_KEY', 'test-gemini-key'):
        yield genai


# ============================================================================
# Request / Event Factories
# ============================================================================

@pytest.fixture
def mock_flask_request():
    """Factory for creating mock Flask request objects."""
    class MockRequest:
        def __init__(self, json_data=None, method='POST', headers=None):
            # json_data=None behaves like an unparseable body
            self._json = json_data
            self.method = method
            self.headers = headers or {}
            self.data = b''

        def get_json(self, force=False, silent=False):
            return self._json

    return MockRequest


@pytest.fixture
def make_update():
    """Factory for Telegram Update dicts."""
    def _make_update(text='hello', update_id=1000, message_id=10, chat_id=42, with_message=True):
        update = {'update_id': update_id}
        if with_message:
            update['message'] = {
                'message_id': message_id,
                'from': {'id': chat_id, 'is_bot': False, 'first_name': 'Ada'},
                'chat': {'id': chat_id, 'type': 'private', 'first_name': 'Ada'},
                'date': 1700000000,
            }
            if text is not None:
                update['message']['text'] = text
        return update

    return _make_update


@pytest.fixture
def make_pubsub_event():
    """Factory for Pub/Sub CloudEvents carrying an Update."""
    def _make_event(update=None, raw_data=None):
        if raw_data is None:
            raw_data = base64.b64encode(json.dumps(update).encode('utf-8')).decode('ascii')
        return SimpleNamespace(data={
            'message': {'data': raw_data, 'attributes': {}},
            'subscription': 'projects/test/subscriptions/telegram-updates',
        })

    return _make_event


# ============================================================================
# Sample HTML
# ============================================================================

@pytest.fixture
def sample_article_html():
    """A typical article page with boilerplate around the content."""
    return """
    <!DOCTYPE html>
    <html>
    <head>
        <title>10 Python Tips | Example Blog</title>
        <meta name="description" content="Learn essential Python tips">
        <style>body { color: red; }</style>
        <script>window.analytics = {};</script>
    </head>
    <body>
        <header><a href="/">Example Blog</a></header>
        <nav><ul><li>Home</li><li>About</li></ul></nav>
        <article>
            <h1>10 Python Tips You Should Know</h1>
            <p>Here are some tips for Python development.</p>
            <ul><li>Use list comprehensions.</li></ul>
        </article>
        <div class="comments"><p>Great post!</p></div>
        <div class="ad-slot"><p>Buy widgets now</p></div>
        <footer><p>Copyright 2024</p></footer>
    </body>
    </html>
    """
