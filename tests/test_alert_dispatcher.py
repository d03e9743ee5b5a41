from __future__ import annotations

import json
import unittest
from unittest.mock import MagicMock, patch
from urllib.error import URLError

from warehouse_ledger.errors import DispatchFailure
from warehouse_ledger.services.alert_dispatcher import LogAlertDispatcher, TelegramAlertDispatcher


def _telegram() -> TelegramAlertDispatcher:
    return TelegramAlertDispatcher(
        bot_token='123:abc',
        chat_id='-100200',
        base_url='https://telegram.test/',
        timeout_seconds=3,
    )


class TelegramAlertDispatcherTests(unittest.TestCase):
    def test_channel_and_url_are_derived_from_chat_and_token(self) -> None:
        dispatcher = _telegram()

        self.assertEqual(dispatcher.channel, 'telegram:-100200')
        self.assertEqual(dispatcher.url, 'https://telegram.test/bot123:abc/sendMessage')

    @patch('warehouse_ledger.services.alert_dispatcher.settings')
    def test_missing_credentials_are_rejected(self, settings_mock) -> None:
        settings_mock.telegram_bot_token = None
        settings_mock.telegram_chat_id = None

        with self.assertRaises(ValueError):
            TelegramAlertDispatcher()

    @patch('warehouse_ledger.services.alert_dispatcher.urlopen')
    def test_send_posts_json_with_timeout(self, urlopen_mock) -> None:
        urlopen_mock.return_value.__enter__.return_value.read.return_value = b'{"ok": true, "result": {}}'

        _telegram().send('hello')

        request = urlopen_mock.call_args.args[0]
        self.assertEqual(request.get_method(), 'POST')
        self.assertEqual(request.full_url, 'https://telegram.test/bot123:abc/sendMessage')
        self.assertEqual(json.loads(request.data), {'chat_id': '-100200', 'text': 'hello'})
        self.assertEqual(urlopen_mock.call_args.kwargs['timeout'], 3)

    @patch('warehouse_ledger.services.alert_dispatcher.urlopen', side_effect=URLError('connection refused'))
    def test_network_error_becomes_dispatch_failure(self, urlopen_mock) -> None:
        with self.assertRaises(DispatchFailure):
            _telegram().send('hello')

    @patch('warehouse_ledger.services.alert_dispatcher.urlopen', side_effect=TimeoutError('timed out'))
    def test_timeout_becomes_dispatch_failure(self, urlopen_mock) -> None:
        with self.assertRaises(DispatchFailure):
            _telegram().send('hello')

    @patch('warehouse_ledger.services.alert_dispatcher.urlopen')
    def test_rejected_message_becomes_dispatch_failure(self, urlopen_mock) -> None:
        response = MagicMock()
        response.read.return_value = b'{"ok": false, "description": "chat not found"}'
        urlopen_mock.return_value.__enter__.return_value = response

        with self.assertRaises(DispatchFailure) as ctx:
            _telegram().send('hello')

        self.assertIn('chat not found', str(ctx.exception))


class LogAlertDispatcherTests(unittest.TestCase):
    def test_send_writes_message_to_log(self) -> None:
        with self.assertLogs('warehouse_ledger.services.alert_dispatcher', level='INFO') as logs:
            LogAlertDispatcher().send('Product: Milk')

        self.assertEqual(LogAlertDispatcher.channel, 'log')
        self.assertIn('Product: Milk', logs.output[0])


if __name__ == '__main__':
    unittest.main()
