from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Protocol
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from warehouse_ledger.config import settings
from warehouse_ledger.errors import DispatchFailure

logger = logging.getLogger(__name__)


class AlertDispatcher(Protocol):
    channel: str

    def send(self, text: str) -> None: ...


class TelegramAlertDispatcher:
    def __init__(
        self,
        *,
        bot_token: str | None = None,
        chat_id: str | None = None,
        base_url: str | None = None,
        timeout_seconds: int | None = None,
    ) -> None:
        bot_token = bot_token or settings.telegram_bot_token
        chat_id = chat_id or settings.telegram_chat_id
        if not bot_token or not chat_id:
            raise ValueError('TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID are required when ALERT_DISPATCHER=telegram')

        self.chat_id = chat_id
        self.channel = f'telegram:{chat_id}'
        self.url = f"{(base_url or settings.telegram_api_base_url).rstrip('/')}/bot{bot_token}/sendMessage"
        self.timeout_seconds = timeout_seconds or settings.alert_timeout_seconds

    def send(self, text: str) -> None:
        data = json.dumps({'chat_id': self.chat_id, 'text': text}).encode('utf-8')
        req = Request(
            url=self.url,
            data=data,
            headers={'Content-Type': 'application/json'},
            method='POST',
        )
        try:
            with urlopen(req, timeout=self.timeout_seconds) as response:
                parsed = json.loads(response.read().decode('utf-8'))
        except HTTPError as exc:
            body = exc.read().decode('utf-8', errors='ignore') if exc.fp else ''
            raise DispatchFailure(f'Telegram API error {exc.code}: {body}') from exc
        except URLError as exc:
            raise DispatchFailure(f'Telegram API network error: {exc.reason}') from exc
        except (TimeoutError, OSError, ValueError) as exc:
            raise DispatchFailure(f'Telegram API call failed: {exc}') from exc

        if not parsed.get('ok', False):
            raise DispatchFailure(f"Telegram API rejected message: {parsed.get('description')}")


class LogAlertDispatcher:
    channel = 'log'

    def send(self, text: str) -> None:
        logger.info('Expiry alert:\n%s', text)


@lru_cache(maxsize=1)
def get_alert_dispatcher() -> AlertDispatcher:
    dispatcher = settings.alert_dispatcher.strip().lower()
    if dispatcher == 'telegram':
        return TelegramAlertDispatcher()
    return LogAlertDispatcher()
