"""Telegram notification service."""
import logging
import ssl

import aiohttp
import certifi

from ..config import TelegramConfig

logger = logging.getLogger(__name__)

TELEGRAM_API = "https://api.telegram.org"


class TelegramNotifier:
    """Post liquidation alerts (alert bot) and status lines (log bot) to a chat."""

    def __init__(self, config: TelegramConfig) -> None:
        self.alert_bot_token = config.alert_bot_token
        self.log_bot_token = config.log_bot_token
        self.chat_id = config.chat_id

    async def _post(self, bot_token: str, text: str, silent: bool) -> bool:
        if not bot_token or not self.chat_id:
            logger.warning("Telegram credentials not configured")
            return False

        payload = {
            "chat_id": self.chat_id,
            "text": text,
            "disable_notification": silent,
        }
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        async with aiohttp.ClientSession(connector=connector) as session:
            async with session.post(
                f"{TELEGRAM_API}/bot{bot_token}/sendMessage", json=payload
            ) as response:
                if response.status != 200:
                    logger.error("Telegram sendMessage returned %s", response.status)
                    return False
                return True

    async def send_alert(self, message: str) -> bool:
        return await self._post(self.alert_bot_token, message, silent=False)

    async def send_log(self, message: str, silent: bool = True) -> bool:
        return await self._post(self.log_bot_token, message, silent=silent)
