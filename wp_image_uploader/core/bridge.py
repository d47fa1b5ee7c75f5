"""
コマンドブリッジ - 名前付きコマンド呼び出しとイベント通知の型付きラッパー
"""
import base64
import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

from ..config.config_manager import AppConfig
from ..services.exceptions import CommandError, ImageUploaderError
from ..utils.constants import Constants
from .commands import CommandBackend
from .models import ProcessImageRequest, TaskUpdate

logger = logging.getLogger(__name__)

EventHandler = Callable[[Dict[str, Any]], None]
Unlisten = Callable[[], None]


class EventBus:
    """イベント名ごとのリスナー管理"""

    def __init__(self):
        self._listeners: Dict[str, List[EventHandler]] = defaultdict(list)
        self._lock = threading.Lock()

    def listen(self, event: str, handler: EventHandler) -> Unlisten:
        """
        リスナーを登録

        Returns:
            登録解除用の関数
        """
        with self._lock:
            self._listeners[event].append(handler)

        def unlisten() -> None:
            with self._lock:
                if handler in self._listeners[event]:
                    self._listeners[event].remove(handler)

        return unlisten

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        """登録済みリスナーへ通知"""
        with self._lock:
            handlers = list(self._listeners[event])
        for handler in handlers:
            handler(payload)

    def listener_count(self, event: str) -> int:
        with self._lock:
            return len(self._listeners[event])


class Bridge:
    """
    コマンドバックエンドへの型付きクライアント

    バックエンドの失敗はすべて CommandError として呼び出し元に届く
    """

    def __init__(self, backend: Optional[CommandBackend] = None, events: Optional[EventBus] = None):
        self.events = events or EventBus()
        if backend is None:
            backend = CommandBackend(emit=self.events.emit)
        self.backend = backend

    def invoke(self, command: str, **kwargs) -> Any:
        """
        名前でコマンドを呼び出す

        Raises:
            CommandError: 未知のコマンド、またはコマンドが失敗した場合
        """
        handler = self.backend.commands.get(command)
        if handler is None:
            raise CommandError(command, f"Unknown command: {command}")

        logger.debug(f"invoke: {command}")
        try:
            return handler(**kwargs)
        except ImageUploaderError as e:
            logger.error(f"Command {command} failed: {e}")
            raise CommandError(command, str(e)) from e

    def get_config(self) -> AppConfig:
        return self.invoke('get_config')

    def save_config(self, config: AppConfig) -> None:
        self.invoke('save_config', config=config)

    def validate_openai(self, api_url: str, api_key: str) -> bool:
        return self.invoke('validate_openai_config', api_url=api_url, api_key=api_key)

    def validate_wordpress(self, site_url: str, username: str, app_password: str) -> bool:
        return self.invoke(
            'validate_wordpress_config',
            site_url=site_url,
            username=username,
            app_password=app_password
        )

    def process_image(self, request: ProcessImageRequest) -> str:
        return self.invoke('process_image_task', request=request)

    def on_task_update(self, callback: Callable[[TaskUpdate], None]) -> Unlisten:
        """task-update イベントを購読"""
        def handler(payload: Dict[str, Any]) -> None:
            callback(TaskUpdate.from_dict(payload))

        return self.events.listen(Constants.TASK_UPDATE_EVENT, handler)


def blob_to_base64(data: bytes) -> str:
    """バイト列を base64 文字列に変換（data: プレフィックスなし）"""
    return base64.b64encode(data).decode('ascii')
