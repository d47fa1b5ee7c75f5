#!/usr/bin/env python3
"""
コマンドブリッジとイベントバスのテスト
"""
from unittest.mock import MagicMock

import pytest

from wp_image_uploader.core.bridge import Bridge, EventBus, blob_to_base64
from wp_image_uploader.core.commands import CommandBackend
from wp_image_uploader.core.models import TaskStatus, TaskUpdate
from wp_image_uploader.services.exceptions import CommandError, ConfigurationError


class TestEventBus:
    """イベントバスのテスト"""

    def test_emit_to_listeners(self):
        """登録済みリスナーへの通知テスト"""
        bus = EventBus()
        received = []
        bus.listen('task-update', received.append)
        bus.listen('task-update', received.append)

        bus.emit('task-update', {'filename': 'a.webp'})

        assert received == [{'filename': 'a.webp'}, {'filename': 'a.webp'}]

    def test_other_events_are_not_delivered(self):
        """別イベントは通知されないテスト"""
        bus = EventBus()
        received = []
        bus.listen('task-update', received.append)

        bus.emit('something-else', {})

        assert received == []

    def test_unlisten(self):
        """登録解除テスト"""
        bus = EventBus()
        received = []
        unlisten = bus.listen('task-update', received.append)

        unlisten()
        unlisten()
        bus.emit('task-update', {'x': 1})

        assert received == []
        assert bus.listener_count('task-update') == 0


class TestBridge:
    """ブリッジのテスト"""

    @pytest.fixture
    def backend(self):
        backend = MagicMock()
        backend.commands = {
            'get_config': backend.get_config,
            'save_config': backend.save_config,
            'validate_openai_config': backend.validate_openai_config,
            'validate_wordpress_config': backend.validate_wordpress_config,
            'process_image_task': backend.process_image_task,
        }
        return backend

    def test_unknown_command(self, backend):
        """未知のコマンドのテスト"""
        bridge = Bridge(backend=backend)
        with pytest.raises(CommandError, match='Unknown command: launch_rockets'):
            bridge.invoke('launch_rockets')

    def test_typed_wrappers_forward_arguments(self, backend, app_config):
        """型付きラッパーの引数転送テスト"""
        bridge = Bridge(backend=backend)
        backend.validate_openai_config.return_value = True
        backend.validate_wordpress_config.return_value = False
        backend.process_image_task.return_value = 'https://x/y.webp'

        assert bridge.validate_openai('https://api', 'sk') is True
        assert bridge.validate_wordpress('https://wp', 'u', 'p') is False
        bridge.save_config(app_config)
        request = MagicMock()
        assert bridge.process_image(request) == 'https://x/y.webp'

        backend.validate_openai_config.assert_called_once_with(api_url='https://api', api_key='sk')
        backend.validate_wordpress_config.assert_called_once_with(
            site_url='https://wp', username='u', app_password='p'
        )
        backend.save_config.assert_called_once_with(config=app_config)
        backend.process_image_task.assert_called_once_with(request=request)

    def test_backend_errors_become_command_errors(self, backend):
        """バックエンドエラーの変換テスト"""
        backend.get_config.side_effect = ConfigurationError('Failed to parse config: boom')
        bridge = Bridge(backend=backend)

        with pytest.raises(CommandError) as exc_info:
            bridge.get_config()

        assert exc_info.value.command == 'get_config'
        assert str(exc_info.value) == 'Failed to parse config: boom'

    def test_default_backend_emits_on_bridge_events(self):
        """デフォルトバックエンドのイベント接続テスト"""
        bridge = Bridge()
        assert isinstance(bridge.backend, CommandBackend)

        received = []
        bridge.on_task_update(received.append)
        bridge.backend.emit('task-update', {'filename': 'a.webp', 'status': 'uploading', 'error': None})

        assert received == [TaskUpdate(filename='a.webp', status=TaskStatus.UPLOADING)]

    def test_on_task_update_unlisten(self):
        """task-update 購読解除テスト"""
        bridge = Bridge(backend=MagicMock())
        received = []
        unlisten = bridge.on_task_update(received.append)
        unlisten()

        bridge.events.emit('task-update', {'filename': 'a.webp', 'status': 'completed'})

        assert received == []


def test_blob_to_base64():
    """base64変換テスト"""
    assert blob_to_base64(b'abc') == 'YWJj'
