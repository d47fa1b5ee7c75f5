"""
共通フィクスチャ
"""
import sys
from pathlib import Path

import pytest
from PIL import Image

# プロジェクトルートをパスに追加
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from wp_image_uploader.config.config_manager import (
    AppConfig, ConfigManager, OpenAIConfig, WordPressSite
)


@pytest.fixture
def make_image(tmp_path):
    """テスト用画像ファイルを生成"""
    def _make(name='photo.jpg', size=(400, 200), mode='RGB', color=(200, 30, 30), fmt=None):
        path = tmp_path / name
        Image.new(mode, size, color).save(path, format=fmt)
        return path
    return _make


@pytest.fixture
def site():
    return WordPressSite(
        id='site-1',
        site_url='https://blog.example.com',
        username='editor',
        app_password='abcd efgh ijkl',
        context='travel blog about Asian food'
    )


@pytest.fixture
def app_config(site):
    return AppConfig(
        openai=OpenAIConfig(api_url='https://api.openai.com/v1', api_key='sk-test-1234'),
        wordpress_sites=[site]
    )


@pytest.fixture
def config_manager(tmp_path, monkeypatch):
    """一時ディレクトリを使う設定管理"""
    monkeypatch.delenv('WP_IMAGE_UPLOADER_ENCRYPTION_KEY', raising=False)
    return ConfigManager(tmp_path / 'config')
