"""
設定管理モジュール
"""

from .config_manager import (
    AppConfig, ConfigManager, ImageOptimizerConfig, OpenAIConfig, WordPressSite
)

__all__ = ['AppConfig', 'ConfigManager', 'ImageOptimizerConfig', 'OpenAIConfig', 'WordPressSite']
