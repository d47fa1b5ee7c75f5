"""
外部APIクライアントモジュール
"""

from .openai_api import ImageAnalysis, OpenAIAPI
from .wordpress_api import WordPressAPI

__all__ = ['ImageAnalysis', 'OpenAIAPI', 'WordPressAPI']
