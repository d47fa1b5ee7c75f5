"""
セキュリティモジュール
"""

from .input_validator import InputValidator, validator

__all__ = ['InputValidator', 'validator']
