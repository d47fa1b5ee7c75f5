"""
システムサービスモジュール
"""
